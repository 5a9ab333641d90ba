"""
dchdigi.digi.clusters

Ionization cluster counting from an empirical distribution table.

The table is binned in dE/dx [keV/cm]. Each dE/dx row holds two histograms:
  - cluster density [clusters/cm] along the track,
  - cluster size [electrons per cluster].

For a hit with deposit E and path length s:
  1. pick the dE/dx row (clamped to the first/last row outside the table),
  2. draw a density from the row histogram (inverse CDF, uniform in bin),
  3. cluster_count ~ Poisson(density * s),
  4. cluster_size  = sum of cluster_count draws from the size histogram
     (at least one electron per cluster).

Hits without a usable deposit or path length get (0, 0).
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple
import math

import numpy as np

from .errors import StartupError
from .smearing import MM_TO_CM

KEV_PER_GEV = 1.0e6

def _check_edges(edges: np.ndarray, name: str) -> np.ndarray:
    edges = np.asarray(edges, dtype=np.float64)
    if edges.ndim != 1 or edges.size < 2:
        raise StartupError(f"Cluster table: {name} must be 1D with at least two edges")
    if not np.all(np.isfinite(edges)) or np.any(np.diff(edges) <= 0):
        raise StartupError(f"Cluster table: {name} must be finite and strictly increasing")
    return edges

def _row_cdfs(counts: np.ndarray, n_rows: int, n_bins: int, name: str) -> Tuple[np.ndarray, np.ndarray]:
    counts = np.asarray(counts, dtype=np.float64)
    if counts.shape != (n_rows, n_bins):
        raise StartupError(f"Cluster table: {name} counts shape {counts.shape} != {(n_rows, n_bins)}")
    if not np.all(np.isfinite(counts)) or np.any(counts < 0):
        raise StartupError(f"Cluster table: {name} counts must be finite and non-negative")
    totals = counts.sum(axis=1)
    filled = totals > 0
    cdf = np.zeros_like(counts)
    cdf[filled] = np.cumsum(counts[filled], axis=1) / totals[filled, None]
    cdf[filled, -1] = 1.0
    return cdf, filled

def _draw_from_cdf(edges: np.ndarray, cdf: np.ndarray, rng: np.random.Generator, size=None):
    u = rng.random(size)
    k = np.clip(np.searchsorted(cdf, u, side="right"), 0, cdf.size - 1)
    lo = edges[k]
    return lo + rng.random(size) * (edges[k + 1] - lo)

@dataclass
class ClusterTable:
    dedx_edges: np.ndarray      # (B+1,) keV/cm
    density_edges: np.ndarray   # (K+1,) clusters/cm
    density_counts: np.ndarray  # (B, K)
    size_edges: np.ndarray      # (S+1,) electrons
    size_counts: np.ndarray     # (B, S)
    meta: dict = field(default_factory=dict)

    def __post_init__(self):
        self.dedx_edges = _check_edges(self.dedx_edges, "dedx_edges")
        self.density_edges = _check_edges(self.density_edges, "density edges")
        self.size_edges = _check_edges(self.size_edges, "size edges")
        if self.density_edges[0] < 0 or self.size_edges[0] < 0:
            raise StartupError("Cluster table: density and size edges must be non-negative")
        n_rows = self.dedx_edges.size - 1
        self._density_cdf, self._density_ok = _row_cdfs(
            self.density_counts, n_rows, self.density_edges.size - 1, "density")
        self._size_cdf, self._size_ok = _row_cdfs(
            self.size_counts, n_rows, self.size_edges.size - 1, "size")
        self.density_counts = np.asarray(self.density_counts, dtype=np.float64)
        self.size_counts = np.asarray(self.size_counts, dtype=np.float64)

    @property
    def n_rows(self) -> int:
        return self.dedx_edges.size - 1

    def row_for(self, dedx_keV_cm: float) -> int:
        row = int(np.searchsorted(self.dedx_edges, dedx_keV_cm, side="right")) - 1
        return min(max(row, 0), self.n_rows - 1)


class ClusterSampler:
    """Draws (cluster_count, cluster_size) for a hit; never raises at call time."""

    def __init__(self, table: ClusterTable):
        self.table = table

    def sample_clusters(self, edep_GeV: float, path_length_mm: float,
                        rng: np.random.Generator) -> Tuple[int, int]:
        if not (math.isfinite(edep_GeV) and math.isfinite(path_length_mm)):
            return 0, 0
        if edep_GeV <= 0 or path_length_mm <= 0:
            return 0, 0

        t = self.table
        path_cm = path_length_mm * MM_TO_CM
        row = t.row_for(edep_GeV * KEV_PER_GEV / path_cm)
        if not t._density_ok[row]:
            return 0, 0

        density = float(_draw_from_cdf(t.density_edges, t._density_cdf[row], rng))
        n_clusters = int(rng.poisson(max(density, 0.0) * path_cm))
        if n_clusters == 0:
            return 0, 0
        if not t._size_ok[row]:
            return n_clusters, n_clusters

        sizes = np.floor(_draw_from_cdf(t.size_edges, t._size_cdf[row], rng, size=n_clusters))
        sizes = np.maximum(sizes, 1.0)
        return n_clusters, int(sizes.sum())
