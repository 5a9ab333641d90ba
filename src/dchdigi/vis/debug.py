from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
import h5py
import numpy as np
import matplotlib.pyplot as plt

# name -> (title, x label)
HISTOGRAMS = {
    "hDpw": ("Distance from hit position to the wire", "cm"),
    "hDww": ("Distance from hit projection to the wire (should be zero)", "cm"),
    "hSz": ("Smearing along the wire", "cm"),
    "hSxy": ("Smearing perpendicular to the wire", "cm"),
}

@dataclass
class Histogram1D:
    edges: np.ndarray
    counts: Optional[np.ndarray] = None
    underflow: int = 0
    overflow: int = 0

    def __post_init__(self):
        self.edges = np.asarray(self.edges, dtype=np.float64)
        if self.counts is None:
            self.counts = np.zeros(self.edges.size - 1, dtype=np.int64)

    @classmethod
    def uniform(cls, nbins: int, lo: float, hi: float) -> "Histogram1D":
        return cls(np.linspace(lo, hi, nbins + 1))

    def fill(self, x: float) -> None:
        if x < self.edges[0]:
            self.underflow += 1
        elif x >= self.edges[-1]:
            self.overflow += 1
        else:
            self.counts[np.searchsorted(self.edges, x, side="right") - 1] += 1

    @property
    def entries(self) -> int:
        return int(self.counts.sum()) + self.underflow + self.overflow

    def mean_rms(self) -> tuple[float, float]:
        """Mean and RMS from bin centres, in-range entries only (NaN when empty)."""
        n = self.counts.sum()
        if n == 0:
            return float("nan"), float("nan")
        mid = 0.5 * (self.edges[:-1] + self.edges[1:])
        mean = float((mid * self.counts).sum() / n)
        rms = float(np.sqrt(((mid - mean) ** 2 * self.counts).sum() / n))
        return mean, rms

    def merge(self, other: "Histogram1D") -> None:
        if not np.array_equal(self.edges, other.edges):
            raise ValueError("Cannot merge histograms with different binning")
        self.counts += other.counts
        self.underflow += other.underflow
        self.overflow += other.overflow

@dataclass
class DebugHistograms:
    """
    Per-worker debug histograms; merge() the workers' copies before writing.
    """
    hists: Dict[str, Histogram1D] = field(default_factory=dict)

    @classmethod
    def for_resolutions(cls, sigma_z_cm: float, sigma_xy_cm: float, max_distance_cm: float = 2.0):
        def _smear_range(sigma: float) -> float:
            return 5 * sigma if sigma > 0 else 1e-3
        rz, rxy = _smear_range(sigma_z_cm), _smear_range(sigma_xy_cm)
        return cls({
            "hDpw": Histogram1D.uniform(100, 0.0, max_distance_cm),
            "hDww": Histogram1D.uniform(100, 0.0, 1e-6),
            "hSz": Histogram1D.uniform(100, -rz, rz),
            "hSxy": Histogram1D.uniform(100, -rxy, rxy),
        })

    def fill(self, name: str, x: float) -> None:
        self.hists[name].fill(float(x))

    def merge(self, other: "DebugHistograms") -> "DebugHistograms":
        for name, h in other.hists.items():
            if name in self.hists:
                self.hists[name].merge(h)
            else:
                self.hists[name] = Histogram1D(h.edges.copy(), h.counts.copy(), h.underflow, h.overflow)
        return self


def write_debug_histograms(path: str | Path, histos: DebugHistograms) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(path, "w") as f:
        root = f.require_group("histograms")
        for name, h in histos.hists.items():
            g = root.require_group(name)
            g.create_dataset("edges", data=h.edges)
            g.create_dataset("counts", data=h.counts)
            g.attrs["underflow"] = h.underflow
            g.attrs["overflow"] = h.overflow
            g.attrs["title"] = HISTOGRAMS.get(name, (name, ""))[0]
    return path


def read_debug_histograms(path: str | Path) -> DebugHistograms:
    out = DebugHistograms()
    with h5py.File(str(path), "r") as f:
        if "histograms" not in f:
            raise KeyError(f"/histograms not found in {path}")
        for name, g in f["histograms"].items():
            out.hists[name] = Histogram1D(
                np.array(g["edges"]), np.array(g["counts"]),
                int(g.attrs.get("underflow", 0)), int(g.attrs.get("overflow", 0)),
            )
    return out


def save_debug_png(h5_path: str | Path, out_png: str | None = None) -> str:
    histos = read_debug_histograms(h5_path)
    if out_png is None:
        out_png = str(Path(h5_path).with_suffix(".png"))

    names = sorted(histos.hists)
    ncols = 2
    nrows = max(1, (len(names) + ncols - 1) // ncols)
    fig, axes = plt.subplots(nrows, ncols, figsize=(10, 4 * nrows), squeeze=False)
    for ax, name in zip(axes.ravel(), names):
        h = histos.hists[name]
        ax.stairs(h.counts, h.edges)
        title, unit = HISTOGRAMS.get(name, (name, ""))
        ax.set_title(f"{name}: {title}", fontsize=9)
        ax.set_xlabel(unit)
    for ax in axes.ravel()[len(names):]:
        ax.set_visible(False)
    fig.suptitle(Path(h5_path).name)
    fig.tight_layout()
    fig.savefig(out_png, dpi=150)
    plt.close(fig)
    return out_png
