"""
Toy inputs for smoke runs and tests.

Hits are placed at chosen offsets from chosen sense wires; this is geometry
bookkeeping, not a physics generator. The toy cluster table only has the
right shape and plausible magnitudes.
"""
from __future__ import annotations
import numpy as np

from ..digi.clusters import ClusterTable
from ..geometry.cellid import DCHCellIDDecoder
from ..geometry.wires import WireCalculator
from ..physics.hits import SimEvent, SimHit
from ..digi.smearing import CM_TO_MM

def perpendicular_unit(ez: np.ndarray, angle: float = 0.0) -> np.ndarray:
    """Unit vector perpendicular to ez, rotated by `angle` about it."""
    t = np.array([1.0, 0.0, 0.0])
    if abs(ez @ t) > 0.9:
        t = np.array([0.0, 1.0, 0.0])
    e1 = np.cross(ez, t)
    e1 /= np.linalg.norm(e1)
    e2 = np.cross(ez, e1)
    return np.cos(angle) * e1 + np.sin(angle) * e2

def hit_at_offset(
    wires: WireCalculator,
    decoder: DCHCellIDDecoder,
    ilayer: int,
    nphi: int,
    along_cm: float = 0.0,
    offset_cm: float = 0.0,
    angle: float = 0.0,
    edep_GeV: float = 2.0e-6,
    path_length_mm: float = 10.0,
    t_ns: float = 0.0,
) -> SimHit:
    """SimHit at `along_cm` along the wire and `offset_cm` perpendicular to it (positions in mm)."""
    ez = wires.wire_direction(ilayer, nphi)
    a = wires.wire_reference_point(ilayer, nphi)
    r_cm = a + along_cm * ez + offset_cm * perpendicular_unit(ez, angle)
    return SimHit(
        cell_id=decoder.encode(ilayer, nphi),
        r_mm=r_cm * CM_TO_MM,
        edep_GeV=edep_GeV,
        path_length_mm=path_length_mm,
        t_ns=t_ns,
    )

def synth_sim_events(
    wires: WireCalculator,
    decoder: DCHCellIDDecoder,
    n_events: int,
    hits_per_event: int = 20,
    run_id: int = 0,
    first_event: int = 0,
    rng: np.random.Generator | None = None,
) -> list[SimEvent]:
    """
    Random hits inside random cells: uniform along the wire (within 90% of
    the half length), up to half a cell height away from the wire.
    """
    rng = rng or np.random.default_rng()
    geo = wires.geometry
    events: list[SimEvent] = []
    for k in range(n_events):
        hits = []
        for _ in range(hits_per_event):
            ilayer = int(rng.integers(1, geo.nlayers + 1))
            layer = geo.layer(ilayer)
            nphi = int(rng.integers(0, layer.ncells))
            hits.append(hit_at_offset(
                wires, decoder, ilayer, nphi,
                along_cm=float(rng.uniform(-0.9, 0.9) * geo.half_length_cm),
                offset_cm=float(rng.uniform(0.0, 0.5 * layer.height_z0)),
                angle=float(rng.uniform(0.0, 2 * np.pi)),
                edep_GeV=float(rng.gamma(2.0, 1.0e-6)),
                path_length_mm=float(rng.uniform(2.0, 20.0)),
                t_ns=float(rng.uniform(0.0, 50.0)),
            ))
        events.append(SimEvent(run_id=run_id, event_id=first_event + k, hits=hits))
    return events

def make_toy_cluster_table(n_dedx: int = 20, dedx_max_keV_cm: float = 20.0) -> ClusterTable:
    """
    Deterministic table: cluster density peaks at 12 + 0.5*dE/dx clusters/cm,
    cluster sizes fall like 1/n^2 from 1 to 20 electrons.
    """
    dedx_edges = np.linspace(0.0, dedx_max_keV_cm, n_dedx + 1)
    dedx_mid = 0.5 * (dedx_edges[:-1] + dedx_edges[1:])

    density_edges = np.linspace(0.0, 40.0, 81)
    density_mid = 0.5 * (density_edges[:-1] + density_edges[1:])
    peak = 12.0 + 0.5 * dedx_mid
    density_counts = np.exp(-0.5 * ((density_mid[None, :] - peak[:, None]) / 2.0) ** 2)

    size_edges = np.arange(1.0, 22.0)
    size_mid = size_edges[:-1]
    size_counts = np.tile(1.0 / size_mid ** 2, (n_dedx, 1))

    return ClusterTable(
        dedx_edges=dedx_edges,
        density_edges=density_edges,
        density_counts=density_counts,
        size_edges=size_edges,
        size_counts=size_counts,
        meta={"source": "toy"},
    )
