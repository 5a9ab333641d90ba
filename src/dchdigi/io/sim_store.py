"""
dchdigi.io.sim_store

Simulated drift chamber hits in HDF5, CSR-style ragged layout:

/events/run                 (N,)   int64
/events/event               (N,)   int64
/hits/event_ptr             (N+1,) int64   hits of event i: [ptr[i], ptr[i+1])
/hits/cell_id               (M,)   uint64
/hits/x_mm, y_mm, z_mm      (M,)   float64
/hits/edep_GeV              (M,)   float64
/hits/path_length_mm        (M,)   float64
/hits/t_ns                  (M,)   float64
"""
from __future__ import annotations
from pathlib import Path
from typing import Iterator, List, Sequence
import h5py
import numpy as np

from dchdigi.physics.hits import SimEvent, SimHit

_HIT_COLUMNS = ("cell_id", "x_mm", "y_mm", "z_mm", "edep_GeV", "path_length_mm", "t_ns")

def write_sim_events(path: str | Path, events: Sequence[SimEvent]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    n_events = len(events)
    ptr = np.zeros(n_events + 1, dtype=np.int64)
    for i, ev in enumerate(events):
        ptr[i + 1] = ptr[i] + len(ev.hits)
    M = int(ptr[-1])

    cols = {
        "cell_id": np.empty(M, dtype=np.uint64),
        "x_mm": np.empty(M, dtype=np.float64),
        "y_mm": np.empty(M, dtype=np.float64),
        "z_mm": np.empty(M, dtype=np.float64),
        "edep_GeV": np.empty(M, dtype=np.float64),
        "path_length_mm": np.empty(M, dtype=np.float64),
        "t_ns": np.empty(M, dtype=np.float64),
    }
    w = 0
    for ev in events:
        for h in ev.hits:
            r = np.asarray(h.r_mm, dtype=np.float64).reshape(3)
            cols["cell_id"][w] = int(h.cell_id)
            cols["x_mm"][w], cols["y_mm"][w], cols["z_mm"][w] = r
            cols["edep_GeV"][w] = h.edep_GeV
            cols["path_length_mm"][w] = h.path_length_mm
            cols["t_ns"][w] = h.t_ns
            w += 1

    with h5py.File(p, "w") as f:
        g_ev = f.require_group("events")
        g_ev.create_dataset("run", data=np.array([ev.run_id for ev in events], dtype=np.int64))
        g_ev.create_dataset("event", data=np.array([ev.event_id for ev in events], dtype=np.int64))
        g_hits = f.require_group("hits")
        g_hits.create_dataset("event_ptr", data=ptr, dtype="i8")
        for key in _HIT_COLUMNS:
            g_hits.create_dataset(key, data=cols[key], compression="gzip")
    return p

def iter_sim_events(path: str | Path) -> Iterator[SimEvent]:
    """Yield SimEvents in file order."""
    with h5py.File(str(path), "r") as f:
        runs = f["events/run"][...]
        evts = f["events/event"][...]
        ptr = f["hits/event_ptr"][...]
        if ptr.shape != (len(runs) + 1,):
            raise ValueError(f"{path}: /hits/event_ptr has shape {ptr.shape}, expected {(len(runs) + 1,)}")
        g = f["hits"]
        cols = {k: g[k][...] for k in _HIT_COLUMNS}

    for i in range(len(runs)):
        start, end = int(ptr[i]), int(ptr[i + 1])
        hits: List[SimHit] = [
            SimHit(
                cell_id=int(cols["cell_id"][j]),
                r_mm=np.array([cols["x_mm"][j], cols["y_mm"][j], cols["z_mm"][j]], dtype=np.float64),
                edep_GeV=float(cols["edep_GeV"][j]),
                path_length_mm=float(cols["path_length_mm"][j]),
                t_ns=float(cols["t_ns"][j]),
            )
            for j in range(start, end)
        ]
        yield SimEvent(run_id=int(runs[i]), event_id=int(evts[i]), hits=hits)

def read_sim_events(path: str | Path) -> List[SimEvent]:
    return list(iter_sim_events(path))
