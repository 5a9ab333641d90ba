from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Sequence
import h5py
import numpy as np

from dchdigi.config.load import snapshot_config_toml
from dchdigi.digi.builder import EventResult

FORMAT_VERSION = "1.0"

# event status codes in /events/status
STATUS_OK = 0
STATUS_FAILED = 1


def write_init(path: str | Path, cfg_path: str | Path | None = None) -> h5py.File:
    f = h5py.File(str(path), "w")
    f.attrs["format_version"] = FORMAT_VERSION
    f.attrs["created_utc"] = datetime.now(timezone.utc).isoformat()
    f.attrs["software"] = "dchdigi 0.1.0"
    f.attrs["config_text"] = snapshot_config_toml(cfg_path) if cfg_path else ""
    return f


def write_digi_results(f: h5py.File, results: Sequence[EventResult], sim_event_ptr: np.ndarray | None = None) -> None:
    """
    Store digis and digi->sim associations of all events.

    Layout:

    /events/run, /events/event        (N,) int64
    /events/status                    (N,) uint8     0=ok, 1=failed
    /events/error                     (N,) str       empty when ok
    /digi/event_ptr                   (N+1,) int64   CSR pointers into /digi/*
    /digi/cell_id                     (M,) uint64
    /digi/t_ns, /digi/edep_GeV        (M,) float64
    /digi/position_mm                 (M, 3) float64 smeared point on the wire
    /digi/direction_sw                (M, 3) float64 unit wire direction
    /digi/distance_to_wire_mm         (M,) float64
    /digi/along_wire_mm               (M,) float64
    /digi/cluster_count               (M,) uint32
    /digi/cluster_size                (M,) uint32
    /assoc/digi_index, /assoc/sim_index (M,) int64  global row indices
    /assoc/weight                     (M,) float32

    sim_event_ptr is the /hits/event_ptr of the input file; sim indices are
    offset with it so they address the input's flat hit arrays. Without it
    they are offset with the digi pointers (same thing for a 1:1 digitization
    where no event failed).
    """
    N = len(results)
    ptr = np.zeros(N + 1, dtype=np.int64)
    for i, res in enumerate(results):
        ptr[i + 1] = ptr[i] + len(res.digis)
    M = int(ptr[-1])
    sim_ptr = ptr if sim_event_ptr is None else np.asarray(sim_event_ptr, dtype=np.int64)

    cell_id = np.empty(M, dtype=np.uint64)
    t_ns = np.empty(M, dtype=np.float64)
    edep = np.empty(M, dtype=np.float64)
    pos = np.empty((M, 3), dtype=np.float64)
    direction = np.empty((M, 3), dtype=np.float64)
    dist = np.empty(M, dtype=np.float64)
    along = np.empty(M, dtype=np.float64)
    ncl = np.empty(M, dtype=np.uint32)
    clsz = np.empty(M, dtype=np.uint32)
    a_digi = np.empty(M, dtype=np.int64)
    a_sim = np.empty(M, dtype=np.int64)
    a_w = np.empty(M, dtype=np.float32)

    w = 0
    for i, res in enumerate(results):
        for d in res.digis:
            cell_id[w] = d.cell_id
            t_ns[w] = d.t_ns
            edep[w] = d.edep_GeV
            pos[w] = d.position_mm
            direction[w] = d.direction_sw
            dist[w] = d.distance_to_wire_mm
            along[w] = d.along_wire_mm
            ncl[w] = d.cluster_count
            clsz[w] = d.cluster_size
            w += 1
        for a in res.associations:
            k = ptr[i] + a.digi_index
            a_digi[k] = k
            a_sim[k] = sim_ptr[i] + a.sim_index
            a_w[k] = a.weight

    def _replace_or_create(grp: h5py.Group, name: str, data: np.ndarray, **kw):
        if name in grp:
            del grp[name]
        grp.create_dataset(name, data=data, **kw)

    g_ev = f.require_group("events")
    _replace_or_create(g_ev, "run", np.array([r.run_id for r in results], dtype=np.int64))
    _replace_or_create(g_ev, "event", np.array([r.event_id for r in results], dtype=np.int64))
    _replace_or_create(g_ev, "status", np.array([STATUS_OK if r.ok else STATUS_FAILED for r in results], dtype=np.uint8))
    _replace_or_create(g_ev, "error", np.array(["" if r.ok else str(r.failure) for r in results],
                                               dtype=h5py.string_dtype()))

    g_digi = f.require_group("digi")
    _replace_or_create(g_digi, "event_ptr", ptr)
    for name, data in (
        ("cell_id", cell_id), ("t_ns", t_ns), ("edep_GeV", edep),
        ("position_mm", pos), ("direction_sw", direction),
        ("distance_to_wire_mm", dist), ("along_wire_mm", along),
        ("cluster_count", ncl), ("cluster_size", clsz),
    ):
        _replace_or_create(g_digi, name, data, compression="gzip")

    g_assoc = f.require_group("assoc")
    _replace_or_create(g_assoc, "digi_index", a_digi, compression="gzip")
    _replace_or_create(g_assoc, "sim_index", a_sim, compression="gzip")
    _replace_or_create(g_assoc, "weight", a_w, compression="gzip")


@dataclass
class DigiTables:
    """Column view of a digi output file, as written by write_digi_results."""
    events: Dict[str, np.ndarray]
    digi: Dict[str, np.ndarray]
    assoc: Dict[str, np.ndarray]

    def event_slice(self, i: int) -> slice:
        ptr = self.digi["event_ptr"]
        return slice(int(ptr[i]), int(ptr[i + 1]))


def read_digi(path: str | Path) -> DigiTables:
    with h5py.File(str(path), "r") as f:
        for grp in ("events", "digi", "assoc"):
            if grp not in f:
                raise KeyError(f"/{grp} not found in {path}")
        events = {k: f["events"][k][...] for k in f["events"]}
        events["error"] = np.array([e.decode("utf-8") if isinstance(e, bytes) else str(e)
                                    for e in events["error"]], dtype=object)
        digi = {k: f["digi"][k][...] for k in f["digi"]}
        assoc = {k: f["assoc"][k][...] for k in f["assoc"]}
    return DigiTables(events=events, digi=digi, assoc=assoc)
