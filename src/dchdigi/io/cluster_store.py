from __future__ import annotations
from pathlib import Path
import json
import h5py
import numpy as np

from dchdigi.digi.clusters import ClusterTable
from dchdigi.digi.errors import StartupError

# HDF5 layout:
#   /dedx_edges_keV_cm       (B+1,)
#   /density/edges           (K+1,)  clusters/cm
#   /density/counts          (B, K)
#   /size/edges              (S+1,)  electrons per cluster
#   /size/counts             (B, S)
#   attrs["meta"]            JSON string (optional)
_REQUIRED = ("dedx_edges_keV_cm", "density/edges", "density/counts", "size/edges", "size/counts")

def load_cluster_table(path: str | Path) -> ClusterTable:
    """
    Load the cluster distribution table once at startup.

    Any problem (missing file, not HDF5, missing datasets, bad shapes) is a
    StartupError: without the table no hit can be digitized.
    """
    p = Path(path)
    if not p.is_file():
        raise StartupError(f"Cluster distribution file not found: {p}")
    try:
        with h5py.File(p, "r") as f:
            missing = [k for k in _REQUIRED if k not in f]
            if missing:
                raise StartupError(
                    f"Cluster distribution file {p.name} lacks datasets {missing}. "
                    f"Expected {list(_REQUIRED)}"
                )
            meta_raw = f.attrs.get("meta", "{}")
            if isinstance(meta_raw, bytes):
                meta_raw = meta_raw.decode("utf-8")
            return ClusterTable(
                dedx_edges=np.array(f["dedx_edges_keV_cm"], dtype=np.float64),
                density_edges=np.array(f["density/edges"], dtype=np.float64),
                density_counts=np.array(f["density/counts"], dtype=np.float64),
                size_edges=np.array(f["size/edges"], dtype=np.float64),
                size_counts=np.array(f["size/counts"], dtype=np.float64),
                meta=json.loads(meta_raw),
            )
    except (OSError, ValueError) as exc:
        raise StartupError(f"Cannot read cluster distribution file {p}: {exc}") from exc

def write_cluster_table(path: str | Path, table: ClusterTable) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(p, "w") as f:
        f.create_dataset("dedx_edges_keV_cm", data=table.dedx_edges)
        f.create_dataset("density/edges", data=table.density_edges)
        f.create_dataset("density/counts", data=table.density_counts, compression="gzip")
        f.create_dataset("size/edges", data=table.size_edges)
        f.create_dataset("size/counts", data=table.size_counts, compression="gzip")
        f.attrs["meta"] = json.dumps(table.meta, separators=(",", ":"))
    return p
