from __future__ import annotations
from dataclasses import dataclass, field
from typing import List
import numpy as np

@dataclass(slots=True)
class SimHit:
    """
    Simulated drift chamber hit (input, read-only during digitization).

    cell_id: bit-packed cell identifier (see geometry/cellid.py)
    r_mm: crossing position [mm], shape (3,)
    edep_GeV: deposited energy [GeV]
    path_length_mm: step length inside the cell [mm]
    t_ns: time [ns]
    """
    cell_id: int
    r_mm: np.ndarray
    edep_GeV: float
    path_length_mm: float = 0.0
    t_ns: float = 0.0

@dataclass(slots=True)
class SimEvent:
    run_id: int
    event_id: int
    hits: List[SimHit] = field(default_factory=list)

@dataclass(slots=True)
class DigiHit:
    """
    Digitized drift chamber hit.

    position_mm: smeared point on the sense wire [mm]
    direction_sw: unit vector along the sense wire
    distance_to_wire_mm: smeared drift distance [mm]
    along_wire_mm: smeared coordinate along the wire from its z=0 point [mm]
    """
    cell_id: int
    t_ns: float
    edep_GeV: float
    position_mm: np.ndarray
    direction_sw: np.ndarray
    distance_to_wire_mm: float
    along_wire_mm: float
    cluster_count: int
    cluster_size: int

@dataclass(frozen=True, slots=True)
class Association:
    """Link from a digi to the sim hit it was made from (indices within the event)."""
    digi_index: int
    sim_index: int
    weight: float = 1.0
