from __future__ import annotations
from typing import NamedTuple
import numpy as np

from ..geometry.wires import WireCalculator
from .rng import RandomContext

# EDM4hep positions are mm, DD4hep geometry is cm
MM_TO_CM = 0.1
CM_TO_MM = 10.0

class SmearedPosition(NamedTuple):
    drift_distance: float   # cm
    along_wire: float       # cm, from the wire's z=0 point along ez

class SmearDetails(NamedTuple):
    drift_distance: float
    along_wire: float
    true_distance: float
    true_along_wire: float
    delta_xy: float
    delta_z: float

class PositionSmearer:
    """
    Smears a hit in the local frame of its sense wire.

    drift_distance = |hit_to_wire| + N(0, sigma_xy)
    along_wire     = (hit - a).ez  + N(0, sigma_z)

    The smeared drift distance is not clamped at zero.
    """

    def __init__(self, wires: WireCalculator):
        self.wires = wires

    def smear_detailed(self, hit_position_cm: np.ndarray, ilayer: int, nphi: int,
                       ctx: RandomContext) -> SmearDetails:
        p = np.asarray(hit_position_cm, dtype=np.float64)
        _, true_along = self.wires.project_on_wire(ilayer, nphi, p)
        true_distance = float(np.linalg.norm(self.wires.hit_to_wire_vector(ilayer, nphi, p)))

        # along-wire draw first, then perpendicular
        delta_z = ctx.gauss_z()
        delta_xy = ctx.gauss_xy()

        return SmearDetails(
            drift_distance=true_distance + delta_xy,
            along_wire=true_along + delta_z,
            true_distance=true_distance,
            true_along_wire=true_along,
            delta_xy=delta_xy,
            delta_z=delta_z,
        )

    def smear(self, hit_position_cm: np.ndarray, ilayer: int, nphi: int,
              ctx: RandomContext) -> SmearedPosition:
        d = self.smear_detailed(hit_position_cm, ilayer, nphi, ctx)
        return SmearedPosition(d.drift_distance, d.along_wire)
