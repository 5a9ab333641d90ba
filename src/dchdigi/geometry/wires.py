from __future__ import annotations
import math
import numpy as np

from .dch import DCHGeometry

def _rotate_z(v: np.ndarray, phi: float) -> np.ndarray:
    c, s = math.cos(phi), math.sin(phi)
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1], v[2]], dtype=np.float64)

class WireCalculator:
    """
    Sense-wire lines of the drift chamber, as pure functions of (layer, nphi).

    All lengths in cm. A wire runs between its two end points
        p1 = (r, -s*r*tan(twist/2), -L/2)   p2 = (r, +s*r*tan(twist/2), +L/2)
    rotated about z by phi_z0, with r the sense radius at z=0, s the stereo
    sign of the layer and L/2 the chamber half length.
    """

    def __init__(self, geometry: DCHGeometry):
        self.geometry = geometry

    def wire_reference_phi(self, ilayer: int, nphi: int) -> float:
        """Azimuth of the wire at z=0; odd layers are staggered by a quarter cell."""
        l = self.geometry.layer(ilayer)
        phistep = 2 * math.pi / l.ncells
        return (nphi + 0.25 * (l.layer % 2)) * phistep

    def wire_reference_point(self, ilayer: int, nphi: int) -> np.ndarray:
        l = self.geometry.layer(ilayer)
        p = np.array([l.radius_sw_z0, 0.0, 0.0])
        return _rotate_z(p, self.wire_reference_phi(ilayer, nphi))

    def wire_direction(self, ilayer: int, nphi: int) -> np.ndarray:
        l = self.geometry.layer(ilayer)
        rz0 = l.radius_sw_z0
        lhalf = self.geometry.half_length_cm
        dy = l.stereo_sign * rz0 * math.tan(0.5 * self.geometry.twist_angle_rad)

        p1 = np.array([rz0, -dy, -lhalf])
        p2 = np.array([rz0, dy, lhalf])
        phi_z0 = self.wire_reference_phi(ilayer, nphi)
        ez = _rotate_z(p2, phi_z0) - _rotate_z(p1, phi_z0)
        return ez / np.linalg.norm(ez)

    def stereo_angle(self, ilayer: int) -> float:
        """Signed angle between the wires of a layer and the chamber axis [rad]."""
        l = self.geometry.layer(ilayer)
        t = l.radius_sw_z0 * math.tan(0.5 * self.geometry.twist_angle_rad) / self.geometry.half_length_cm
        return l.stereo_sign * math.atan(t)

    def project_on_wire(self, ilayer: int, nphi: int, hit_position: np.ndarray) -> tuple[np.ndarray, float]:
        """Closest point on the wire and its coordinate along ez, measured from the z=0 point."""
        ez = self.wire_direction(ilayer, nphi)
        a = self.wire_reference_point(ilayer, nphi)
        along = float((np.asarray(hit_position, dtype=np.float64) - a) @ ez)
        return a + along * ez, along

    def hit_to_wire_vector(self, ilayer: int, nphi: int, hit_position: np.ndarray) -> np.ndarray:
        """
        Perpendicular offset between the hit and the infinite wire line:

            hit - (a + ((hit - a).ez) ez)

        Its magnitude is the true (unsmeared) drift distance.
        """
        p = np.asarray(hit_position, dtype=np.float64)
        closest, _ = self.project_on_wire(ilayer, nphi, p)
        return p - closest
