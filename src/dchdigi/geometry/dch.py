# src/dchdigi/geometry/dch.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import math

from dchdigi.config.schemas import GeometryCfg
from dchdigi.digi.errors import DecodingError, StartupError


@dataclass(frozen=True, slots=True)
class DCHLayer:
    """
    One layer of twisted-tube cells, all quantities at z=0 [cm].

    fdw / fuw are the field-wire radii below / above the sense wires (sw).
    """
    layer: int
    nwires: int
    height_z0: float
    width_z0: float
    radius_sw_z0: float
    radius_fdw_z0: float
    radius_fuw_z0: float

    @property
    def ncells(self) -> int:
        return self.nwires // 2

    @property
    def stereo_sign(self) -> int:
        # consecutive layers twist in opposite directions
        return -1 if self.layer % 2 == 0 else 1


@dataclass(frozen=True)
class DCHGeometry:
    """
    Immutable drift chamber description shared read-only by all workers.

    Layers are 1-based: geometry.layer(1) is the innermost layer.
    """
    nsuperlayers: int
    nlayers_per_superlayer: int
    ncell0: int
    ncell_increment: int
    ncell_per_sector: int
    half_length_cm: float
    twist_angle_rad: float
    layers: Tuple[DCHLayer, ...]

    @property
    def nlayers(self) -> int:
        return self.nsuperlayers * self.nlayers_per_superlayer

    def superlayer_of(self, ilayer: int) -> int:
        """0-based superlayer of the 1-based layer index."""
        return (ilayer - 1) // self.nlayers_per_superlayer

    def layer(self, ilayer: int) -> DCHLayer:
        if not (1 <= ilayer <= len(self.layers)):
            raise DecodingError(f"Layer {ilayer} outside the chamber (1..{len(self.layers)})")
        return self.layers[ilayer - 1]

    @classmethod
    def from_cfg(cls, cfg: GeometryCfg) -> "DCHGeometry":
        def _positive(value, name: str) -> None:
            if not value > 0:
                raise StartupError(f"DCH: {name} must be positive (got {value!r})")

        _positive(cfg.nsuperlayers, "nsuperlayers")
        _positive(cfg.nlayers_per_superlayer, "nlayers_per_superlayer")
        _positive(cfg.ncell0, "ncell0")
        _positive(cfg.ncell_increment, "ncell_increment")
        _positive(cfg.ncell_per_sector, "ncell_per_sector")
        _positive(cfg.first_width_cm, "first_width_cm")
        _positive(cfg.first_sense_r_cm, "first_sense_r_cm")
        _positive(cfg.half_length_cm, "half_length_cm")
        if not (0.0 < cfg.twist_angle_deg < 180.0):
            raise StartupError(f"DCH: twist_angle_deg must be in (0, 180) (got {cfg.twist_angle_deg})")
        if cfg.ncell0 % cfg.ncell_per_sector or cfg.ncell_increment % cfg.ncell_per_sector:
            raise StartupError("DCH: ncell_per_sector must divide ncell0 and ncell_increment")
        if cfg.first_sense_r_cm - 0.5 * cfg.first_width_cm <= 0:
            raise StartupError("DCH: first layer extends below r=0")

        layers = _build_layer_database(cfg)
        return cls(
            nsuperlayers=cfg.nsuperlayers,
            nlayers_per_superlayer=cfg.nlayers_per_superlayer,
            ncell0=cfg.ncell0,
            ncell_increment=cfg.ncell_increment,
            ncell_per_sector=cfg.ncell_per_sector,
            half_length_cm=cfg.half_length_cm,
            twist_angle_rad=math.radians(cfg.twist_angle_deg),
            layers=layers,
        )


def _build_layer_database(cfg: GeometryCfg) -> Tuple[DCHLayer, ...]:
    nlayers = cfg.nsuperlayers * cfg.nlayers_per_superlayer

    # layer 1 straight from the input parameters
    r_sw = cfg.first_sense_r_cm
    h = cfg.first_width_cm
    ncells = cfg.ncell0
    layers = [
        DCHLayer(
            layer=1,
            nwires=2 * ncells,
            height_z0=h,
            width_z0=2 * math.pi * r_sw / ncells,
            radius_sw_z0=r_sw,
            radius_fdw_z0=r_sw - 0.5 * h,
            radius_fuw_z0=r_sw + 0.5 * h,
        )
    ]

    # following layers sit on top of the previous one, cells kept square at the sense radius
    for ilayer in range(2, nlayers + 1):
        prev = layers[-1]
        if (ilayer - 1) // cfg.nlayers_per_superlayer != (ilayer - 2) // cfg.nlayers_per_superlayer:
            ncells += cfg.ncell_increment
        r_fdw = prev.radius_fuw_z0
        h = 2 * math.pi * r_fdw / (ncells - math.pi)
        r_sw = r_fdw + 0.5 * h
        layers.append(
            DCHLayer(
                layer=ilayer,
                nwires=2 * ncells,
                height_z0=h,
                width_z0=2 * math.pi * r_sw / ncells,
                radius_sw_z0=r_sw,
                radius_fdw_z0=r_fdw,
                radius_fuw_z0=r_fdw + h,
            )
        )
    return tuple(layers)
