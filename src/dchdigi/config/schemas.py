from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Union

class RunCfg(BaseModel):
    """
    Global run controls.

    TOML:

    [run]
    workers = "auto"        # int | "auto"
    diagnostics_level = 1   # 0=off, 1=minimal, 2=verbose
    """

    # Performance / execution
    workers: Union[int, Literal["auto"]] = "auto"
    progress: bool = False

    # Diagnostics
    diagnostics_level: int = 1  # 0=off, 1=minimal, 2=verbose

    # Seeding: same (base_seed, seed_name, run, event) -> same random stream
    base_seed: int = 0
    seed_name: str = "DCHdigi"

    @field_validator("diagnostics_level")
    def _diag_range(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError("diagnostics_level must be 0, 1, or 2")
        return v

    @field_validator("workers")
    def _workers_non_negative(cls, v):
        if isinstance(v, int) and v < 0:
            raise ValueError("workers must be >= 0 or 'auto'")
        return v

class IOCfg(BaseModel):
    """
    I/O paths.

    TOML:

    [io]
    input_path  = "sim.h5"    # simulated hits, see io/sim_store.py
    output_path = "digi.h5"
    """

    input_path: str
    output_path: str

class GeometryCfg(BaseModel):
    """
    Static drift chamber parameters (DD4hep units: cm, degrees for angles).

    The layer database (radii, cells per layer, stereo sign) is derived
    from these in geometry/dch.py.
    """

    cellid_descriptor: str = "system:5,superlayer:5,layer:4,nphi:11,stereosign:-2"

    nsuperlayers: int = 14
    nlayers_per_superlayer: int = 8

    ncell0: int = 192           # cells in the first superlayer
    ncell_increment: int = 48   # extra cells per superlayer
    ncell_per_sector: int = 48

    first_width_cm: float = 1.1454
    first_sense_r_cm: float = 35.0
    half_length_cm: float = 200.0
    twist_angle_deg: float = 30.0

class DigiCfg(BaseModel):
    """
    Digitization knobs.

    Resolutions are sigmas of the Gaussian smearing, in mm.
    """

    z_resolution_mm: float = 1.0    # along the sense wire (read out at both ends)
    xy_resolution_mm: float = 0.1   # perpendicular to the sense wire
    cluster_table_path: str

    @field_validator("z_resolution_mm", "xy_resolution_mm")
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("resolution must be >= 0")
        return v

class DebugCfg(BaseModel):
    create_histograms: bool = False
    output_path: str = "dch_digi_alg_debug.h5"
    export_png: bool = True


class Config(BaseModel):
    """
    Top-level TOML configuration.
    """

    run: RunCfg = Field(default_factory=RunCfg)
    io: IOCfg
    geometry: GeometryCfg = Field(default_factory=GeometryCfg)
    digi: DigiCfg
    debug: DebugCfg = Field(default_factory=DebugCfg)
