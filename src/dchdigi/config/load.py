from __future__ import annotations
from .schemas import Config
from pathlib import Path

from pydantic import ValidationError

from dchdigi.digi.errors import StartupError

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<=310

def load_config(path: str | Path) -> Config:
    p = Path(path)
    if not p.is_file():
        raise StartupError(f"Config file not found: {p}")
    try:
        data = tomllib.loads(p.read_text())
        return Config(**data)
    except (tomllib.TOMLDecodeError, ValidationError) as exc:
        raise StartupError(f"Invalid config {p}: {exc}") from exc

def snapshot_config_toml(path: str | Path) -> str:
    """Return the raw TOML text for embedding in HDF5 metadata."""
    return Path(path).read_text()
