"""
dchdigi.digi.rng

Reproducible randomness for digitization.

Every event gets its own seed, derived only from (run, event) and a fixed
name, so the smearing of an event is the same whatever worker or order it
is processed in. Each worker owns one RandomContext; nothing here is shared
for writing between workers.
"""
from __future__ import annotations
import hashlib
import struct
from typing import Optional, Tuple

import numpy as np

# draws skipped after each reseed
_DISCARD = 10

class UniqueIDSeeder:
    """
    Stable 64-bit seed per (run, event), UniqueIDGenSvc style.

    seed = blake2b(base_seed, run, event, name) truncated to 8 bytes.
    """

    def __init__(self, base_seed: int = 0, name: str = "DCHdigi"):
        self.base_seed = int(base_seed)
        self.name = name

    def seed(self, run_id: int, event_id: int) -> int:
        h = hashlib.blake2b(digest_size=8)
        h.update(struct.pack("<qqq", self.base_seed, int(run_id), int(event_id)))
        h.update(self.name.encode("utf-8"))
        return int.from_bytes(h.digest(), "little")


class RandomContext:
    """
    One random engine plus the two smearing sigmas, owned by a single worker.

    seed_for_event() reseeds only when the event changes; end_event() marks
    the event as finished so a later re-processing starts the same stream.
    """

    def __init__(self, seeder: UniqueIDSeeder, sigma_z_cm: float, sigma_xy_cm: float):
        self.seeder = seeder
        self.sigma_z_cm = float(sigma_z_cm)
        self.sigma_xy_cm = float(sigma_xy_cm)
        self.rng = np.random.default_rng(0)
        self.current: Optional[Tuple[int, int]] = None

    def seed_for_event(self, run_id: int, event_id: int) -> None:
        key = (int(run_id), int(event_id))
        if key == self.current:
            return
        self.rng = np.random.default_rng(self.seeder.seed(*key))
        self.rng.bit_generator.advance(_DISCARD)
        self.current = key

    def end_event(self) -> None:
        self.current = None

    def sample_gaussian(self, sigma: float) -> float:
        return float(self.rng.normal(0.0, sigma))

    def gauss_z(self) -> float:
        """Along-wire smearing draw [cm]."""
        return self.sample_gaussian(self.sigma_z_cm)

    def gauss_xy(self) -> float:
        """Perpendicular smearing draw [cm]."""
        return self.sample_gaussian(self.sigma_xy_cm)
