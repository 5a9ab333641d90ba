"""
Error taxonomy for the digitizer.

Leaves raise; the event runner (digi/builder.py) turns per-event errors
into explicit EventResult failures so one bad event never stops a run.

STARTUP : malformed geometry, unreadable cluster table, invalid config.
          Raised once at initialization, aborts the run.
EVENT   : cell ID outside the field layout or the layer database.
          Aborts the current event only.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    STARTUP = "startup"
    EVENT = "event"


class DigiError(Exception):
    kind: ErrorKind = ErrorKind.STARTUP


class StartupError(DigiError):
    kind = ErrorKind.STARTUP


class EventError(DigiError):
    kind = ErrorKind.EVENT


class DecodingError(EventError):
    def __init__(self, message: str, cell_id: int | None = None):
        super().__init__(message)
        self.cell_id = cell_id


@dataclass(frozen=True, slots=True)
class EventFailure:
    kind: ErrorKind
    message: str
    run_id: int
    event_id: int

    def __str__(self) -> str:
        return f"run={self.run_id} event={self.event_id} [{self.kind.value}] {self.message}"
