from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .schemas import Person, Prize


class Phase(Enum):
    IDLE = "idle"
    ARMED = "armed"
    SPINNING = "spinning"
    RESOLVED = "resolved"
    ABORTED = "aborted"


class Connectivity(Enum):
    CONNECTING = "connecting"
    RESTORED = "restored"
    LOST = "lost"


@dataclass(frozen=True)
class DrawSession:
    session_id: str
    segments: Sequence[Prize]
    target_prize: Prize
    target_person: Optional[Person]
    deadline_at: dt.datetime


@dataclass(frozen=True)
class RotationTarget:
    segment_index: int
    rotation: float
    previous_rotation: float


@dataclass(frozen=True)
class DrawOutcome:
    session_id: str
    person: Person
    prize: Prize
    awarded_at: Optional[dt.datetime] = None
