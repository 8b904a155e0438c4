from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WireModel(BaseModel):
    """Base for payloads exchanged with the backend (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def _text_or_empty(value: Any) -> Any:
    return "" if value is None else value


class Person(WireModel):
    id: int
    name: str = ""
    email: str = ""

    @field_validator("name", "email", mode="before")
    @classmethod
    def blank_missing_text(cls, value: Any) -> Any:
        return _text_or_empty(value)


class Prize(WireModel):
    id: int
    name: str = ""
    description: str = ""

    @field_validator("name", "description", mode="before")
    @classmethod
    def blank_missing_text(cls, value: Any) -> Any:
        return _text_or_empty(value)

    @property
    def is_real(self) -> bool:
        """Ids <= 0 are placeholders and never an award target."""
        return self.id > 0


class WinnerRecord(WireModel):
    id: int = 0
    person: Person
    prize: Prize
    awarded_at: Optional[dt.datetime] = Field(None, alias="awardedAt")


class StateSnapshot(WireModel):
    waiting_people: List[Person] = Field(default_factory=list, alias="waitingPeople")
    upcoming_prizes: List[Prize] = Field(default_factory=list, alias="upcomingPrizes")
    recent_winners: List[WinnerRecord] = Field(default_factory=list, alias="recentWinners")

    @property
    def remaining_people(self) -> int:
        return len(self.waiting_people)

    @property
    def remaining_prizes(self) -> int:
        return len(self.upcoming_prizes)

    @property
    def real_prizes(self) -> List[Prize]:
        return [prize for prize in self.upcoming_prizes if prize.is_real]

    def find_person(self, person_id: int) -> Optional[Person]:
        for person in self.waiting_people:
            if person.id == person_id:
                return person
        return None


def _session_id_to_text(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class DrawStartEvent(WireModel):
    session_id: str = Field(..., alias="sessionId")
    segments: List[Prize] = Field(default_factory=list)
    target_prize: Optional[Prize] = Field(None, alias="targetPrize")
    target_person: Optional[Person] = Field(None, alias="targetPerson")

    @field_validator("session_id", mode="before")
    @classmethod
    def coerce_session_id(cls, value: Any) -> Any:
        return _session_id_to_text(value)


class DrawCompleteEvent(WireModel):
    session_id: Optional[str] = Field(None, alias="sessionId")
    person: Person
    prize: Prize
    awarded_at: Optional[dt.datetime] = Field(None, alias="awardedAt")

    @field_validator("session_id", mode="before")
    @classmethod
    def coerce_session_id(cls, value: Any) -> Any:
        return _session_id_to_text(value)


class LoginRequest(WireModel):
    password: str


class LoginResponse(WireModel):
    token: str = Field(..., min_length=1)


class DrawRequest(WireModel):
    participant_id: int = Field(..., alias="participantId", gt=0)
