from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from .errors import ConflictError
from .schemas import Person, Prize
from .types import DrawSession


class DrawSessionStore:
    """Holds the single in-flight draw session, if any."""

    def __init__(self) -> None:
        self._session: Optional[DrawSession] = None

    def begin(
        self,
        session_id: str,
        segments: Sequence[Prize],
        target_prize: Prize,
        target_person: Optional[Person],
        deadline_at: dt.datetime,
    ) -> DrawSession:
        if self._session is not None:
            raise ConflictError(
                f"draw session {self._session.session_id} is still live; cannot begin {session_id}"
            )
        self._session = DrawSession(
            session_id=session_id,
            segments=tuple(segments),
            target_prize=target_prize,
            target_person=target_person,
            deadline_at=deadline_at,
        )
        return self._session

    def end(self) -> Optional[DrawSession]:
        session, self._session = self._session, None
        return session

    def current(self) -> Optional[DrawSession]:
        return self._session

    def matches(self, session_id: Optional[str]) -> bool:
        return self._session is not None and session_id is not None and self._session.session_id == session_id
