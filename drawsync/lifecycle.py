from __future__ import annotations

import collections
import datetime as dt
import logging
from typing import Any, Callable, Deque, List, Optional, Protocol

from .errors import DrawSyncError, ProtocolTimeoutError, RequestError
from .resolver import TargetResolver
from .schemas import DrawCompleteEvent, DrawStartEvent, Prize, StateSnapshot
from .session_store import DrawSessionStore
from .timeout import TimeoutSupervisor
from .types import Connectivity, DrawOutcome, DrawSession, Phase, RotationTarget

ARMED_TOKEN = "armed"


class DrawApiProtocol(Protocol):
    async def request_draw(self, participant_id: int, token: Optional[str]) -> Any:
        ...


class DrawLifecycle:
    """Owns the draw phase and every piece of state derived from it.

    Only push events move the machine in and out of SPINNING; the HTTP draw
    request merely arms it. A draw-complete resolves the live session only
    when its session id matches, or, carrying no id at all, when it awards
    the live session's target prize.
    """

    def __init__(
        self,
        api: DrawApiProtocol,
        resolver: Optional[TargetResolver] = None,
        store: Optional[DrawSessionStore] = None,
        *,
        draw_deadline: float = 15.0,
        result_display: float = 8.0,
        abort_display: float = 3.0,
        on_change: Optional[Callable[[Phase, Phase], None]] = None,
        on_error: Optional[Callable[[DrawSyncError], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._api = api
        self._resolver = resolver or TargetResolver()
        self._store = store or DrawSessionStore()
        self._draw_deadline = draw_deadline
        self._result_display = result_display
        self._abort_display = abort_display
        self._on_change = on_change
        self._on_error = on_error
        self._logger = logger or logging.getLogger("drawsync.lifecycle")

        self._deadline = TimeoutSupervisor("draw deadline", logger=self._logger)
        self._display = TimeoutSupervisor("result display", logger=self._logger)

        self._phase = Phase.IDLE
        self._snapshot = StateSnapshot()
        self._token: Optional[str] = None
        self._connectivity = Connectivity.CONNECTING
        self._rotation_target: Optional[RotationTarget] = None
        self._winner: Optional[DrawOutcome] = None
        self._last_error: Optional[DrawSyncError] = None
        self._finished_sessions: Deque[str] = collections.deque(maxlen=64)

    # ---------- read accessors ----------
    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def snapshot(self) -> StateSnapshot:
        return self._snapshot

    @property
    def session(self) -> Optional[DrawSession]:
        return self._store.current()

    @property
    def winner(self) -> Optional[DrawOutcome]:
        return self._winner

    @property
    def last_error(self) -> Optional[DrawSyncError]:
        return self._last_error

    @property
    def connectivity(self) -> Connectivity:
        return self._connectivity

    @property
    def rotation(self) -> float:
        return self._resolver.rotation

    @property
    def rotation_target(self) -> Optional[RotationTarget]:
        return self._rotation_target

    @property
    def visible_segments(self) -> List[Prize]:
        session = self._store.current()
        if self._phase is Phase.SPINNING and session is not None:
            return list(session.segments)
        return self._resolver.wheel_segments(self._snapshot.upcoming_prizes)

    @property
    def is_host(self) -> bool:
        return bool(self._token)

    @property
    def can_request_draw(self) -> bool:
        return (
            self._phase is Phase.IDLE
            and self.is_host
            and bool(self._snapshot.waiting_people)
            and bool(self._snapshot.real_prizes)
        )

    # ---------- inputs ----------
    def set_token(self, token: Optional[str]) -> None:
        self._token = token or None

    def set_connectivity(self, status: Connectivity) -> None:
        self._connectivity = status

    def apply_snapshot(self, snapshot: StateSnapshot) -> None:
        self._snapshot = snapshot
        self._logger.debug(
            "Snapshot: %d waiting, %d prizes, %d winners",
            snapshot.remaining_people,
            snapshot.remaining_prizes,
            len(snapshot.recent_winners),
        )

    def handle_server_error(self, message: str) -> None:
        self._surface(DrawSyncError(f"backend error: {message}"))

    async def request_draw(self, participant_id: int) -> None:
        self._check_request(participant_id)
        self._transition(Phase.ARMED, f"draw requested for participant {participant_id}")
        try:
            await self._api.request_draw(participant_id, self._token)
        except Exception as exc:
            if self._phase is Phase.ARMED:
                self._transition(Phase.IDLE, "draw request rejected")
            error = exc if isinstance(exc, RequestError) else RequestError(str(exc))
            self._surface(error)
            if error is exc:
                raise
            raise error from exc

        if self._phase is Phase.ARMED:
            # Acknowledged, but the draw-start may have been lost in a reconnect.
            self._deadline.arm(ARMED_TOKEN, self._draw_deadline, self._on_armed_timeout)

    def _check_request(self, participant_id: int) -> None:
        reason = None
        if self._phase is not Phase.IDLE:
            reason = f"a draw is already in progress (phase {self._phase.name})"
        elif not self.is_host:
            reason = "only the host can start a draw"
        elif self._snapshot.find_person(participant_id) is None:
            reason = f"participant {participant_id} is not waiting for a prize"
        elif not self._snapshot.real_prizes:
            reason = "no prizes left to award"
        if reason is not None:
            error = RequestError(reason)
            self._surface(error)
            raise error

    def handle_draw_start(self, event: DrawStartEvent) -> None:
        session_id = event.session_id
        if session_id in self._finished_sessions:
            self._logger.info("Ignoring replayed draw-start for finished session %s", session_id)
            return

        if self._phase is Phase.SPINNING:
            current = self._store.current()
            if current is not None and current.session_id == session_id:
                self._logger.debug("Duplicate draw-start for %s", session_id)
                return
            self._logger.warning(
                "draw-start %s supersedes live session %s",
                session_id,
                current.session_id if current else None,
            )
            self._deadline.cancel()
            superseded = self._store.end()
            if superseded is not None:
                self._finished_sessions.append(superseded.session_id)
        elif self._phase is Phase.ARMED:
            self._deadline.cancel()
        elif self._phase in (Phase.RESOLVED, Phase.ABORTED):
            self._display.cancel()

        segments = self._resolver.wheel_segments(event.segments or self._snapshot.upcoming_prizes)
        target = event.target_prize or segments[0]
        deadline_at = dt.datetime.now(dt.timezone.utc) + dt.timedelta(seconds=self._draw_deadline)

        self._store.begin(session_id, segments, target, event.target_person, deadline_at)
        self._rotation_target = self._resolver.next_rotation(segments, target)
        self._winner = None
        self._last_error = None
        self._deadline.arm(session_id, self._draw_deadline, self._on_deadline)
        self._transition(
            Phase.SPINNING,
            f"session {session_id} -> prize {target.id} at {self._rotation_target.rotation:.1f}deg",
        )

    def handle_draw_complete(self, event: DrawCompleteEvent) -> None:
        if self._phase is not Phase.SPINNING:
            self._logger.info(
                "Ignoring draw-complete for %s while %s", event.session_id, self._phase.name
            )
            return
        if not self._belongs_to_live_session(event):
            current = self._store.current()
            self._logger.info(
                "Discarding draw-complete for %s; live session is %s",
                event.session_id,
                current.session_id if current else None,
            )
            return

        self._deadline.cancel()
        session = self._store.end()
        self._finished_sessions.append(session.session_id)
        self._winner = DrawOutcome(
            session_id=session.session_id,
            person=event.person,
            prize=event.prize,
            awarded_at=event.awarded_at,
        )
        self._transition(
            Phase.RESOLVED, f"{event.person.name} wins {event.prize.name} (session {session.session_id})"
        )
        if self._result_display > 0:
            self._display.arm(session.session_id, self._result_display, self._on_display_elapsed)

    def _belongs_to_live_session(self, event: DrawCompleteEvent) -> bool:
        if event.session_id is not None:
            return self._store.matches(event.session_id)
        # Older backends publish a bare winner record with no session id.
        current = self._store.current()
        return current is not None and current.target_prize.id == event.prize.id

    def dismiss(self) -> bool:
        if self._phase not in (Phase.RESOLVED, Phase.ABORTED):
            return False
        self._display.cancel()
        self._winner = None
        self._transition(Phase.IDLE, "result dismissed")
        return True

    def close(self) -> None:
        self._deadline.cancel()
        self._display.cancel()

    # ---------- timers ----------
    def _on_deadline(self, session_id: str) -> None:
        current = self._store.current()
        if self._phase is not Phase.SPINNING or current is None or current.session_id != session_id:
            self._logger.debug("Stale draw deadline for %s ignored", session_id)
            return

        self._store.end()
        self._finished_sessions.append(session_id)
        self._abort(ProtocolTimeoutError(session_id, self._draw_deadline), session_id)

    def _on_armed_timeout(self, token: str) -> None:
        if self._phase is not Phase.ARMED:
            return
        self._abort(ProtocolTimeoutError(None, self._draw_deadline), token)

    def _abort(self, error: ProtocolTimeoutError, token: str) -> None:
        self._transition(Phase.ABORTED, str(error))
        self._surface(error)
        self._display.arm(token, self._abort_display, self._on_display_elapsed)

    def _on_display_elapsed(self, token: str) -> None:
        if self._phase in (Phase.RESOLVED, Phase.ABORTED):
            self.dismiss()

    # ---------- helpers ----------
    def _transition(self, phase: Phase, reason: str) -> None:
        previous, self._phase = self._phase, phase
        self._logger.info("Phase %s -> %s: %s", previous.name, phase.name, reason)
        if self._on_change is not None:
            self._on_change(previous, phase)

    def _surface(self, error: DrawSyncError) -> None:
        self._last_error = error
        self._logger.warning("%s: %s", type(error).__name__, error)
        if self._on_error is not None:
            self._on_error(error)
