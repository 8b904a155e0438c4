"""Turn raw, possibly malformed server payloads into total records.

Nothing in here raises: a bad field becomes an empty list, a bad list item
is dropped, and an unusable event payload becomes ``None``.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import MalformedPayloadError
from .schemas import (
    DrawCompleteEvent,
    DrawStartEvent,
    Person,
    Prize,
    StateSnapshot,
    WinnerRecord,
)

logger = logging.getLogger("drawsync.normalizer")

ModelT = TypeVar("ModelT", bound=BaseModel)

_SNAPSHOT_FIELDS = (
    ("waitingPeople", "waiting_people", Person),
    ("upcomingPrizes", "upcoming_prizes", Prize),
    ("recentWinners", "recent_winners", WinnerRecord),
)


def decode_payload(raw: Any) -> Any:
    """Decode event data; anything `json` refuses yields ``None``."""
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return raw
    if raw.strip() == "":
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # ValueError also covers oversized integer literals.
        logger.warning("Discarding undecodable payload: %s", exc)
        return None


def _validate_item(model: Type[ModelT], raw: Any) -> ModelT:
    if isinstance(raw, model):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedPayloadError(f"{model.__name__} entry is not an object")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise MalformedPayloadError(f"invalid {model.__name__}: {exc.error_count()} error(s)") from exc


def _coerce_list(model: Type[ModelT], raw: Any) -> List[ModelT]:
    if not isinstance(raw, list):
        return []
    items: List[ModelT] = []
    for entry in raw:
        try:
            items.append(_validate_item(model, entry))
        except MalformedPayloadError as exc:
            logger.debug("Dropping list entry: %s", exc)
    return items


def _optional_item(model: Type[ModelT], raw: Any) -> Optional[ModelT]:
    if raw is None:
        return None
    try:
        return _validate_item(model, raw)
    except MalformedPayloadError as exc:
        logger.debug("Ignoring field: %s", exc)
        return None


def _field(payload: Mapping[str, Any], wire_key: str, attr: str) -> Any:
    if wire_key in payload:
        return payload[wire_key]
    return payload.get(attr)


def normalize_snapshot(payload: Any) -> StateSnapshot:
    if isinstance(payload, StateSnapshot):
        payload = payload.to_wire()
    if not isinstance(payload, Mapping):
        if payload is not None:
            logger.debug("Snapshot payload is %s, using empty state", type(payload).__name__)
        payload = {}

    values = {
        attr: _coerce_list(model, _field(payload, wire_key, attr))
        for wire_key, attr, model in _SNAPSHOT_FIELDS
    }
    return StateSnapshot(**values)


def _session_id(payload: Mapping[str, Any]) -> Optional[str]:
    for key in ("sessionId", "session_id", "startedAt"):
        value = payload.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value:
            return value
    return None


def _local_session_id() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def parse_draw_start(payload: Any) -> Optional[DrawStartEvent]:
    if not isinstance(payload, Mapping):
        logger.warning("draw-start payload is not an object; ignoring")
        return None

    session_id = _session_id(payload)
    if session_id is None:
        session_id = _local_session_id()
        logger.info("draw-start carried no session id; using local id %s", session_id)

    return DrawStartEvent(
        session_id=session_id,
        segments=_coerce_list(Prize, payload.get("segments")),
        target_prize=_optional_item(Prize, _field(payload, "targetPrize", "target_prize")),
        target_person=_optional_item(Person, _field(payload, "targetPerson", "target_person")),
    )


def parse_draw_complete(payload: Any) -> Optional[DrawCompleteEvent]:
    if not isinstance(payload, Mapping):
        logger.warning("draw-complete payload is not an object; ignoring")
        return None

    person = _optional_item(Person, payload.get("person"))
    prize = _optional_item(Prize, payload.get("prize"))
    if person is None or prize is None:
        logger.warning("draw-complete payload lacks a usable person or prize; ignoring")
        return None

    awarded_at = _field(payload, "awardedAt", "awarded_at")
    try:
        return DrawCompleteEvent(
            session_id=_session_id(payload),
            person=person,
            prize=prize,
            awarded_at=awarded_at,
        )
    except ValidationError:
        logger.debug("draw-complete awardedAt unparseable; dropping timestamp")
        return DrawCompleteEvent(session_id=_session_id(payload), person=person, prize=prize)
