from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    return float(value)


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


@dataclass(frozen=True)
class WheelSettings:
    whole_turns: int = 6
    jitter_ratio: float = 0.15

    def __post_init__(self) -> None:
        if self.whole_turns < 1:
            raise ValueError("whole_turns must be at least 1")
        if not 0 <= self.jitter_ratio <= 0.3:
            raise ValueError("jitter_ratio must be between 0 and 0.3")


@dataclass(frozen=True)
class ClientSettings:
    api_base: str
    events_path: str = "/events"
    host_password: Optional[str] = None
    request_timeout_seconds: float = 10
    reconnect_delay_seconds: float = 1.5
    draw_deadline_seconds: float = 15
    result_display_seconds: float = 8
    abort_display_seconds: float = 3
    wheel: WheelSettings = WheelSettings()

    @property
    def events_url(self) -> str:
        return self.api_base.rstrip("/") + self.events_path

    def api_url(self, path: str) -> str:
        return self.api_base.rstrip("/") + path

    def copy(self, **updates) -> "ClientSettings":
        return replace(self, **updates)


def load_from_environment() -> ClientSettings:
    api_base = _require_env("DRAWSYNC_API_BASE")

    wheel = WheelSettings(
        whole_turns=_int_from_env(os.getenv("WHEEL__WHOLE_TURNS"), 6),
        jitter_ratio=_float_from_env(os.getenv("WHEEL__JITTER_RATIO"), 0.15),
    )

    return ClientSettings(
        api_base=api_base,
        events_path=os.getenv("DRAWSYNC_EVENTS_PATH", "/events"),
        host_password=os.getenv("DRAWSYNC_HOST_PASSWORD") or None,
        request_timeout_seconds=_float_from_env(os.getenv("DRAWSYNC_REQUEST_TIMEOUT_SECONDS"), 10),
        reconnect_delay_seconds=_float_from_env(os.getenv("DRAWSYNC_RECONNECT_DELAY_SECONDS"), 1.5),
        draw_deadline_seconds=_float_from_env(os.getenv("DRAWSYNC_DRAW_DEADLINE_SECONDS"), 15),
        result_display_seconds=_float_from_env(os.getenv("DRAWSYNC_RESULT_DISPLAY_SECONDS"), 8),
        abort_display_seconds=_float_from_env(os.getenv("DRAWSYNC_ABORT_DISPLAY_SECONDS"), 3),
        wheel=wheel,
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> ClientSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
