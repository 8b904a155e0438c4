from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional


class TimeoutSupervisor:
    """A single re-armable deadline on the event loop.

    The token passed to ``arm`` is handed back to ``on_fire`` so the owner
    can ignore a timer that outlived the session it was guarding.
    """

    def __init__(
        self,
        name: str = "deadline",
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._name = name
        self._loop = loop
        self._logger = logger or logging.getLogger("drawsync.timeout")
        self._handle: Optional[asyncio.TimerHandle] = None
        self._token: Optional[str] = None

    @property
    def armed_token(self) -> Optional[str]:
        return self._token

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, token: str, delay: float, on_fire: Callable[[str], None]) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._token = token
        self._handle = loop.call_later(delay, self._fire, token, on_fire)
        self._logger.debug("%s armed for %s (%.2fs)", self._name, token, delay)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._logger.debug("%s cancelled for %s", self._name, self._token)
        self._handle = None
        self._token = None

    def _fire(self, token: str, on_fire: Callable[[str], None]) -> None:
        self._handle = None
        self._token = None
        self._logger.debug("%s fired for %s", self._name, token)
        on_fire(token)
