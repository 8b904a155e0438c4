from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from .api_client import ApiClient
from .channel import ChannelHandlers, PushChannelManager
from .config import ClientSettings
from .errors import DrawSyncError, RequestError
from .lifecycle import DrawLifecycle
from .resolver import TargetResolver
from .session_store import DrawSessionStore
from .transport import EventTransport, SseTransport
from .types import Connectivity, Phase


class DrawSyncClient:
    """Wires the API client, push channel and lifecycle for one viewer."""

    def __init__(
        self,
        settings: ClientSettings,
        api: Optional[ApiClient] = None,
        transport_factory: Optional[Callable[[], EventTransport]] = None,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[Phase, Phase], None]] = None,
        on_error: Optional[Callable[[DrawSyncError], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._logger = logger or logging.getLogger("drawsync.client")
        self._api = api or ApiClient(settings)
        resolver = TargetResolver(
            whole_turns=settings.wheel.whole_turns,
            jitter_ratio=settings.wheel.jitter_ratio,
            rng=rng,
        )
        self.lifecycle = DrawLifecycle(
            self._api,
            resolver,
            DrawSessionStore(),
            draw_deadline=settings.draw_deadline_seconds,
            result_display=settings.result_display_seconds,
            abort_display=settings.abort_display_seconds,
            on_change=on_change,
            on_error=on_error,
        )
        self.channel = PushChannelManager(
            transport_factory or self._sse_transport,
            reconnect_delay=settings.reconnect_delay_seconds,
        )
        self._connected = asyncio.Event()

    def _sse_transport(self) -> EventTransport:
        return SseTransport(
            self._settings.events_url,
            connect_timeout_seconds=self._settings.request_timeout_seconds,
        )

    def handlers(self) -> ChannelHandlers:
        lifecycle = self.lifecycle
        return ChannelHandlers(
            on_snapshot=lifecycle.apply_snapshot,
            on_draw_start=lifecycle.handle_draw_start,
            on_draw_complete=lifecycle.handle_draw_complete,
            on_connectivity=self._on_connectivity,
            on_server_error=lifecycle.handle_server_error,
        )

    def _on_connectivity(self, status: Connectivity) -> None:
        if status is Connectivity.RESTORED:
            self._connected.set()
        else:
            self._connected.clear()
        self.lifecycle.set_connectivity(status)

    async def wait_until_connected(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def start(self) -> None:
        try:
            await self.refresh_state()
        except RequestError as exc:
            # The push channel sends a full snapshot on connect anyway.
            self._logger.warning("Initial state unavailable: %s", exc)
        await self.channel.subscribe(self.handlers())

    async def refresh_state(self) -> None:
        self.lifecycle.apply_snapshot(await self._api.fetch_state())

    async def login(self, password: str) -> str:
        token = await self._api.login(password)
        self.lifecycle.set_token(token)
        self._logger.info("Host session active")
        return token

    async def request_draw(self, participant_id: int) -> None:
        await self.lifecycle.request_draw(participant_id)

    async def close(self) -> None:
        await self.channel.close()
        self.lifecycle.close()
        self._api.close()
