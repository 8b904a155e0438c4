from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import TransportError
from .normalizer import decode_payload, normalize_snapshot, parse_draw_complete, parse_draw_start
from .schemas import DrawCompleteEvent, DrawStartEvent, StateSnapshot
from .transport import EventTransport, ServerEvent
from .types import Connectivity

SNAPSHOT = "snapshot"
DRAW_START = "draw-start"
DRAW_COMPLETE = "draw-complete"
SERVER_ERROR = "error"

# Older backends publish the same events under these names.
EVENT_ALIASES = {
    "state": SNAPSHOT,
    "spin-start": DRAW_START,
    "spin-complete": DRAW_COMPLETE,
}


@dataclass
class ChannelHandlers:
    on_snapshot: Callable[[StateSnapshot], None]
    on_draw_start: Callable[[DrawStartEvent], None]
    on_draw_complete: Callable[[DrawCompleteEvent], None]
    on_connectivity: Optional[Callable[[Connectivity], None]] = None
    on_server_error: Optional[Callable[[str], None]] = None


class PushChannelManager:
    """Keeps exactly one live subscription to the backend event stream.

    A failed or finished stream is closed and reopened after a fixed delay,
    forever. Events lost while disconnected are not replayed.
    """

    def __init__(
        self,
        transport_factory: Callable[[], EventTransport],
        reconnect_delay: float = 1.5,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._reconnect_delay = reconnect_delay
        self._logger = logger or logging.getLogger("drawsync.channel")
        self._task: Optional[asyncio.Task] = None
        self._transport: Optional[EventTransport] = None
        self._connectivity = Connectivity.CONNECTING

    @property
    def connectivity(self) -> Connectivity:
        return self._connectivity

    @property
    def subscribed(self) -> bool:
        return self._task is not None and not self._task.done()

    async def subscribe(self, handlers: ChannelHandlers) -> None:
        # Drop the previous connection first so no event is delivered twice.
        await self.close()
        self._connectivity = Connectivity.CONNECTING
        self._task = asyncio.get_running_loop().create_task(self._run(handlers))

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

    async def _run(self, handlers: ChannelHandlers) -> None:
        delay = self._reconnect_delay
        while True:
            transport: Optional[EventTransport] = None
            try:
                transport = self._transport_factory()
                self._transport = transport
                await transport.open()
                self._set_connectivity(Connectivity.RESTORED, handlers)
                async for event in transport.events():
                    self._dispatch(event, handlers)
                self._logger.warning("Event stream closed by server; reconnecting in %ss", delay)
            except TransportError as exc:
                self._logger.warning("Push channel lost: %s; reconnecting in %ss", exc, delay)
            except Exception as exc:
                self._logger.exception("Push channel failed: %s", exc)

            self._set_connectivity(Connectivity.LOST, handlers)
            if transport is not None:
                if self._transport is transport:
                    self._transport = None
                await transport.close()
            await asyncio.sleep(delay)

    def _set_connectivity(self, status: Connectivity, handlers: ChannelHandlers) -> None:
        if status is self._connectivity:
            return
        self._connectivity = status
        self._logger.info("Push channel connectivity: %s", status.name)
        if handlers.on_connectivity is not None:
            self._call(handlers.on_connectivity, status)

    def _dispatch(self, event: ServerEvent, handlers: ChannelHandlers) -> None:
        name = EVENT_ALIASES.get(event.name, event.name)

        if name == SNAPSHOT:
            snapshot = self._parse(normalize_snapshot, event)
            if snapshot is not None:
                self._call(handlers.on_snapshot, snapshot)
        elif name == DRAW_START:
            start = self._parse(parse_draw_start, event)
            if start is not None:
                self._call(handlers.on_draw_start, start)
        elif name == DRAW_COMPLETE:
            complete = self._parse(parse_draw_complete, event)
            if complete is not None:
                self._call(handlers.on_draw_complete, complete)
        elif name == SERVER_ERROR:
            message = _error_message(event.data)
            self._logger.warning("Backend reported an error: %s", message)
            if handlers.on_server_error is not None:
                self._call(handlers.on_server_error, message)
        else:
            self._logger.debug("Ignoring unknown event %r", event.name)

    def _parse(self, parse: Callable, event: ServerEvent):
        # A payload that cannot be read costs one event, never the connection.
        try:
            return parse(decode_payload(event.data))
        except Exception as exc:
            self._logger.exception("Unreadable %s payload dropped: %s", event.name, exc)
            return None

    def _call(self, handler: Callable, argument) -> None:
        try:
            handler(argument)
        except Exception as exc:
            self._logger.exception("Event handler %s failed: %s", getattr(handler, "__name__", handler), exc)


def _error_message(data: str) -> str:
    stripped = data.strip()
    if stripped.startswith(("{", '"')):
        payload = decode_payload(stripped)
        if isinstance(payload, str):
            return payload
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
    return stripped
