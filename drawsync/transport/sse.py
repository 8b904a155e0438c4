from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Iterable, Iterator, List, Mapping, Optional

import requests

from ..errors import TransportError
from .base import EventTransport, ServerEvent

logger = logging.getLogger("drawsync.transport.sse")

_END_OF_STREAM = object()


def iter_stream_lines(chunks: Iterable[str]) -> Iterator[str]:
    """Split decoded chunks on LF, dropping one trailing CR per line.

    Unlike ``str.splitlines`` this keeps a CRLF that straddles two chunks
    together instead of reading it as an extra blank line.
    """
    buffer = ""
    for chunk in chunks:
        if not chunk:
            continue
        buffer += chunk
        *complete, buffer = buffer.split("\n")
        for line in complete:
            yield line[:-1] if line.endswith("\r") else line
    if buffer:
        yield buffer[:-1] if buffer.endswith("\r") else buffer


class SseParser:
    """Incremental parser for the text/event-stream line format."""

    def __init__(self) -> None:
        self._event_name = ""
        self._data: List[str] = []
        self._last_event_id: Optional[str] = None

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_event_id

    def feed(self, line: str) -> Optional[ServerEvent]:
        """Consume one line; return an event when a blank line completes one."""
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_name = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_event_id = value
        # "retry" and unknown fields are ignored; reconnect timing is fixed.
        return None

    def _dispatch(self) -> Optional[ServerEvent]:
        if not self._data:
            self._event_name = ""
            return None
        event = ServerEvent(
            name=self._event_name or "message",
            data="\n".join(self._data),
            event_id=self._last_event_id,
        )
        self._event_name = ""
        self._data = []
        return event


class SseTransport(EventTransport):
    """Server-sent events over a streaming `requests` response."""

    def __init__(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        connect_timeout_seconds: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._headers = dict(headers or {})
        self._connect_timeout = connect_timeout_seconds
        self._session = session or requests.Session()
        self._response: Optional[requests.Response] = None

    async def open(self) -> None:
        try:
            self._response = await asyncio.to_thread(self._connect)
        except requests.RequestException as exc:
            raise TransportError(f"could not open event stream {self._url}: {exc}") from exc
        logger.debug("Event stream open: %s", self._url)

    def _connect(self) -> requests.Response:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        headers.update(self._headers)
        resp = self._session.get(
            self._url,
            headers=headers,
            stream=True,
            timeout=(self._connect_timeout, None),
        )
        try:
            resp.raise_for_status()
        except requests.HTTPError:
            resp.close()
            raise
        # text/event-stream is always UTF-8; requests would guess latin-1.
        resp.encoding = "utf-8"
        return resp

    async def events(self) -> AsyncIterator[ServerEvent]:
        if self._response is None:
            raise TransportError("event stream is not open")

        lines = iter_stream_lines(self._response.iter_content(chunk_size=None, decode_unicode=True))
        parser = SseParser()
        while True:
            try:
                line = await asyncio.to_thread(next, lines, _END_OF_STREAM)
            except (requests.RequestException, OSError) as exc:
                raise TransportError(f"event stream failed: {exc}") from exc
            if line is _END_OF_STREAM:
                logger.debug("Event stream ended by server: %s", self._url)
                return
            event = parser.feed(line)
            if event is not None:
                yield event

    async def close(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            response.close()
