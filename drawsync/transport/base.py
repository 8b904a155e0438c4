from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import AsyncIterator, Optional


@dataclass(frozen=True)
class ServerEvent:
    """One named event as delivered by the push channel."""

    name: str
    data: str
    event_id: Optional[str] = None


class EventTransport(abc.ABC):
    """Abstract server-to-client event stream."""

    @abc.abstractmethod
    async def open(self) -> None:
        """Establish the connection.

        Implementations should raise `TransportError` when the stream
        cannot be opened.
        """

    @abc.abstractmethod
    def events(self) -> AsyncIterator[ServerEvent]:
        """Yield events until the stream ends or fails with `TransportError`."""

    async def close(self) -> None:
        """Optional hook for transports holding a live connection."""
        return None
