from __future__ import annotations

from typing import Optional


class DrawSyncError(RuntimeError):
    """Base class for every recoverable failure raised by the client core."""


class TransportError(DrawSyncError):
    """The push channel connection dropped or could not be opened."""


class RequestError(DrawSyncError):
    """An HTTP call to the backend was rejected or failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ProtocolTimeoutError(DrawSyncError):
    """No draw-complete arrived for a draw before its deadline."""

    def __init__(self, session_id: Optional[str], timeout_seconds: float) -> None:
        super().__init__(
            f"draw {session_id or '<pending>'} did not complete within {timeout_seconds:g}s"
        )
        self.session_id = session_id
        self.timeout_seconds = timeout_seconds


class ConflictError(DrawSyncError):
    """A draw session was started while another one is still live."""


class MalformedPayloadError(DrawSyncError, ValueError):
    """A server payload could not be interpreted.

    The normalizer absorbs these into safe defaults; they never reach the
    caller of a public operation.
    """
