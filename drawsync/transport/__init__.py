from .base import EventTransport, ServerEvent
from .sse import SseParser, SseTransport

__all__ = [
    "EventTransport",
    "ServerEvent",
    "SseParser",
    "SseTransport",
]
