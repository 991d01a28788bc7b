"""Event broadcasting for flowdeck.

Keeps the registry of live observer connections and delivers structured
event messages to all of them.

Public API:
    EventBroadcaster -- Observer registry and fan-out
    ObserverConnection -- Abstract base class for observers
    WebSocketObserver -- Observer backed by a FastAPI WebSocket
"""

from flowdeck.broadcast.base import ObserverClosedError, ObserverConnection
from flowdeck.broadcast.broadcaster import EventBroadcaster

__all__ = [
    "EventBroadcaster",
    "ObserverClosedError",
    "ObserverConnection",
    "WebSocketObserver",
]


def __getattr__(name: str) -> type:
    """Lazy import for the WebSocket adapter, which requires FastAPI."""
    if name == "WebSocketObserver":
        from flowdeck.broadcast.websocket import WebSocketObserver
        return WebSocketObserver
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
