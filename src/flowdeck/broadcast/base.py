"""Abstract base class for observer connections.

An observer is one live duplex channel to an external client (typically
a browser console over WebSocket). The broadcaster only needs to know
whether the channel is open and how to push a serialized message down
it, so transports plug in by implementing this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ObserverConnection(ABC):
    """Abstract interface for a connection that receives broadcast events."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the connection can still accept messages."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """Push one serialized message to the client.

        Raises:
            ObserverClosedError: If the connection is closed or broken.
        """
        ...


class ObserverClosedError(Exception):
    """Raised when writing to a closed or broken observer connection."""
