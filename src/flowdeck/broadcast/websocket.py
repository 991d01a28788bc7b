"""WebSocket observer backed by a Starlette/FastAPI ``WebSocket``."""

from __future__ import annotations

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from flowdeck.broadcast.base import ObserverClosedError, ObserverConnection


class WebSocketObserver(ObserverConnection):
    """Adapts an accepted FastAPI WebSocket to the observer interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    @property
    def websocket(self) -> WebSocket:
        return self._websocket

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        if not self.is_open:
            raise ObserverClosedError("WebSocket is closed")
        try:
            await self._websocket.send_text(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise ObserverClosedError(f"WebSocket send failed: {e}") from e

    def __repr__(self) -> str:
        client = self._websocket.client
        peer = f"{client.host}:{client.port}" if client else "unknown"
        return f"WebSocketObserver({peer})"
