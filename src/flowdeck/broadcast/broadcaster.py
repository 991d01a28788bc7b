"""Fan-out of event messages to every connected observer."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from flowdeck.broadcast.base import ObserverConnection
from flowdeck.domain.models import CommandOutput, EventLevel

logger = logging.getLogger(__name__)

EVENT_LOG_LEVELS = {
    EventLevel.INFO: logging.INFO,
    EventLevel.SUCCESS: logging.INFO,
    EventLevel.WARN: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class EventBroadcaster:
    """Registry of live observers and delivery of messages to all of them.

    Delivery failures never reach the caller: a connection that is closed
    or whose write fails is dropped from the registry and the remaining
    observers still receive the message.

    Example usage::

        broadcaster = EventBroadcaster()
        broadcaster.register(WebSocketObserver(ws))
        await broadcaster.broadcast(CommandOutput(source="shell", message="hi"))
    """

    def __init__(self, event_log_name: str = "flowdeck.events") -> None:
        self._connections: list[ObserverConnection] = []
        self._event_log = logging.getLogger(event_log_name)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def connections(self) -> list[ObserverConnection]:
        return list(self._connections)

    def register(self, connection: ObserverConnection) -> None:
        if connection not in self._connections:
            self._connections.append(connection)
            logger.info("Observer connected (%d total)", len(self._connections))

    def unregister(self, connection: ObserverConnection) -> None:
        if connection in self._connections:
            self._connections.remove(connection)
            logger.info("Observer disconnected (%d total)", len(self._connections))

    async def broadcast(self, message: BaseModel) -> int:
        """Deliver a message to every registered observer.

        The message is serialized once. Returns the number of observers
        that received it.
        """
        if isinstance(message, CommandOutput):
            self._event_log.log(
                EVENT_LOG_LEVELS[message.level], "[%s] %s", message.source, message.message
            )
        payload = message.model_dump_json(by_alias=True)
        delivered = 0
        for connection in list(self._connections):
            if await self._deliver(connection, payload):
                delivered += 1
        return delivered

    async def send(self, connection: ObserverConnection, message: BaseModel) -> bool:
        """Deliver a message to a single observer."""
        return await self._deliver(connection, message.model_dump_json(by_alias=True))

    async def _deliver(self, connection: ObserverConnection, payload: str) -> bool:
        try:
            await connection.send_text(payload)
            return True
        except Exception as e:
            logger.debug("Dropping observer %r: %s", connection, e)
            self.unregister(connection)
            return False
