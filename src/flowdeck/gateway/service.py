"""Request handling behind the HTTP and WebSocket surfaces.

``CommandGateway`` composes the translator, process manager, sequencer
and broadcaster. The FastAPI routes stay thin and delegate here, which
keeps the behavior testable without a server.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections import deque
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from flowdeck import __version__
from flowdeck.broadcast.base import ObserverConnection
from flowdeck.domain.models import (
    AgentInfo,
    AgentSpec,
    AgentUpdate,
    CommandResultMessage,
    ControlMessage,
    ExecuteCommandMessage,
    ExecutionContext,
    ExecutionResult,
    GetStatusMessage,
    ProcessCategory,
    SwarmStatusMessage,
    SystemStatus,
    SystemStatusMessage,
)
from flowdeck.gateway.context import GatewayContext
from flowdeck.initialization.sequencer import InitializationOutcome

logger = logging.getLogger(__name__)

_CONTROL_MESSAGE = TypeAdapter(ControlMessage)

NO_LOGS_MESSAGE = "No logs available yet"


class CommandGateway:
    """The external-facing boundary of the orchestrator."""

    def __init__(self, context: GatewayContext) -> None:
        self._context = context
        self._background: set[asyncio.Task[None]] = set()

    @property
    def context(self) -> GatewayContext:
        return self._context

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def prepare(
        self,
        command: str,
        category: ProcessCategory,
        natural_language: bool = False,
    ) -> tuple[str, ProcessCategory]:
        """Translate the command when needed and settle its category.

        Translation runs when explicitly requested, or for domain
        commands that are not already a direct invocation.
        """
        translator = self._context.translator
        if natural_language or (
            category is ProcessCategory.DOMAIN and not translator.looks_like_invocation(command)
        ):
            translated = translator.translate(command)
            if translated != command:
                logger.info("Translated %r -> %s", command, translated)
            command = translated
        if translator.invokes_domain_tool(command):
            category = ProcessCategory.DOMAIN
        return command, category

    async def execute(
        self,
        command: str,
        category: ProcessCategory = ProcessCategory.SHELL,
        natural_language: bool = False,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Run a command and wait for its terminal result."""
        command, category = self.prepare(command, category, natural_language)
        logger.info("Executing %s command: %s", category.value, command)
        return await self._run(command, ExecutionContext(category=category, timeout=timeout))

    async def spawn_agent(self, agent: AgentSpec) -> ExecutionResult:
        """Spawn a hive-mind agent for a task."""
        command = (
            f"{self._context.translator.domain_command} hive-mind spawn {shlex.quote(agent.task)}"
            f" --name {shlex.quote(agent.name)} --type {shlex.quote(agent.agent_type)} --claude"
        )
        logger.info("Spawning %s agent %r", agent.agent_type, agent.name)
        return await self._run(command, ExecutionContext(category=ProcessCategory.DOMAIN), agent)

    def cancel(self, process_id: str) -> bool:
        return self._context.manager.cancel(process_id)

    async def _run(
        self,
        command: str,
        context: ExecutionContext,
        agent: AgentSpec | None = None,
    ) -> ExecutionResult:
        broadcaster = self._context.broadcaster
        handle = await self._context.manager.spawn(command, context, agent)
        tracked = context.category is ProcessCategory.DOMAIN

        if tracked:
            if agent is not None:
                await broadcaster.broadcast(
                    AgentUpdate(agent=AgentInfo.from_record(handle.record).to_wire())
                )
            await self._broadcast_swarm_status()

        result = await handle.wait()

        if tracked:
            if agent is not None:
                await broadcaster.broadcast(
                    AgentUpdate(agent=AgentInfo.from_record(handle.record).to_wire())
                )
            await self._broadcast_swarm_status()
        return result

    async def _broadcast_swarm_status(self) -> None:
        agents = self.agents()
        await self._context.broadcaster.broadcast(
            SwarmStatusMessage(
                status={
                    "activeAgents": len(agents),
                    "agents": [agent.to_wire() for agent in agents],
                }
            )
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self) -> SystemStatus:
        ctx = self._context
        return SystemStatus(
            version=__version__,
            initialized=ctx.sequencer.is_completed,
            phase=ctx.sequencer.phase,
            uptime=ctx.uptime,
            in_flight_process_count=ctx.manager.in_flight_count,
            connected_observer_count=ctx.broadcaster.connection_count,
            api_key_configured=ctx.settings.api_key_configured,
        )

    def agents(self) -> list[AgentInfo]:
        """In-flight domain processes presented as agents."""
        return [
            AgentInfo.from_record(record)
            for record in self._context.manager.processes
            if record.category is ProcessCategory.DOMAIN
        ]

    async def logs(self, limit: int | None = None) -> list[str]:
        """Return the last lines of the persisted log file."""
        config = self._context.settings.logging
        limit = limit or config.tail_lines
        if not config.file:
            return [NO_LOGS_MESSAGE]
        path = Path(config.file)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _tail, path, limit)

    async def initialize(self) -> InitializationOutcome:
        return await self._context.sequencer.start()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    async def connect(self, observer: ObserverConnection) -> None:
        """Register an observer and push it the current status."""
        broadcaster = self._context.broadcaster
        broadcaster.register(observer)
        await broadcaster.send(observer, SystemStatusMessage(status=self.status().to_wire()))

    def disconnect(self, observer: ObserverConnection) -> None:
        self._context.broadcaster.unregister(observer)

    async def handle_message(self, observer: ObserverConnection, raw: str) -> None:
        """Dispatch one inbound control message.

        Malformed messages are logged and discarded; the connection is
        left open and nothing is sent back.
        """
        try:
            message = _CONTROL_MESSAGE.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed control message: %s", e.errors()[:1])
            return

        if isinstance(message, GetStatusMessage):
            await self._context.broadcaster.send(
                observer, SystemStatusMessage(status=self.status().to_wire())
            )
        elif isinstance(message, ExecuteCommandMessage):
            if not message.command.strip():
                logger.warning("Discarding execute_command without a command")
                return
            task = asyncio.create_task(self._execute_for(observer, message))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _execute_for(
        self, observer: ObserverConnection, message: ExecuteCommandMessage
    ) -> None:
        result = await self.execute(
            message.command, message.category, message.natural_language
        )
        await self._context.broadcaster.send(observer, CommandResultMessage(result=result))

    async def shutdown(self) -> None:
        """Stop background work and terminate in-flight processes."""
        for task in list(self._background):
            task.cancel()
        await self._context.manager.shutdown()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)


def _tail(path: Path, limit: int) -> list[str]:
    if not path.exists():
        return [NO_LOGS_MESSAGE]
    with open(path, encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=limit)]
