"""Multi-step initialization of the backend.

Advances through a fixed, ordered list of setup steps. Each step is gated
on the completion signal of its action (the result of a real command)
rather than on a timer. The sequence only moves forward: a failed step
stops the run and a later ``start()`` resumes from that step.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from pydantic import BaseModel, Field

from flowdeck.domain.models import (
    CommandOutput,
    EventLevel,
    ExecutionResult,
    InitializationPhase,
    SystemStatusMessage,
)

logger = logging.getLogger(__name__)

StepAction = Callable[[], Awaitable[ExecutionResult]]
EventSink = Callable[[BaseModel], Awaitable[object]]


@dataclass(frozen=True)
class InitializationStep:
    """One setup step: a description and the action that completes it."""

    description: str
    action: StepAction | None = None


class InitializationState(BaseModel):
    """Process-wide initialization progress."""

    steps: list[str] = Field(default_factory=list)
    current_step: int = Field(default=0, ge=0)
    completed: bool = False
    last_error: str | None = None

    @property
    def phase(self) -> InitializationPhase:
        if self.completed:
            return InitializationPhase.INITIALIZED
        if self.current_step > 0 or self.last_error is not None:
            return InitializationPhase.INITIALIZING
        return InitializationPhase.NOT_INITIALIZED


class InitializationOutcome(BaseModel):
    success: bool
    message: str


class InitializationSequencer:
    """Runs the initialization steps in order, reporting each one."""

    def __init__(
        self,
        steps: Sequence[InitializationStep],
        emit: EventSink | None = None,
        source: str = "Installer",
        step_delay: float = 0.0,
    ) -> None:
        self._steps = list(steps)
        self._emit = emit
        self._source = source
        self._step_delay = step_delay
        self._state = InitializationState(steps=[s.description for s in self._steps])
        self._lock = asyncio.Lock()
        self._running = False

    @property
    def state(self) -> InitializationState:
        return self._state

    @property
    def is_completed(self) -> bool:
        return self._state.completed

    @property
    def phase(self) -> InitializationPhase:
        if self._running and not self._state.completed:
            return InitializationPhase.INITIALIZING
        return self._state.phase

    async def start(self) -> InitializationOutcome:
        """Run the remaining steps. Idempotent once completed."""
        if self._state.completed:
            return InitializationOutcome(success=True, message="Already initialized")

        async with self._lock:
            # Another caller may have finished while we waited for the lock
            if self._state.completed:
                return InitializationOutcome(success=True, message="Already initialized")
            self._running = True
            try:
                return await self._run_remaining()
            finally:
                self._running = False

    async def _run_remaining(self) -> InitializationOutcome:
        state = self._state
        logger.info(
            "Initialization starting at step %d/%d", state.current_step + 1, len(self._steps)
        )
        while state.current_step < len(self._steps):
            step = self._steps[state.current_step]
            await self._notify(step.description)
            if step.action is not None:
                result = await step.action()
                if not result.success:
                    state.last_error = result.error or "Step failed"
                    logger.error(
                        "Initialization step %r failed: %s", step.description, state.last_error
                    )
                    await self._notify(
                        f"{step.description} failed: {state.last_error}", EventLevel.ERROR
                    )
                    return InitializationOutcome(success=False, message=state.last_error)
            state.current_step += 1
            if self._step_delay:
                await asyncio.sleep(self._step_delay)

        state.completed = True
        state.last_error = None
        logger.info("Initialization complete")
        await self._notify("Initialization complete!", EventLevel.SUCCESS)
        if self._emit is not None:
            await self._emit(SystemStatusMessage(status={"initialized": True}))
        return InitializationOutcome(success=True, message="Initialized successfully")

    async def _notify(self, message: str, level: EventLevel = EventLevel.INFO) -> None:
        if self._emit is not None:
            await self._emit(CommandOutput(source=self._source, message=message, level=level))
