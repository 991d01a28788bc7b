"""Shared test fixtures for the flowdeck test suite.

Provides common fixtures used across unit tests: settings pointing at a
temporary workspace, a recording observer, and wired-up components that
spawn real processes through ``/bin/sh``.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from flowdeck.broadcast.base import ObserverClosedError, ObserverConnection
from flowdeck.broadcast.broadcaster import EventBroadcaster
from flowdeck.config.settings import (
    ExecutionConfig,
    InitializationConfig,
    InitStepConfig,
    LoggingConfig,
    Settings,
)
from flowdeck.execution.manager import ProcessManager
from flowdeck.gateway.context import GatewayContext
from flowdeck.gateway.service import CommandGateway


# ---------------------------------------------------------------------------
# Observer Fixtures
# ---------------------------------------------------------------------------


class RecordingObserver(ObserverConnection):
    """Observer that keeps every payload it receives."""

    def __init__(self, open_: bool = True, fail: bool = False) -> None:
        self._open = open_
        self._fail = fail
        self.payloads: list[str] = []
        self.attempts = 0

    @property
    def is_open(self) -> bool:
        return self._open

    async def send_text(self, data: str) -> None:
        self.attempts += 1
        if not self._open:
            raise ObserverClosedError("closed")
        if self._fail:
            raise ConnectionResetError("broken pipe")
        self.payloads.append(data)

    def close(self) -> None:
        self._open = False

    @property
    def messages(self) -> list[dict]:
        return [json.loads(p) for p in self.payloads]

    def outputs(self, source: str | None = None) -> list[dict]:
        """The command_output messages, optionally filtered by source."""
        return [
            m for m in self.messages
            if m["type"] == "command_output" and (source is None or m["source"] == source)
        ]


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


# ---------------------------------------------------------------------------
# Component Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def settings(workspace: Path, tmp_path: Path) -> Settings:
    """Settings with a temp workspace, /bin/sh and instant init steps."""
    return Settings(
        execution=ExecutionConfig(shell="/bin/sh", workspace=str(workspace), kill_grace=0.5),
        initialization=InitializationConfig(
            steps=[
                InitStepConfig(description="Checking shell...", command="true"),
                InitStepConfig(description="Preparing directories...", command="mkdir -p logs"),
                InitStepConfig(description="Finishing up..."),
            ]
        ),
        logging=LoggingConfig(file=str(tmp_path / "logs" / "flowdeck.log")),
    )


@pytest.fixture
def broadcaster(observer: RecordingObserver) -> EventBroadcaster:
    b = EventBroadcaster()
    b.register(observer)
    return b


@pytest.fixture
def manager(broadcaster: EventBroadcaster, workspace: Path) -> ProcessManager:
    return ProcessManager(
        emit=broadcaster.broadcast,
        shell="/bin/sh",
        workspace=str(workspace),
        domain_env={"NODE_ENV": "test"},
        kill_grace=0.5,
    )


@pytest.fixture
def context(settings: Settings) -> GatewayContext:
    return GatewayContext.from_settings(settings)


@pytest.fixture
def gateway(context: GatewayContext) -> CommandGateway:
    return CommandGateway(context)
