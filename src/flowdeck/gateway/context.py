"""Explicit owner of the orchestrator's components and registries."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import partial

from flowdeck.broadcast.broadcaster import EventBroadcaster
from flowdeck.config.settings import Settings
from flowdeck.domain.models import ExecutionContext, ProcessCategory
from flowdeck.execution.classifier import make_classifier
from flowdeck.execution.manager import ProcessManager
from flowdeck.initialization.sequencer import InitializationSequencer, InitializationStep
from flowdeck.translator.translator import CommandTranslator


@dataclass
class GatewayContext:
    """All shared state of one gateway instance.

    The process registry lives in ``manager`` and the observer registry
    in ``broadcaster``; nothing is kept at module level, so several
    contexts can coexist (one per app or per test).
    """

    settings: Settings
    broadcaster: EventBroadcaster
    manager: ProcessManager
    translator: CommandTranslator
    sequencer: InitializationSequencer
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    @classmethod
    def from_settings(cls, settings: Settings) -> GatewayContext:
        """Wire every component from the configuration."""
        broadcaster = EventBroadcaster()
        ex = settings.execution

        domain_env = dict(ex.domain_env)
        if settings.api_key_configured:
            domain_env["ANTHROPIC_API_KEY"] = settings.anthropic_api_key.get_secret_value()

        manager = ProcessManager(
            emit=broadcaster.broadcast,
            shell=ex.shell,
            workspace=ex.workspace,
            domain_env=domain_env,
            shell_source=ex.shell_source,
            domain_source=ex.domain_source,
            system_source=ex.system_source,
            default_timeout=ex.timeout,
            kill_grace=ex.kill_grace,
            classifier=make_classifier(ex.warn_markers),
        )

        translator = CommandTranslator(
            domain_command=settings.translator.domain_command,
            direct_prefixes=settings.translator.direct_prefixes,
        )

        init = settings.initialization
        shell_context = ExecutionContext(category=ProcessCategory.SHELL)
        steps = [
            InitializationStep(
                description=step.description,
                action=partial(manager.run, step.command, shell_context) if step.command else None,
            )
            for step in init.steps
        ]
        sequencer = InitializationSequencer(
            steps,
            emit=broadcaster.broadcast,
            source=init.source,
            step_delay=init.step_delay,
        )

        return cls(
            settings=settings,
            broadcaster=broadcaster,
            manager=manager,
            translator=translator,
            sequencer=sequencer,
        )
