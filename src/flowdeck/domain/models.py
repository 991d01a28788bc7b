"""Core domain models for the flowdeck system.

These models represent the data flowing through the orchestrator:
tracked processes and their results, the structured event messages
pushed to observers, inbound control messages from the console, and
the status snapshots returned to callers.

Wire payloads use camelCase field names (``exitCode``,
``inFlightProcessCount``); Python attributes stay snake_case. Inbound
payloads accept either spelling.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ProcessCategory(str, enum.Enum):
    """How a command is composed and how its output is labeled."""

    SHELL = "shell"
    DOMAIN = "domain"

    @classmethod
    def parse(cls, value: str | ProcessCategory) -> ProcessCategory:
        """Parse a category, accepting the legacy ``claude-flow`` name."""
        if isinstance(value, cls):
            return value
        if value == "claude-flow":
            return cls.DOMAIN
        return cls(value)


class ProcessStatus(str, enum.Enum):
    """Lifecycle status of a spawned process."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EventLevel(str, enum.Enum):
    """Severity attached to every streamed output line."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"


class InitializationPhase(str, enum.Enum):
    """System-wide initialization phase. Only forward transitions exist."""

    NOT_INITIALIZED = "not_initialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


# ---------------------------------------------------------------------------
# Process Models
# ---------------------------------------------------------------------------


class AgentSpec(WireModel):
    """Agent metadata attached to a domain process spawned as an agent."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display name of the agent")
    agent_type: str = Field(
        validation_alias=AliasChoices("agent_type", "agentType", "type"),
        serialization_alias="type",
        description="Agent role, e.g. researcher or coder",
    )
    task: str = Field(description="Task the agent was spawned for")


class ExecutionContext(BaseModel):
    """Where and how a command is executed."""

    model_config = ConfigDict(frozen=True)

    category: ProcessCategory = Field(default=ProcessCategory.SHELL)
    cwd: str | None = Field(
        default=None, description="Working directory; defaults to the workspace"
    )
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment overrides merged over os.environ"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Seconds before the process is terminated"
    )


class ProcessRecord(WireModel):
    """The tracked in-flight representation of one spawned OS process."""

    process_id: str = Field(description="Opaque id generated at spawn time")
    command: str = Field(description="Command text as submitted")
    category: ProcessCategory
    started_at: datetime = Field(default_factory=datetime.now)
    status: ProcessStatus = Field(default=ProcessStatus.RUNNING)
    pid: int | None = Field(default=None, description="OS pid once started")
    agent: AgentSpec | None = Field(default=None)


class ExecutionResult(WireModel):
    """Terminal result of a spawned command."""

    model_config = ConfigDict(frozen=True)

    success: bool
    output: str | None = None
    error: str | None = None
    exit_code: int | None = None
    process_id: str | None = None
    timed_out: bool = False
    cancelled: bool = False


# ---------------------------------------------------------------------------
# Outbound Event Messages (discriminated union)
# ---------------------------------------------------------------------------


class CommandOutput(WireModel):
    """One streamed output line or lifecycle notice."""

    model_config = ConfigDict(frozen=True)

    type: Literal["command_output"] = "command_output"
    source: str = Field(description="Label of the producer, e.g. 'claude-flow'")
    message: str = Field(description="Human-readable text")
    level: EventLevel = Field(default=EventLevel.INFO)


class SystemStatusMessage(WireModel):
    """A status snapshot pushed to observers."""

    model_config = ConfigDict(frozen=True)

    type: Literal["system_status"] = "system_status"
    status: dict[str, Any] = Field(default_factory=dict)


class AgentUpdate(WireModel):
    """Lifecycle change of an agent process."""

    model_config = ConfigDict(frozen=True)

    type: Literal["agent_update"] = "agent_update"
    agent: dict[str, Any]


class SwarmStatusMessage(WireModel):
    """Aggregate view over the in-flight domain processes."""

    model_config = ConfigDict(frozen=True)

    type: Literal["swarm_status"] = "swarm_status"
    status: dict[str, Any] = Field(default_factory=dict)


class CommandResultMessage(WireModel):
    """Terminal result sent back to the observer that requested a command."""

    model_config = ConfigDict(frozen=True)

    type: Literal["command_result"] = "command_result"
    result: ExecutionResult


EventMessage = Annotated[
    Union[
        CommandOutput,
        SystemStatusMessage,
        AgentUpdate,
        SwarmStatusMessage,
        CommandResultMessage,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Inbound Control Messages (discriminated union)
# ---------------------------------------------------------------------------


class ExecuteCommandMessage(WireModel):
    """Control message asking the gateway to run a command."""

    type: Literal["execute_command"]
    command: str
    category: ProcessCategory = Field(default=ProcessCategory.DOMAIN)
    natural_language: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> Any:
        return ProcessCategory.parse(value) if isinstance(value, str) else value


class GetStatusMessage(WireModel):
    """Control message asking for a status snapshot."""

    type: Literal["get_status"]


ControlMessage = Annotated[
    Union[ExecuteCommandMessage, GetStatusMessage],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Status / View Models
# ---------------------------------------------------------------------------


class SystemStatus(WireModel):
    """Snapshot of the system returned by the status query."""

    model_config = ConfigDict(frozen=True)

    status: str = "online"
    version: str
    initialized: bool
    phase: InitializationPhase
    uptime: float = Field(ge=0.0, description="Seconds since the gateway started")
    in_flight_process_count: int = Field(ge=0)
    connected_observer_count: int = Field(ge=0)
    api_key_configured: bool


class AgentInfo(WireModel):
    """View of an in-flight domain process presented as an agent."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str
    status: ProcessStatus
    task: str
    command: str
    start_time: datetime

    @classmethod
    def from_record(cls, record: ProcessRecord) -> AgentInfo:
        agent = record.agent
        return cls(
            id=record.process_id,
            name=agent.name if agent else f"task-{record.process_id[:6]}",
            type=agent.agent_type if agent else "task",
            status=record.status,
            task=agent.task if agent else record.command,
            command=record.command,
            start_time=record.started_at,
        )
