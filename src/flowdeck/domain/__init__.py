"""Domain models for flowdeck.

This package contains the core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from flowdeck.domain.models import (
    AgentInfo,
    AgentSpec,
    AgentUpdate,
    CommandOutput,
    CommandResultMessage,
    ControlMessage,
    EventLevel,
    EventMessage,
    ExecuteCommandMessage,
    ExecutionContext,
    ExecutionResult,
    GetStatusMessage,
    InitializationPhase,
    ProcessCategory,
    ProcessRecord,
    ProcessStatus,
    SwarmStatusMessage,
    SystemStatus,
    SystemStatusMessage,
)

__all__ = [
    "AgentInfo",
    "AgentSpec",
    "AgentUpdate",
    "CommandOutput",
    "CommandResultMessage",
    "ControlMessage",
    "EventLevel",
    "EventMessage",
    "ExecuteCommandMessage",
    "ExecutionContext",
    "ExecutionResult",
    "GetStatusMessage",
    "InitializationPhase",
    "ProcessCategory",
    "ProcessRecord",
    "ProcessStatus",
    "SwarmStatusMessage",
    "SystemStatus",
    "SystemStatusMessage",
]
