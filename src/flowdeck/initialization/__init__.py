"""Backend initialization sequence for flowdeck.

Public API:
    InitializationSequencer -- Forward-only step runner
    InitializationStep -- One described step and its action
    InitializationState -- Progress of the sequence
"""

from flowdeck.initialization.sequencer import (
    InitializationOutcome,
    InitializationSequencer,
    InitializationState,
    InitializationStep,
)

__all__ = [
    "InitializationOutcome",
    "InitializationSequencer",
    "InitializationState",
    "InitializationStep",
]
