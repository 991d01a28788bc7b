"""Process execution for flowdeck.

Spawns shell and domain commands, streams their output as structured
events, and resolves a terminal result for each process.

Public API:
    ProcessManager -- Spawns and tracks processes
    ProcessHandle -- Pending result of one spawned process
    classify_line -- Severity classifier for output lines
"""

from flowdeck.execution.classifier import classify_line, make_classifier
from flowdeck.execution.manager import ProcessHandle, ProcessManager

__all__ = ["ProcessHandle", "ProcessManager", "classify_line", "make_classifier"]
