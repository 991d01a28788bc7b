"""flowdeck -- Command execution and streaming orchestrator.

This package lets a browser console drive shell and claude-flow commands
against a containerized backend. Processes are spawned and tracked by the
execution layer, their output is fanned out to every connected observer,
and free-form requests are translated into concrete commands through an
ordered rule table.
"""

__version__ = "0.1.0"
