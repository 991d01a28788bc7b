"""Logging setup utilities for flowdeck.

Configures logging for the entire application based on the logging
configuration settings. The optional log file doubles as the
append-only log served by the ``/api/logs`` endpoint.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from flowdeck.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the flowdeck application.

    Sets up the root ``flowdeck`` logger with the specified level, format,
    and optional file handler. Calling it again replaces the handlers
    installed by the previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output, ``logs/flowdeck.log``).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("flowdeck")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if config.file:
        path = Path(config.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.info("Logging initialized at %s level", config.level)
