"""Connectivity checks for the external tools the console depends on.

These back the ``/api/test-anthropic`` and ``/api/test-claude-flow``
endpoints and report structured outcomes instead of raising.
"""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from flowdeck.config.settings import Settings
from flowdeck.domain.models import ExecutionContext, ProcessCategory
from flowdeck.execution.manager import ProcessManager

logger = logging.getLogger(__name__)


async def check_anthropic(settings: Settings) -> dict[str, Any]:
    """Send a minimal message to verify the API key and connectivity."""
    api_key = settings.anthropic_api_key.get_secret_value()
    if not api_key or api_key.startswith("sk-test"):
        return {
            "success": False,
            "error": "No valid Anthropic API key configured",
            "configured": False,
        }

    try:
        async with anthropic.AsyncAnthropic(
            api_key=api_key, timeout=settings.anthropic.timeout
        ) as client:
            await client.messages.create(
                model=settings.anthropic.model,
                max_tokens=settings.anthropic.max_tokens,
                messages=[{"role": "user", "content": "Test"}],
            )
    except anthropic.APIStatusError as e:
        logger.warning("Anthropic API check failed: %s", e)
        return {
            "success": False,
            "error": f"API error: {e.status_code} - {e.message}",
            "configured": True,
        }
    except anthropic.APIError as e:
        logger.warning("Anthropic API unreachable: %s", e)
        return {
            "success": False,
            "error": f"Connection error: {e}",
            "configured": True,
        }

    return {
        "success": True,
        "message": "Anthropic API connection successful",
        "configured": True,
    }


async def check_claude_flow(manager: ProcessManager, version_command: str) -> dict[str, Any]:
    """Run the claude-flow version command and report whether it is installed."""
    result = await manager.run(
        version_command, ExecutionContext(category=ProcessCategory.SHELL)
    )
    if result.success:
        return {
            "success": True,
            "version": (result.output or "").strip(),
            "installed": True,
        }
    return {"success": False, "error": result.error, "installed": False}
