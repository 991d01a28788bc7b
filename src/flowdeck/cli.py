"""Command-line interface for flowdeck.

Provides the main entry point for running the gateway server, executing
a single command locally with streamed output, or previewing how a
natural-language request is translated.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from flowdeck.broadcast.base import ObserverConnection

logger = logging.getLogger(__name__)

LEVEL_MARKERS = {
    "info": " ",
    "success": "+",
    "warn": "!",
    "error": "x",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="flowdeck",
        description="Command execution and streaming orchestrator",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/flowdeck.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the HTTP/WebSocket gateway")

    exec_parser = subparsers.add_parser("exec", help="Run one command with streamed output")
    exec_parser.add_argument("cmd", help="Command (or request with --translate)")
    exec_parser.add_argument(
        "--domain", action="store_true",
        help="Run as a claude-flow command in the workspace",
    )
    exec_parser.add_argument(
        "--translate", action="store_true",
        help="Translate a natural-language request before running it",
    )
    exec_parser.add_argument(
        "--timeout", type=float, default=None,
        help="Terminate the command after this many seconds",
    )

    translate_parser = subparsers.add_parser(
        "translate", help="Show the command a natural-language request maps to",
    )
    translate_parser.add_argument("text", help="Free-form request")

    status_parser = subparsers.add_parser("status", help="Query a running gateway")
    status_parser.add_argument(
        "--url", type=str, default="http://localhost:3000",
        help="Base URL of the gateway",
    )

    return parser.parse_args(argv)


class _ConsoleObserver(ObserverConnection):
    """Prints broadcast events to stdout."""

    @property
    def is_open(self) -> bool:
        return True

    async def send_text(self, data: str) -> None:
        event = json.loads(data)
        if event.get("type") != "command_output":
            return
        marker = LEVEL_MARKERS.get(event.get("level", "info"), " ")
        print(f"[{marker}] {event['source']}: {event['message']}")


async def _exec(settings, args) -> int:
    """Run one command through the gateway and print its events."""
    from flowdeck.domain.models import ProcessCategory
    from flowdeck.gateway.context import GatewayContext
    from flowdeck.gateway.service import CommandGateway

    context = GatewayContext.from_settings(settings)
    context.broadcaster.register(_ConsoleObserver())
    gateway = CommandGateway(context)

    category = ProcessCategory.DOMAIN if args.domain else ProcessCategory.SHELL
    result = await gateway.execute(
        args.cmd, category, natural_language=args.translate, timeout=args.timeout,
    )
    if result.success:
        return 0
    print(f"\nError: {result.error}", file=sys.stderr)
    return result.exit_code if result.exit_code and result.exit_code > 0 else 1


def _translate(settings, args) -> None:
    from flowdeck.translator.translator import CommandTranslator

    translator = CommandTranslator(
        domain_command=settings.translator.domain_command,
        direct_prefixes=settings.translator.direct_prefixes,
    )
    rule = translator.match(args.text)
    print(translator.translate(args.text))
    print(f"(rule: {rule.name if rule else 'default'})", file=sys.stderr)


async def _status(url: str) -> int:
    """Fetch and print the status snapshot of a running gateway."""
    import httpx

    try:
        async with httpx.AsyncClient(base_url=url.rstrip("/"), timeout=10.0) as client:
            resp = await client.get("/api/status")
            resp.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Gateway at {url} unavailable: {e}", file=sys.stderr)
        return 1
    print(json.dumps(resp.json(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the flowdeck CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from flowdeck.config.settings import load_settings
    from flowdeck.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting gateway server")
        from flowdeck.gateway.server import create_app
        import uvicorn

        app = create_app(settings)
        uvicorn.run(app, host=settings.server.host, port=settings.server.port)

    elif args.command == "exec":
        sys.exit(asyncio.run(_exec(settings, args)))

    elif args.command == "translate":
        _translate(settings, args)

    elif args.command == "status":
        sys.exit(asyncio.run(_status(args.url)))


if __name__ == "__main__":
    main()
