"""External-facing boundary of flowdeck.

Public API:
    GatewayContext -- Owner of the components and their registries
    CommandGateway -- Request handling shared by HTTP and WebSocket
    create_app -- FastAPI application factory
"""

from flowdeck.gateway.context import GatewayContext
from flowdeck.gateway.service import CommandGateway

__all__ = ["CommandGateway", "GatewayContext", "create_app"]


def __getattr__(name: str) -> object:
    """Lazy import for the FastAPI application factory."""
    if name == "create_app":
        from flowdeck.gateway.server import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
