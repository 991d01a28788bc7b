"""FastAPI HTTP + WebSocket server for the flowdeck console.

HTTP endpoints:

    GET  /api/status                  -> SystemStatus snapshot
    POST /api/execute                 <- {"command": "ls", "category": "shell", "naturalLanguage": false}
    GET  /api/processes               -> in-flight process records
    POST /api/processes/{id}/cancel   -> terminate one process
    GET  /api/agents                  -> {"agents": [...]}
    POST /api/agents/spawn            <- {"name": "R-1", "type": "researcher", "task": "..."}
    GET  /api/logs                    -> {"logs": [...]}
    POST /api/initialize              -> {"success": true, "message": "..."}
    GET  /api/test-anthropic          -> Anthropic API connectivity
    GET  /api/test-claude-flow        -> claude-flow installation check
    GET  /health                      -> {"status": "healthy", "timestamp": "..."}

WebSocket endpoint ``/ws`` accepts ``execute_command`` and ``get_status``
control messages and pushes every broadcast event.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from flowdeck import __version__
from flowdeck.broadcast.websocket import WebSocketObserver
from flowdeck.config.settings import Settings, load_settings
from flowdeck.diagnostics import check_anthropic, check_claude_flow
from flowdeck.domain.models import AgentSpec, ExecutionResult, ProcessCategory, SystemStatus
from flowdeck.gateway.context import GatewayContext
from flowdeck.gateway.service import CommandGateway

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class ExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    command: str = Field(default="", description="Command or natural-language request")
    category: ProcessCategory = Field(
        default=ProcessCategory.SHELL,
        validation_alias=AliasChoices("category", "type"),
        description="'shell' or 'domain' ('claude-flow' is accepted)",
    )
    natural_language: bool = Field(
        default=False,
        validation_alias=AliasChoices("naturalLanguage", "natural_language"),
    )
    timeout: float | None = Field(default=None, gt=0, description="Seconds before termination")

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> Any:
        return ProcessCategory.parse(value) if isinstance(value, str) else value


class InitializeResponse(BaseModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    context: GatewayContext | None = None,
) -> FastAPI:
    """Create the gateway application.

    Args:
        settings: Configuration; defaults to ``load_settings()``.
        context: Optional pre-wired context (for testing). Built from
                 the settings when omitted.
    """
    if context is None:
        context = GatewayContext.from_settings(settings or load_settings())
    settings = context.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Gateway started (workspace=%s)", settings.execution.workspace)
        yield
        await app.state.gateway.shutdown()
        logger.info("Gateway stopped")

    app = FastAPI(
        title="flowdeck Gateway",
        description="Command execution and streaming orchestrator for the flowdeck console",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.context = context
    app.state.gateway = CommandGateway(context)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/status")
    async def get_status() -> SystemStatus:
        g: CommandGateway = app.state.gateway
        return g.status()

    @app.post("/api/execute")
    async def execute_command(request: ExecuteRequest) -> ExecutionResult:
        g: CommandGateway = app.state.gateway
        if not request.command.strip():
            raise HTTPException(status_code=400, detail="Command is required")
        return await g.execute(
            request.command,
            request.category,
            request.natural_language,
            timeout=request.timeout,
        )

    @app.get("/api/processes")
    async def list_processes() -> dict[str, list[dict[str, Any]]]:
        g: CommandGateway = app.state.gateway
        return {"processes": [r.to_wire() for r in g.context.manager.processes]}

    @app.post("/api/processes/{process_id}/cancel")
    async def cancel_process(process_id: str) -> dict[str, Any]:
        g: CommandGateway = app.state.gateway
        if not g.cancel(process_id):
            raise HTTPException(status_code=404, detail=f"No running process {process_id}")
        return {"success": True, "processId": process_id}

    @app.get("/api/agents")
    async def list_agents() -> dict[str, list[dict[str, Any]]]:
        g: CommandGateway = app.state.gateway
        return {"agents": [agent.to_wire() for agent in g.agents()]}

    @app.post("/api/agents/spawn")
    async def spawn_agent(request: AgentSpec) -> ExecutionResult:
        g: CommandGateway = app.state.gateway
        return await g.spawn_agent(request)

    @app.get("/api/logs")
    async def get_logs() -> dict[str, list[str]]:
        g: CommandGateway = app.state.gateway
        return {"logs": await g.logs()}

    @app.post("/api/initialize")
    async def initialize() -> InitializeResponse:
        g: CommandGateway = app.state.gateway
        outcome = await g.initialize()
        return InitializeResponse(success=outcome.success, message=outcome.message)

    @app.get("/api/test-anthropic")
    async def test_anthropic() -> dict[str, Any]:
        return await check_anthropic(settings)

    @app.get("/api/test-claude-flow")
    async def test_claude_flow() -> dict[str, Any]:
        g: CommandGateway = app.state.gateway
        return await check_claude_flow(g.context.manager, settings.translator.version_command)

    @app.websocket("/ws")
    async def event_stream(websocket: WebSocket) -> None:
        g: CommandGateway = app.state.gateway
        await websocket.accept()
        observer = WebSocketObserver(websocket)
        await g.connect(observer)
        logger.info("WebSocket client connected")
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    logger.warning("Discarding binary WebSocket message")
                    continue
                await g.handle_message(observer, text)
        except WebSocketDisconnect:
            pass
        finally:
            g.disconnect(observer)
            logger.info("WebSocket client disconnected")

    static_dir = settings.server.static_dir
    if static_dir and Path(static_dir).is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="console")

    return app


def main() -> None:
    """Entry point for running the gateway server standalone."""
    from flowdeck.utils.logging import setup_logging

    settings = load_settings()
    setup_logging(settings.logging)
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
