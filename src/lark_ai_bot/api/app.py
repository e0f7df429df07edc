"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lark_ai_bot._version import __version__
from lark_ai_bot.adapters.chat.lark import LarkAdapter
from lark_ai_bot.adapters.llm.gemini import GeminiAdapter
from lark_ai_bot.adapters.secrets import EnvCredentialProvider
from lark_ai_bot.api.webhook import create_webhook_router
from lark_ai_bot.config.schema import BotConfig
from lark_ai_bot.core.orchestrator import WorkflowOrchestrator
from lark_ai_bot.core.tasks import BackgroundTaskRunner
from lark_ai_bot.utils.logging import LogEventNames

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create adapters on startup; drain workflows and close clients on shutdown."""
    config: BotConfig = app.state.config
    adapters: list[LarkAdapter | GeminiAdapter] = []

    if app.state.orchestrator is None:
        lark = LarkAdapter(config.lark)
        gemini = GeminiAdapter(config.gemini)
        adapters = [lark, gemini]
        app.state.orchestrator = WorkflowOrchestrator(
            config,
            chat=lark,
            llm=gemini,
            credentials=EnvCredentialProvider(config.credentials),
        )

    log.info(
        LogEventNames.SERVER_STARTING,
        webhook_path=config.server.webhook_path,
        tiers=config.gemini.tiers,
    )

    try:
        yield
    finally:
        log.info(LogEventNames.SERVER_STOPPING, active_workflows=app.state.runner.active_count)
        await app.state.runner.drain(config.runtime.shutdown_timeout)
        for adapter in adapters:
            await adapter.aclose()


def create_app(
    config: BotConfig,
    orchestrator: WorkflowOrchestrator | None = None,
    runner: BackgroundTaskRunner | None = None,
) -> FastAPI:
    """Build the ASGI application.

    Args:
        config: Application configuration
        orchestrator: Pre-built orchestrator; built from config on startup if None
        runner: Background task runner; a new one if None

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Lark AI Bot",
        description="Relays Lark messages to Gemini models and replies with cards",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.runner = runner or BackgroundTaskRunner()

    @app.get("/health")
    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint."""
        stats = request.app.state.runner.stats
        return JSONResponse(
            content={"status": "ok", "active_workflows": stats["active"], "workflows": stats},
            status_code=200,
        )

    app.include_router(create_webhook_router(config.server.webhook_path))

    return app
