"""
FastAPI application entry point.

The transport layer posts each inbound message to ``/api/messages`` and
delivers whatever reply comes back. ``/status`` exposes a read-only view of
the generation setup for operators.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from shlyapa.agent.dispatch import get_dispatcher
from shlyapa.config import settings
from shlyapa.middleware.logging import TraceIdMiddleware, configure_structlog
from shlyapa.middleware.metrics import MetricsMiddleware
from shlyapa.models.api import InboundMessage, ProcessResponse, StatusResponse
from shlyapa.services.sweeper import Sweeper

# Configure structlog (replaces logging.basicConfig)
configure_structlog()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup/shutdown tasks."""
    logger.info(
        "app.startup",
        environment=settings.environment,
        enabled=settings.llm_enabled,
        provider=settings.llm_provider,
    )

    dispatcher = get_dispatcher()
    sweeper = Sweeper(
        dispatcher.rate_limiter,
        dispatcher.memory,
        interval_seconds=settings.sweep_interval_seconds,
    )
    sweeper.start()
    app.state.sweeper = sweeper

    yield

    logger.info("app.shutdown")
    await sweeper.stop()
    await dispatcher.generator.backend.close()


app = FastAPI(
    title="Shlyapa",
    description="Chat auto-reply core: triggers, throttling, memory and generation",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (order matters: last added = first executed)
app.add_middleware(MetricsMiddleware)
app.add_middleware(TraceIdMiddleware)


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": "Shlyapa",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health/live")
async def liveness_check():
    """Liveness probe. Returns 200 if process is alive."""
    return {"status": "alive"}


@app.get("/status", response_model=StatusResponse)
async def status():
    """Generation status snapshot: provider, model, reachability, triggers."""
    return await get_dispatcher().generator.status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(
        content=generate_latest().decode("utf-8"),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.post("/api/messages", response_model=ProcessResponse)
async def process_message(event: InboundMessage):
    """Decide on and generate a reply for one inbound message.

    Always answers 200; ``reply`` is null when the bot should stay silent.
    """
    reply = await get_dispatcher().handle(event)
    return ProcessResponse(reply=reply)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shlyapa.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
