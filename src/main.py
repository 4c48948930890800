"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Serves the CMS hook channel and the admin screens, and runs the retention
job in the background.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.admin.events import bus, emit, subscribe
from src.admin.web import router as admin_router
from src.channels.cms import hooks_router
from src.config import settings
from src.db.engine import db_lifespan
from src.integrations.collector import forward_event
from src.schemas.events import EventType, SystemEvent
from src.security.retention import retention_loop

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Logify (env=%s)", settings.environment)

    # 1. Database
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Remote collector (only if configured)
        if settings.forwarding.forward_url:
            subscribe(forward_event, event_types=[EventType.EVENT_LOGGED])
            logger.info("Collector forwarding enabled: %s", settings.forwarding.forward_url)
        else:
            logger.info("FORWARD_URL not set — collector forwarding disabled")

        # 3. Event bus
        await bus.start()
        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))

        # 4. Retention job
        retention_task = asyncio.create_task(retention_loop())
        logger.info("Retention job scheduled every %ds", settings.retention_interval_seconds)

        try:
            yield
        finally:
            # Shutdown in reverse order
            logger.info("Shutting down Logify...")

            retention_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await retention_task
            logger.info("Retention job stopped")

            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await bus.stop()
            bus.clear()

    logger.info("Logify shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Logify",
    description="Audit log for CMS lifecycle events",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(hooks_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
