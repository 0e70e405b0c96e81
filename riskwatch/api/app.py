# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI application for the RiskWatch operator API.

Run with:
    uvicorn riskwatch.api.app:app --host 0.0.0.0 --port 34100
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from riskwatch import __version__
from riskwatch.api.routes import health, metrics
from riskwatch.api.v1 import router as v1_router
from riskwatch.core.config import get_settings
from riskwatch.infrastructure.background.broker import setup_dramatiq, shutdown_dramatiq
from riskwatch.infrastructure.background.scheduler import start_scheduler, stop_scheduler
from riskwatch.infrastructure.database.connection import close_database, init_database
from riskwatch.infrastructure.notifications.channels.push import create_push_channel
from riskwatch.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes and cleans up:
    - Database connections
    - Real-time push channel
    - Dramatiq broker
    - APScheduler daily risk scan

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting RiskWatch API (environment: %s)", settings.environment)

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        logger.info("Database connection initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    app.state.push_channel = create_push_channel(settings)

    try:
        setup_dramatiq()
        logger.info("Dramatiq broker initialized")
    except Exception as e:
        logger.warning("Failed to setup Dramatiq: %s", str(e))

    if settings.risk_scan.scheduler_enabled:
        try:
            await start_scheduler(settings)
            logger.info("Scheduler started")
        except Exception as e:
            logger.warning("Failed to start scheduler: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await stop_scheduler()
    except Exception as e:
        logger.warning("Error stopping scheduler: %s", str(e))

    try:
        shutdown_dramatiq()
    except Exception as e:
        logger.warning("Error shutting down Dramatiq: %s", str(e))

    try:
        await app.state.push_channel.close()
    except Exception as e:
        logger.warning("Error closing push channel: %s", str(e))

    try:
        await close_database()
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down RiskWatch API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="RiskWatch API",
        description="At-risk student detection and notification",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(metrics.router, tags=["Metrics"])
    app.include_router(v1_router)

    return app


app = create_app()
