"""FastAPI application entry point for habitscore."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from habitscore.api.middleware.error_handler import (
    global_exception_handler,
    habitscore_exception_handler,
)
from habitscore.api.middleware.logging import StructuredLoggingMiddleware
from habitscore.api.routes.health import router as health_router
from habitscore.api.routes.records import router as records_router
from habitscore.api.routes.schemes import router as schemes_router
from habitscore.api.routes.weekly import router as weekly_router
from habitscore.config import settings
from habitscore.shared.errors import HabitscoreError
from habitscore.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level, json_output=not settings.debug)

    logger.info(
        "habitscore_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    from habitscore.db.database import engine, init_db

    if settings.auto_create_tables:
        await init_db()

    yield

    await engine.dispose()
    logger.info("habitscore_shutting_down")


app = FastAPI(
    title="habitscore",
    description="Weekly habit scoring service",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(StructuredLoggingMiddleware)

app.add_exception_handler(HabitscoreError, habitscore_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(health_router)
app.include_router(schemes_router)
app.include_router(records_router)
app.include_router(weekly_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
