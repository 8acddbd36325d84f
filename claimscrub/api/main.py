"""
FastAPI Main Application
Entry point for the claim scrubbing API server
Source: https://fastapi.tiangolo.com/
Verified: 2026-10-18
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from claimscrub.api.routes import claims, health, payers
from claimscrub.core.config import get_settings
from claimscrub.db.connection import close_db_connection
from claimscrub.utils.logging import get_logger, setup_logging

settings = get_settings()

setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]  # noqa: ARG001
    """
    Application lifespan manager.

    Source: https://fastapi.tiangolo.com/advanced/events/
    """
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    logger.info(f"Debug mode: {settings.DEBUG}")

    yield

    logger.info("Shutting down application")
    await close_db_connection()
    logger.info("Database connections closed")


app = FastAPI(
    title="Claim Scrubbing API",
    description="Claim validation, denial risk scoring and submission",
    version="1.0.0",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(claims.router)
app.include_router(payers.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Claim Scrubbing API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if not settings.is_production else "disabled",
    }
