"""
SafeTrack API - Main FastAPI application.

Watches placed workers' safety status and location for families and
admins, derived from the recruitment platform's safety API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.services.safety_client import SafetyApiClient
from app.services.safety_monitor import WatchRegistry
from app.utils.logging import configure_logging

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Startup
    configure_logging(settings.log_level, settings.log_json)
    logger.info("Starting application", app_name=settings.app_name, app_env=settings.app_env)

    client = SafetyApiClient()
    registry = WatchRegistry(client)
    app.state.safety_client = client
    app.state.registry = registry

    for subject_id in settings.watch_on_startup:
        await registry.watch(subject_id)
    if settings.watch_on_startup:
        logger.info("Watching subjects from config", subjects=settings.watch_on_startup)

    yield

    # Shutdown
    logger.info("Shutting down", watched=len(registry))
    await registry.shutdown()
    await client.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Safety and location status for placed workers",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware - allow frontend apps to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js dev server
        # Add production URLs here
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "app": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


# Routers
from app.routers import admin, safety

app.include_router(safety.router, prefix="/api/safety", tags=["Safety"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
