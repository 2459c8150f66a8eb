from __future__ import annotations
"""Storyframe - FastAPI application entry point.

Mounts the API routes and the signed storage route, configures CORS and
error handlers, and recovers interrupted jobs on startup.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storyframe import __version__
from storyframe.api.router import api_router
from storyframe.api.storage import router as storage_router
from storyframe.config import get_settings
from storyframe.database import async_session_factory, close_db, init_db
from storyframe.errors import register_exception_handlers
from storyframe.services.job_status import recover_interrupted_jobs
from storyframe.services.providers import available_providers, resolve_provider_name

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: prepare storage and DB on startup, close on shutdown."""
    logger.info("%s starting up...", settings.APP_NAME)
    logger.info("Storage backend: %s", settings.STORAGE_BACKEND)
    logger.info(
        "Image providers available: %s (default: %s)",
        ", ".join(available_providers(settings)) or "none",
        resolve_provider_name(settings),
    )

    if settings.STORAGE_BACKEND == "local":
        os.makedirs(settings.MEDIA_VOLUME, exist_ok=True)

    if settings.AUTO_CREATE_TABLES:
        await init_db()

    # Jobs still processing belonged to the previous process
    try:
        await recover_interrupted_jobs(async_session_factory)
    except Exception as e:
        logger.warning("Startup recovery failed (non-fatal): %s", e)

    yield

    await close_db()
    logger.info("%s shut down", settings.APP_NAME)


app = FastAPI(
    title="Storyframe API",
    description="Character-consistent storyboard generation: poses, scene frames and continuations",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router)
app.include_router(storage_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"service": settings.APP_NAME, "status": "running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "storage": settings.STORAGE_BACKEND,
        "providers": available_providers(settings),
    }
