"""
TableQueue API - Main FastAPI application.

Walk-in queue engine for restaurant front-of-house: ticket lifecycle,
per-size-band positions and wait-time estimates.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tablequeue.config import get_settings
from tablequeue.database import init_db
from tablequeue.services.errors import QueueError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tablequeue")

# Global reference to the visit sync task
_visit_sync_task: Optional[asyncio.Task] = None


async def _run_visit_sync() -> None:
    """Periodically record customer visits that seating could not record."""
    from tablequeue.database import async_session_maker
    from tablequeue.services.queue_service import sync_pending_visits

    while True:
        async with async_session_maker() as db:
            try:
                await sync_pending_visits(db)
            except Exception:
                logger.exception("Visit sync: run failed")
        await asyncio.sleep(settings.visit_sync_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    global _visit_sync_task

    # Startup
    logger.info("Starting %s in %s mode...", settings.app_name, settings.app_env)
    await init_db()
    logger.info("Database initialized.")

    if settings.enable_visit_sync:
        logger.info("Starting visit sync (every %ss)...", settings.visit_sync_interval_seconds)
        _visit_sync_task = asyncio.create_task(_run_visit_sync())
    else:
        logger.info("Visit sync: Disabled by config")

    yield

    # Shutdown
    logger.info("Shutting down...")

    if _visit_sync_task and not _visit_sync_task.done():
        logger.info("Stopping visit sync...")
        _visit_sync_task.cancel()
        try:
            await _visit_sync_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title=settings.app_name,
    description="Walk-in queue engine for restaurants",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware - allow the dashboard and status page to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QueueError)
async def queue_error_handler(request: Request, exc: QueueError):
    """Map queue domain errors to JSON with their status and code."""
    logger.info(
        "%s %s -> %s %s: %s",
        request.method, request.url.path, exc.status_code, exc.code, exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
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
from tablequeue.routers import admin, queue, restaurants

app.include_router(restaurants.router, prefix="/api/restaurants", tags=["Restaurants"])
app.include_router(queue.router, prefix="/api/queue", tags=["Queue"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
