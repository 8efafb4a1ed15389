"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI

from blocktime.config import get_settings
from blocktime.database import Database
from blocktime.estimation.router import router as estimation_router
from blocktime.estimation.service import create_estimation_service
from blocktime.health.router import router as health_router
from blocktime.middleware import setup_middleware
from blocktime.notifications.delivery import create_notifier
from blocktime.notifications.router import router as notifications_router
from blocktime.notifications.scheduler import NotificationScheduler
from blocktime.redis_client import close_redis, create_redis
from blocktime.watches.router import router as watches_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database, Redis and HTTP handles; build services over them."""
    settings = get_settings()

    db = Database(settings.database_url)
    await db.open()
    redis = create_redis(settings.redis_url) if settings.redis_url else None
    http_client = httpx.AsyncClient(timeout=settings.source_request_timeout_seconds)

    estimation = create_estimation_service(http_client, settings)
    app.state.db = db
    app.state.redis = redis
    app.state.http_client = http_client
    app.state.estimation = estimation
    app.state.scheduler = NotificationScheduler(
        db,
        estimation,
        create_notifier(http_client, settings),
        redis_client=redis,
        due_batch_size=settings.due_batch_size,
        reconcile_batch_size=settings.reconcile_batch_size,
        lock_ttl_seconds=settings.cycle_lock_ttl_seconds,
    )
    logger.info("app_started", environment=settings.environment, redis=redis is not None)

    try:
        yield
    finally:
        await http_client.aclose()
        await close_redis(redis)
        await db.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Block to Time API",
        description="Block height to wall-clock time estimation and block watch alerts for XRPL EVM networks",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(estimation_router)
    app.include_router(watches_router)
    app.include_router(notifications_router)

    return app


app = create_app()
