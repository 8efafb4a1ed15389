"""arq worker that runs the notification cycle on a fixed interval (every minute by default).

Runs as a separate process alongside the API. Both this cron job and the
``/api/v1/cron/notify`` endpoint call the same ``run_cycle``; the Redis
cycle lock keeps them from processing the same rows concurrently.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from arq import cron
from arq.connections import RedisSettings

from blocktime.config import get_settings
from blocktime.database import Database
from blocktime.estimation.service import create_estimation_service
from blocktime.notifications.delivery import create_notifier
from blocktime.notifications.scheduler import NotificationScheduler
from blocktime.redis_client import close_redis, create_redis

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def cycle_schedule(interval_seconds: int) -> dict[str, Any]:
    """arq cron fields that fire every ``interval_seconds``.

    Sub-minute intervals map onto seconds, longer ones onto minutes.
    """
    if interval_seconds < 60:
        return {"second": set(range(0, 60, interval_seconds))}
    return {"second": 0, "minute": set(range(0, 60, interval_seconds // 60))}


async def startup(ctx: dict[str, Any]) -> None:
    """Open database, Redis and HTTP handles and build the scheduler."""
    settings = get_settings()
    db = Database(settings.database_url)
    await db.open()
    redis_client = create_redis(settings.redis_url or DEFAULT_REDIS_URL)
    http_client = httpx.AsyncClient(timeout=settings.source_request_timeout_seconds)

    ctx["db"] = db
    ctx["lock_redis"] = redis_client
    ctx["http_client"] = http_client
    ctx["scheduler"] = NotificationScheduler(
        db,
        create_estimation_service(http_client, settings),
        create_notifier(http_client, settings),
        redis_client=redis_client,
        due_batch_size=settings.due_batch_size,
        reconcile_batch_size=settings.reconcile_batch_size,
        lock_ttl_seconds=settings.cycle_lock_ttl_seconds,
    )
    logger.info("Notification worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Close everything opened in startup."""
    await ctx["http_client"].aclose()
    await close_redis(ctx["lock_redis"])
    await ctx["db"].close()
    logger.info("Notification worker stopped")


async def run_notification_cycle(ctx: dict[str, Any]) -> dict[str, Any]:
    """One notification cycle; item failures are reported, not raised."""
    scheduler: NotificationScheduler = ctx["scheduler"]
    result = await scheduler.run_cycle()
    if result.skipped:
        logger.info("Notification cycle skipped: another cycle holds the lock")
    else:
        failed = [r for r in result.results if r.status == "failed"]
        logger.info("Notification cycle processed %d items (%d failed)", result.processed, len(failed))
        for item in failed:
            logger.warning("Notification %s (%s) failed: %s", item.id, item.tier, item.detail)
    return result.to_dict()


class WorkerSettings:
    """arq worker settings for the notification cycle."""

    functions = [run_notification_cycle]
    cron_jobs = [
        cron(
            run_notification_cycle,
            run_at_startup=True,
            unique=True,
            **cycle_schedule(get_settings().cycle_interval_seconds),
        ),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url or DEFAULT_REDIS_URL)
    max_jobs = 1
    job_timeout = 300
