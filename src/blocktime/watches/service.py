"""Block watch persistence: subscribe, list, fetch, cancel."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blocktime.db.models import BlockWatch, Notification
from blocktime.estimation.service import BlockTimeEstimate
from blocktime.networks import Network
from blocktime.watches.tiers import future_tier_schedule

logger = structlog.get_logger()


async def create_watch(
    db: AsyncSession,
    owner_id: str,
    network: Network,
    estimate: BlockTimeEstimate,
    now: datetime,
    timezone: str = "UTC",
    title: str | None = None,
    webhook_url: str | None = None,
    email: str | None = None,
) -> BlockWatch:
    """Create a watch and one notification per tier still in the future.

    The watch and its notifications are flushed together; the caller commits.
    """
    watch = BlockWatch(
        owner_id=owner_id,
        network=network.value,
        target_height=estimate.target_height,
        current_height=estimate.current_height,
        estimated_time=estimate.estimated_timestamp,
        timezone=timezone,
        title=title or "",
        webhook_url=webhook_url,
        email=email,
        notifications=[
            Notification(tier=tier.value, scheduled_for=when, sent=False)
            for tier, when in future_tier_schedule(estimate.estimated_timestamp, now).items()
        ],
    )
    db.add(watch)
    await db.flush()
    logger.info(
        "watch_created",
        watch_id=watch.id,
        network=network.value,
        target_height=estimate.target_height,
        tiers=[n.tier for n in watch.notifications],
    )
    return watch


async def list_watches(db: AsyncSession, owner_id: str) -> list[BlockWatch]:
    """Owner's watches, newest first, with notifications loaded."""
    result = await db.execute(
        select(BlockWatch)
        .where(BlockWatch.owner_id == owner_id)
        .options(selectinload(BlockWatch.notifications))
        .order_by(BlockWatch.created_at.desc())
    )
    return list(result.scalars().all())


async def get_watch(db: AsyncSession, owner_id: str, watch_id: str) -> BlockWatch | None:
    result = await db.execute(
        select(BlockWatch)
        .where(BlockWatch.id == watch_id, BlockWatch.owner_id == owner_id)
        .options(selectinload(BlockWatch.notifications))
    )
    return result.scalar_one_or_none()


async def delete_watch(db: AsyncSession, owner_id: str, watch_id: str) -> bool:
    """Cancel a watch. Returns False if the owner has no such watch."""
    result = await db.execute(
        select(BlockWatch.id).where(BlockWatch.id == watch_id, BlockWatch.owner_id == owner_id)
    )
    if result.scalar_one_or_none() is None:
        return False

    await db.execute(delete(Notification).where(Notification.watch_id == watch_id))
    await db.execute(delete(BlockWatch).where(BlockWatch.id == watch_id))
    await db.flush()
    logger.info("watch_deleted", watch_id=watch_id)
    return True
