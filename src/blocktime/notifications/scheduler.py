"""
Notification processing cycle.

One cycle runs two passes:

1. Due tiers: every unsent notification whose ``scheduled_for`` has passed
   is re-estimated. While the target is still ahead the watch is refreshed,
   the remaining unsent tiers are rescheduled and a progress alert goes out.
   Once the target is reached the terminal alert is sent (at most once per
   watch, guarded by ``reached_notified_at``) and every open tier is closed.
2. Reconciliation: watches with nothing left to send but no terminal alert
   yet are checked for having reached their target.

Each item runs in its own session and transaction. A failing item is
recorded in the result and rolled back; the rest of the batch continues.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import LockError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blocktime.database import Database
from blocktime.db.models import BlockWatch, Notification
from blocktime.estimation.exceptions import AlreadyReachedError
from blocktime.estimation.service import EstimationService, utcnow
from blocktime.networks import Network
from blocktime.notifications.delivery import Notifier
from blocktime.watches.tiers import REACHED, Tier, future_tier_schedule

logger = structlog.get_logger()

CYCLE_LOCK_KEY = "blocktime:notify-cycle"

SENT = "sent"
FAILED = "failed"


@dataclass(frozen=True)
class CycleItemResult:
    id: str
    tier: str
    status: str
    detail: str | None = None


@dataclass
class CycleResult:
    skipped: bool = False
    results: list[CycleItemResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "results": [asdict(r) for r in self.results],
        }


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class NotificationScheduler:
    """Drives tier alerts and the terminal "block reached" alert for all watches."""

    def __init__(
        self,
        db: Database,
        estimation: EstimationService,
        notifier: Notifier,
        redis_client: redis.Redis | None = None,
        due_batch_size: int = 50,
        reconcile_batch_size: int = 20,
        lock_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.estimation = estimation
        self.notifier = notifier
        self.redis = redis_client
        self.due_batch_size = due_batch_size
        self.reconcile_batch_size = reconcile_batch_size
        self.lock_ttl_seconds = lock_ttl_seconds
        self.clock = clock

    async def run_cycle(self) -> CycleResult:
        """Run one cycle, unless another process currently holds the cycle lock."""
        if self.redis is None:
            return await self._run_passes()

        lock = self.redis.lock(CYCLE_LOCK_KEY, timeout=self.lock_ttl_seconds, blocking=False)
        if not await lock.acquire():
            logger.info("notify_cycle_skipped", reason="lock_held")
            return CycleResult(skipped=True)
        try:
            return await self._run_passes()
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning("notify_cycle_lock_expired", ttl_seconds=self.lock_ttl_seconds)

    async def _run_passes(self) -> CycleResult:
        cycle = CycleResult()
        touched: set[str] = set()

        for notification_id in await self._due_notification_ids():
            item, watch_id = await self._process_due(notification_id)
            if item is not None:
                cycle.results.append(item)
            if watch_id is not None:
                touched.add(watch_id)

        for watch_id in await self._unfinished_watch_ids():
            if watch_id in touched:
                continue
            item = await self._reconcile(watch_id)
            if item is not None:
                cycle.results.append(item)

        logger.info(
            "notify_cycle_completed",
            processed=cycle.processed,
            failed=sum(1 for r in cycle.results if r.status == FAILED),
        )
        return cycle

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def _due_notification_ids(self) -> list[str]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Notification.id)
                .where(Notification.sent.is_(False), Notification.scheduled_for <= self.clock())
                .order_by(Notification.scheduled_for)
                .limit(self.due_batch_size)
            )
            return list(result.scalars().all())

    async def _unfinished_watch_ids(self) -> list[str]:
        """Watches with no unsent tiers, no terminal alert yet, and somewhere to send it."""
        open_tiers = (
            select(Notification.id)
            .where(Notification.watch_id == BlockWatch.id, Notification.sent.is_(False))
            .exists()
        )
        async with self.db.session() as session:
            result = await session.execute(
                select(BlockWatch.id)
                .where(
                    BlockWatch.reached_notified_at.is_(None),
                    ~open_tiers,
                    or_(BlockWatch.webhook_url.is_not(None), BlockWatch.email.is_not(None)),
                )
                .order_by(BlockWatch.estimated_time)
                .limit(self.reconcile_batch_size)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Per-item processing
    # ------------------------------------------------------------------

    async def _process_due(self, notification_id: str) -> tuple[CycleItemResult | None, str | None]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Notification)
                .where(Notification.id == notification_id)
                .options(selectinload(Notification.watch).selectinload(BlockWatch.notifications))
            )
            notification = result.scalar_one_or_none()
            if notification is None or notification.sent or notification.scheduled_for > self.clock():
                # Deleted, closed or rescheduled ahead since selection.
                return None, None

            tier = notification.tier
            watch_id = notification.watch_id
            try:
                detail = await self._deliver_due(session, notification)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.warning(
                    "notification_failed",
                    notification_id=notification_id,
                    watch_id=watch_id,
                    tier=tier,
                    error=_describe(e),
                )
                return CycleItemResult(notification_id, tier, FAILED, _describe(e)), watch_id

            logger.info("notification_sent", notification_id=notification_id, watch_id=watch_id, tier=tier)
            return CycleItemResult(notification_id, tier, SENT, detail), watch_id

    async def _deliver_due(self, session: AsyncSession, notification: Notification) -> str | None:
        watch = notification.watch
        now = self.clock()
        try:
            estimate = await self.estimation.estimate_time_for_block(Network(watch.network), watch.target_height)
        except AlreadyReachedError as reached:
            return await self._finish_watch(watch, reached.current_height, now)

        watch.current_height = estimate.current_height
        watch.estimated_time = estimate.estimated_timestamp

        # Tiers whose new time has already passed keep their old (due) time
        # and fire on a following cycle.
        schedule = future_tier_schedule(estimate.estimated_timestamp, now)
        for other in watch.notifications:
            if other.id == notification.id or other.sent:
                continue
            when = schedule.get(Tier(other.tier))
            if when is not None:
                other.scheduled_for = when

        message = self.notifier.build_message(
            watch,
            notification.tier,
            estimate.current_height,
            estimate.blocks_remaining,
            estimate.estimated_timestamp,
        )
        await self.notifier.dispatch(watch, message)

        notification.sent = True
        notification.sent_at = now
        await session.flush()
        return None

    async def _reconcile(self, watch_id: str) -> CycleItemResult | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(BlockWatch).where(BlockWatch.id == watch_id).options(selectinload(BlockWatch.notifications))
            )
            watch = result.scalar_one_or_none()
            if watch is None or watch.reached_notified_at is not None:
                return None

            try:
                detail = await self._check_reached(watch)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.warning("reconcile_failed", watch_id=watch_id, error=_describe(e))
                return CycleItemResult(watch_id, REACHED, FAILED, _describe(e))

            if detail is None:
                return None
            logger.info("watch_reached", watch_id=watch_id)
            return CycleItemResult(watch_id, REACHED, SENT, detail)

    async def _check_reached(self, watch: BlockWatch) -> str | None:
        """Finish ``watch`` if its target is reached, otherwise refresh its estimate.

        The refreshed ``estimated_time`` moves a still-ahead watch back in the
        reconciliation order so the batch window advances between cycles.
        """
        try:
            estimate = await self.estimation.estimate_time_for_block(Network(watch.network), watch.target_height)
        except AlreadyReachedError as reached:
            return await self._finish_watch(watch, reached.current_height, self.clock())
        watch.current_height = estimate.current_height
        watch.estimated_time = estimate.estimated_timestamp
        return None

    async def _finish_watch(self, watch: BlockWatch, current_height: int, now: datetime) -> str:
        """Send the terminal alert once, then close every open tier of the watch."""
        if watch.reached_notified_at is None:
            message = self.notifier.build_message(watch, REACHED, current_height, 0, now)
            await self.notifier.dispatch(watch, message)
            watch.reached_notified_at = now
            detail = "block already reached"
        else:
            detail = "block already reached; final alert previously sent"

        for notification in watch.notifications:
            if not notification.sent:
                notification.sent = True
                notification.sent_at = now
        return detail
