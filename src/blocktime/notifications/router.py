"""Cron trigger for the notification cycle."""

from typing import Any

from fastapi import APIRouter, Depends

from blocktime.auth.dependencies import require_cron_secret
from blocktime.dependencies import get_scheduler
from blocktime.notifications.scheduler import NotificationScheduler

router = APIRouter(prefix="/api/v1/cron", tags=["Notifications"])


@router.api_route("/notify", methods=["GET", "POST"], dependencies=[Depends(require_cron_secret)])
async def run_notify_cycle(
    scheduler: NotificationScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    """Process due tier alerts and reached watches once.

    External schedulers call this with ``Authorization: Bearer <cron secret>``.
    """
    result = await scheduler.run_cycle()
    return result.to_dict()
