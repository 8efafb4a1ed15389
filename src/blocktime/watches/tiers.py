"""Notification tiers and watch lifecycle states."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import datetime, timedelta


class Tier(str, enum.Enum):
    ONE_DAY = "ONE_DAY"
    SIX_HOURS = "SIX_HOURS"
    ONE_HOUR = "ONE_HOUR"
    FIFTEEN_MINUTES = "FIFTEEN_MINUTES"
    FIVE_MINUTES = "FIVE_MINUTES"


# Terminal pseudo-tier; never stored as a notification row.
REACHED = "REACHED"

TIER_OFFSETS: dict[Tier, timedelta] = {
    Tier.ONE_DAY: timedelta(days=1),
    Tier.SIX_HOURS: timedelta(hours=6),
    Tier.ONE_HOUR: timedelta(hours=1),
    Tier.FIFTEEN_MINUTES: timedelta(minutes=15),
    Tier.FIVE_MINUTES: timedelta(minutes=5),
}

TIER_LABELS: dict[str, str] = {
    Tier.ONE_DAY.value: "1 day",
    Tier.SIX_HOURS.value: "6 hours",
    Tier.ONE_HOUR.value: "1 hour",
    Tier.FIFTEEN_MINUTES.value: "15 minutes",
    Tier.FIVE_MINUTES.value: "5 minutes",
    REACHED: "now",
}


def scheduled_for(tier: Tier, estimated_time: datetime) -> datetime:
    return estimated_time - TIER_OFFSETS[tier]


def future_tier_schedule(estimated_time: datetime, now: datetime) -> dict[Tier, datetime]:
    """Tiers whose alert time is still strictly after ``now``, in tier order."""
    schedule: dict[Tier, datetime] = {}
    for tier in Tier:
        when = scheduled_for(tier, estimated_time)
        if when > now:
            schedule[tier] = when
    return schedule


def tier_label(tier: str) -> str:
    return TIER_LABELS.get(tier, tier)


class WatchState(str, enum.Enum):
    ACTIVE = "active"
    REACHED = "reached"
    COMPLETED = "completed"


def watch_state(reached_notified_at: datetime | None, sent_flags: Iterable[bool]) -> WatchState:
    """Derive the lifecycle state of a watch.

    REACHED once the latch is set; COMPLETED when every tier alert has gone
    out but the target has not been confirmed yet; ACTIVE otherwise.
    """
    if reached_notified_at is not None:
        return WatchState.REACHED
    if all(sent_flags):
        return WatchState.COMPLETED
    return WatchState.ACTIVE
