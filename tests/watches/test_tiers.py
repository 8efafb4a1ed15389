"""Tier schedule and lifecycle state tests."""

from datetime import timedelta

from blocktime.watches.tiers import (
    REACHED,
    Tier,
    WatchState,
    future_tier_schedule,
    scheduled_for,
    tier_label,
    watch_state,
)
from conftest import NOW


class TestFutureTierSchedule:
    def test_two_days_out_schedules_every_tier(self) -> None:
        schedule = future_tier_schedule(NOW + timedelta(days=2), NOW)
        assert list(schedule) == list(Tier)
        assert schedule[Tier.ONE_DAY] == NOW + timedelta(days=1)
        assert schedule[Tier.FIVE_MINUTES] == NOW + timedelta(days=2, minutes=-5)

    def test_ten_minutes_out_schedules_only_five_minute_tier(self) -> None:
        schedule = future_tier_schedule(NOW + timedelta(minutes=10), NOW)
        assert schedule == {Tier.FIVE_MINUTES: NOW + timedelta(minutes=5)}

    def test_exact_boundary_is_excluded(self) -> None:
        """A tier whose time equals now is not in the future."""
        schedule = future_tier_schedule(NOW + timedelta(hours=1), NOW)
        assert Tier.ONE_HOUR not in schedule
        assert set(schedule) == {Tier.FIFTEEN_MINUTES, Tier.FIVE_MINUTES}

    def test_three_minutes_out_schedules_nothing(self) -> None:
        assert future_tier_schedule(NOW + timedelta(minutes=3), NOW) == {}

    def test_scheduled_for(self) -> None:
        assert scheduled_for(Tier.SIX_HOURS, NOW) == NOW - timedelta(hours=6)


class TestLabels:
    def test_tier_labels(self) -> None:
        assert tier_label(Tier.ONE_DAY.value) == "1 day"
        assert tier_label(Tier.FIFTEEN_MINUTES.value) == "15 minutes"
        assert tier_label(REACHED) == "now"
        assert tier_label("UNKNOWN") == "UNKNOWN"


class TestWatchState:
    def test_active_while_any_tier_unsent(self) -> None:
        assert watch_state(None, [True, False]) is WatchState.ACTIVE

    def test_completed_when_all_tiers_sent_without_latch(self) -> None:
        assert watch_state(None, [True, True]) is WatchState.COMPLETED

    def test_watch_without_tiers_is_completed(self) -> None:
        assert watch_state(None, []) is WatchState.COMPLETED

    def test_latch_means_reached(self) -> None:
        assert watch_state(NOW, [True]) is WatchState.REACHED
        assert watch_state(NOW, []) is WatchState.REACHED
