"""Block ↔ time conversion on top of the consensus aggregate."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from blocktime.config import Settings
from blocktime.estimation.aggregator import AggregateEstimate, Confidence, ConsensusAggregator
from blocktime.estimation.exceptions import AlreadyReachedError, EstimationTimeoutError, TargetInPastError
from blocktime.estimation.sources import SourceResult, default_sources
from blocktime.networks import Network


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BlockTimeEstimate:
    current_height: int
    target_height: int
    blocks_remaining: int
    avg_block_time_ms: float
    estimated_time_ms: float
    estimated_timestamp: datetime
    sources: dict[str, SourceResult | None]
    confidence: Confidence


@dataclass(frozen=True)
class TimeBlockEstimate:
    current_height: int
    estimated_height: int
    blocks_away: int
    avg_block_time_ms: float
    target_timestamp: datetime
    time_from_now_ms: float
    sources: dict[str, SourceResult | None]
    confidence: Confidence


class EstimationService:
    """Converts target heights to times and target times to heights."""

    def __init__(
        self,
        aggregator: ConsensusAggregator,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.aggregator = aggregator
        self.clock = clock

    async def estimate_time_for_block(self, network: Network, target_height: int) -> BlockTimeEstimate:
        """When will ``target_height`` be produced?

        Raises:
            AlreadyReachedError: If the chain is already at or past the target.
            AllSourcesFailedError: If no source could be queried.
        """
        aggregate = await self.aggregator.aggregate(network)
        return self.time_for_block(aggregate, target_height)

    def time_for_block(self, aggregate: AggregateEstimate, target_height: int) -> BlockTimeEstimate:
        blocks_remaining = target_height - aggregate.current_height
        if blocks_remaining <= 0:
            raise AlreadyReachedError(target_height, aggregate.current_height)

        estimated_time_ms = blocks_remaining * aggregate.avg_block_time_ms
        return BlockTimeEstimate(
            current_height=aggregate.current_height,
            target_height=target_height,
            blocks_remaining=blocks_remaining,
            avg_block_time_ms=aggregate.avg_block_time_ms,
            estimated_time_ms=estimated_time_ms,
            estimated_timestamp=self.clock() + timedelta(milliseconds=estimated_time_ms),
            sources=aggregate.sources,
            confidence=aggregate.confidence,
        )

    async def estimate_block_for_time(
        self,
        network: Network,
        target_timestamp: datetime,
        override_avg_block_time_ms: float | None = None,
    ) -> TimeBlockEstimate:
        """Which height will exist at ``target_timestamp``?

        ``override_avg_block_time_ms`` replaces the aggregated block time for
        this computation only.

        Raises:
            TargetInPastError: If ``target_timestamp`` is not in the future.
            AllSourcesFailedError: If no source could be queried.
        """
        if target_timestamp.tzinfo is None:
            target_timestamp = target_timestamp.replace(tzinfo=timezone.utc)
        if target_timestamp <= self.clock():
            raise TargetInPastError()

        aggregate = await self.aggregator.aggregate(network)
        return self.block_for_time(aggregate, target_timestamp, override_avg_block_time_ms)

    def block_for_time(
        self,
        aggregate: AggregateEstimate,
        target_timestamp: datetime,
        override_avg_block_time_ms: float | None = None,
    ) -> TimeBlockEstimate:
        time_from_now_ms = (target_timestamp - self.clock()).total_seconds() * 1000
        if time_from_now_ms <= 0:
            raise TargetInPastError()

        avg_block_time_ms = (
            override_avg_block_time_ms if override_avg_block_time_ms is not None else aggregate.avg_block_time_ms
        )
        blocks_away = math.floor(time_from_now_ms / avg_block_time_ms)
        return TimeBlockEstimate(
            current_height=aggregate.current_height,
            estimated_height=aggregate.current_height + blocks_away,
            blocks_away=blocks_away,
            avg_block_time_ms=avg_block_time_ms,
            target_timestamp=target_timestamp,
            time_from_now_ms=time_from_now_ms,
            sources=aggregate.sources,
            confidence=aggregate.confidence,
        )

    async def estimate_time_for_block_within(
        self,
        network: Network,
        target_height: int,
        timeout: float,
    ) -> BlockTimeEstimate:
        """``estimate_time_for_block`` cancelled after ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self.estimate_time_for_block(network, target_height), timeout=timeout)
        except TimeoutError as exc:
            raise EstimationTimeoutError(timeout) from exc


def create_estimation_service(client: httpx.AsyncClient, settings: Settings) -> EstimationService:
    """Wire the three source adapters over a shared HTTP client."""
    aggregator = ConsensusAggregator(default_sources(client), source_timeout=settings.source_timeout_seconds)
    return EstimationService(aggregator)
