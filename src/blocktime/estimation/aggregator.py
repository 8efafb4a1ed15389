"""Consensus over the three source families.

All sources are queried concurrently and treated as equally trustworthy:
the current height is the median of the surviving heights and the block
time is their plain mean. Confidence reflects how many sources survived.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from blocktime.estimation.exceptions import AllSourcesFailedError
from blocktime.estimation.sources import BlockSource, SourceResult
from blocktime.networks import Network

logger = structlog.get_logger()


class Confidence(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class AggregateEstimate:
    current_height: int
    avg_block_time_ms: float
    confidence: Confidence
    sources: dict[str, SourceResult | None] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def source_count(self) -> int:
        return sum(1 for result in self.sources.values() if result is not None)


def median_height(heights: Sequence[int]) -> int:
    """Median height; an even count yields the floor of the two middle values' mean."""
    if not heights:
        msg = "median of an empty sequence"
        raise ValueError(msg)
    ordered = sorted(heights)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


def mean(values: Sequence[float]) -> float:
    if not values:
        msg = "mean of an empty sequence"
        raise ValueError(msg)
    return sum(values) / len(values)


def grade_confidence(successes: int) -> Confidence:
    """HIGH for three or more sources, MEDIUM for two, LOW for one."""
    if successes >= 3:
        return Confidence.HIGH
    if successes == 2:
        return Confidence.MEDIUM
    if successes == 1:
        return Confidence.LOW
    msg = "confidence is undefined without any successful source"
    raise ValueError(msg)


class ConsensusAggregator:
    """Fan out to every source, wait for all to settle, reduce the survivors."""

    def __init__(self, sources: Sequence[BlockSource], source_timeout: float | None = None) -> None:
        self.sources = list(sources)
        self.source_timeout = source_timeout

    async def _run(self, source: BlockSource, network: Network) -> SourceResult:
        if self.source_timeout is None:
            return await source.current_state(network)
        return await asyncio.wait_for(source.current_state(network), timeout=self.source_timeout)

    async def aggregate(self, network: Network) -> AggregateEstimate:
        """Current height, average block time and confidence for a network.

        Raises:
            AllSourcesFailedError: If no source produced a result.
        """
        outcomes = await asyncio.gather(
            *(self._run(source, network) for source in self.sources),
            return_exceptions=True,
        )

        results: dict[str, SourceResult | None] = {}
        errors: dict[str, str] = {}
        for source, outcome in zip(self.sources, outcomes, strict=True):
            if isinstance(outcome, SourceResult):
                results[source.name] = outcome
                continue
            if isinstance(outcome, asyncio.TimeoutError):
                message = f"timed out after {self.source_timeout:g}s"
            elif isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            else:
                message = str(outcome) or type(outcome).__name__
            results[source.name] = None
            errors[source.name] = message
            logger.warning("source_failed", network=network.value, source=source.name, error=message)

        survivors = [result for result in results.values() if result is not None]
        if not survivors:
            raise AllSourcesFailedError(errors)

        estimate = AggregateEstimate(
            current_height=median_height([r.height for r in survivors]),
            avg_block_time_ms=mean([r.avg_block_time_ms for r in survivors]),
            confidence=grade_confidence(len(survivors)),
            sources=results,
            errors=errors,
        )
        logger.info(
            "estimate_aggregated",
            network=network.value,
            current_height=estimate.current_height,
            avg_block_time_ms=round(estimate.avg_block_time_ms, 2),
            confidence=estimate.confidence.value,
        )
        return estimate
