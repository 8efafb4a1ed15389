"""Estimation service tests: block to time and time to block."""

import asyncio
from datetime import timedelta

import pytest

from blocktime.estimation.exceptions import (
    AllSourcesFailedError,
    AlreadyReachedError,
    EstimationErrorKind,
    EstimationTimeoutError,
    TargetInPastError,
)
from blocktime.estimation.service import EstimationService
from blocktime.networks import Network
from conftest import NOW, FakeAggregator

NET = Network.XRPL_EVM_MAINNET


class TestTimeForBlock:
    @pytest.mark.asyncio
    async def test_future_block(self, aggregator: FakeAggregator, estimation: EstimationService) -> None:
        """Height 100 at 3s/block: block 110 is 10 blocks and 30s away."""
        aggregator.current_height = 100
        aggregator.avg_block_time_ms = 3000.0

        estimate = await estimation.estimate_time_for_block(NET, 110)

        assert estimate.current_height == 100
        assert estimate.target_height == 110
        assert estimate.blocks_remaining == 10
        assert estimate.estimated_time_ms == 30_000
        assert estimate.estimated_timestamp == NOW + timedelta(seconds=30)
        assert set(estimate.sources) == {"evm_rpc", "tendermint_rpc", "cosmos_rest"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [100, 99, 1])
    async def test_reached_block_raises(
        self, aggregator: FakeAggregator, estimation: EstimationService, target: int
    ) -> None:
        aggregator.current_height = 100
        with pytest.raises(AlreadyReachedError) as exc_info:
            await estimation.estimate_time_for_block(NET, target)
        assert exc_info.value.kind is EstimationErrorKind.ALREADY_REACHED
        assert exc_info.value.current_height == 100
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_source_exhaustion_propagates(
        self, aggregator: FakeAggregator, estimation: EstimationService
    ) -> None:
        aggregator.fail_all()
        with pytest.raises(AllSourcesFailedError):
            await estimation.estimate_time_for_block(NET, 10**9)

    @pytest.mark.asyncio
    async def test_bounded_variant_times_out(self, estimation: EstimationService) -> None:
        class SlowAggregator(FakeAggregator):
            async def aggregate(self, network: Network):  # noqa: ANN201
                await asyncio.sleep(5)
                return await super().aggregate(network)

        estimation.aggregator = SlowAggregator()  # type: ignore[assignment]
        with pytest.raises(EstimationTimeoutError) as exc_info:
            await estimation.estimate_time_for_block_within(NET, 10**9, timeout=0.05)
        assert exc_info.value.kind is EstimationErrorKind.TIMEOUT
        assert exc_info.value.status_code == 504


class TestBlockForTime:
    @pytest.mark.asyncio
    async def test_future_time(self, aggregator: FakeAggregator, estimation: EstimationService) -> None:
        """Height 100 at 2s/block: 25s ahead is 12 whole blocks away, height 112."""
        aggregator.current_height = 100
        aggregator.avg_block_time_ms = 2000.0

        estimate = await estimation.estimate_block_for_time(NET, NOW + timedelta(seconds=25))

        assert estimate.blocks_away == 12
        assert estimate.estimated_height == 112
        assert estimate.time_from_now_ms == 25_000
        assert estimate.avg_block_time_ms == 2000.0

    @pytest.mark.asyncio
    async def test_override_block_time(self, aggregator: FakeAggregator, estimation: EstimationService) -> None:
        """The override replaces the aggregated block time for this computation only."""
        aggregator.current_height = 100
        aggregator.avg_block_time_ms = 2000.0

        estimate = await estimation.estimate_block_for_time(
            NET, NOW + timedelta(seconds=25), override_avg_block_time_ms=5000.0
        )
        assert estimate.blocks_away == 5
        assert estimate.avg_block_time_ms == 5000.0

        again = await estimation.estimate_block_for_time(NET, NOW + timedelta(seconds=25))
        assert again.avg_block_time_ms == 2000.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=-1), timedelta(days=-3)])
    async def test_past_or_present_rejected(
        self, aggregator: FakeAggregator, estimation: EstimationService, offset: timedelta
    ) -> None:
        with pytest.raises(TargetInPastError) as exc_info:
            await estimation.estimate_block_for_time(NET, NOW + offset)
        assert exc_info.value.kind is EstimationErrorKind.TARGET_IN_PAST
        assert aggregator.calls == []

    @pytest.mark.asyncio
    async def test_naive_timestamp_treated_as_utc(
        self, aggregator: FakeAggregator, estimation: EstimationService
    ) -> None:
        aggregator.avg_block_time_ms = 1000.0
        naive = (NOW + timedelta(seconds=10)).replace(tzinfo=None)
        estimate = await estimation.estimate_block_for_time(NET, naive)
        assert estimate.blocks_away == 10
