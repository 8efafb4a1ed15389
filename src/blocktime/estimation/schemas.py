"""Pydantic schemas for estimation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from blocktime.estimation.aggregator import Confidence
from blocktime.estimation.service import BlockTimeEstimate, TimeBlockEstimate
from blocktime.estimation.sources import SourceResult
from blocktime.networks import Network


class SourceDetail(BaseModel):
    block_height: int
    avg_block_time_ms: float
    url: str


def _source_details(sources: dict[str, SourceResult | None]) -> dict[str, SourceDetail | None]:
    return {
        name: (
            SourceDetail(block_height=r.height, avg_block_time_ms=r.avg_block_time_ms, url=r.endpoint)
            if r is not None
            else None
        )
        for name, r in sources.items()
    }


class BlockEstimateResponse(BaseModel):
    network: Network
    current_block: int
    target_block: int
    blocks_remaining: int
    avg_block_time_ms: float
    estimated_time_ms: float
    estimated_date: datetime
    sources: dict[str, SourceDetail | None]
    confidence: Confidence

    @classmethod
    def from_estimate(cls, network: Network, estimate: BlockTimeEstimate) -> BlockEstimateResponse:
        return cls(
            network=network,
            current_block=estimate.current_height,
            target_block=estimate.target_height,
            blocks_remaining=estimate.blocks_remaining,
            avg_block_time_ms=estimate.avg_block_time_ms,
            estimated_time_ms=estimate.estimated_time_ms,
            estimated_date=estimate.estimated_timestamp,
            sources=_source_details(estimate.sources),
            confidence=estimate.confidence,
        )


class TimeToBlockResponse(BaseModel):
    network: Network
    current_block: int
    estimated_block: int
    blocks_away: int
    avg_block_time_ms: float
    target_date: datetime
    time_from_now_ms: float
    sources: dict[str, SourceDetail | None]
    confidence: Confidence

    @classmethod
    def from_estimate(cls, network: Network, estimate: TimeBlockEstimate) -> TimeToBlockResponse:
        return cls(
            network=network,
            current_block=estimate.current_height,
            estimated_block=estimate.estimated_height,
            blocks_away=estimate.blocks_away,
            avg_block_time_ms=estimate.avg_block_time_ms,
            target_date=estimate.target_timestamp,
            time_from_now_ms=estimate.time_from_now_ms,
            sources=_source_details(estimate.sources),
            confidence=estimate.confidence,
        )


class NetworkResponse(BaseModel):
    id: Network
    name: str
    chain_id: int
    evm_rpc_endpoints: int
    tendermint_rpc_endpoints: int
    cosmos_api_endpoints: int
