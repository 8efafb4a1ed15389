"""Estimation endpoints: block to time, time to block, network list."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from blocktime.dependencies import get_estimation_service
from blocktime.estimation.schemas import BlockEstimateResponse, NetworkResponse, TimeToBlockResponse
from blocktime.estimation.service import EstimationService
from blocktime.networks import NETWORKS, Network

router = APIRouter(prefix="/api/v1", tags=["Estimation"])


@router.get("/estimate", response_model=BlockEstimateResponse)
async def estimate_block(
    block: int = Query(..., gt=0, description="Target block height"),
    network: Network = Query(...),
    service: EstimationService = Depends(get_estimation_service),
) -> BlockEstimateResponse:
    """Estimate when a future block height will be produced."""
    estimate = await service.estimate_time_for_block(network, block)
    return BlockEstimateResponse.from_estimate(network, estimate)


@router.get("/time-to-block", response_model=TimeToBlockResponse)
async def time_to_block(
    time: datetime = Query(..., description="ISO 8601 target time"),
    network: Network = Query(...),
    block_time: float | None = Query(None, gt=0, description="Assumed block time in seconds"),
    service: EstimationService = Depends(get_estimation_service),
) -> TimeToBlockResponse:
    """Estimate which block height will exist at a future time."""
    override_ms = block_time * 1000 if block_time is not None else None
    estimate = await service.estimate_block_for_time(network, time, override_ms)
    return TimeToBlockResponse.from_estimate(network, estimate)


@router.get("/networks", response_model=list[NetworkResponse])
async def list_networks() -> list[NetworkResponse]:
    """Configured networks and how many endpoints back each source."""
    return [
        NetworkResponse(
            id=network,
            name=config.name,
            chain_id=config.chain_id,
            evm_rpc_endpoints=len(config.evm_rpc_urls),
            tendermint_rpc_endpoints=len(config.tendermint_rpc_urls),
            cosmos_api_endpoints=len(config.cosmos_api_urls),
        )
        for network, config in NETWORKS.items()
    ]
