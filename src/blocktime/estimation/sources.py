"""Source adapters: one per protocol family.

Each adapter resolves the chain head through the endpoint fallback
resolver, then takes its lookback sample from the *same* endpoint so that
the height and the timestamps come from one node.
"""

from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from blocktime.estimation.resolver import try_in_order
from blocktime.networks import Network, NetworkConfig, get_network_config

logger = structlog.get_logger()

EVM_LOOKBACK_BLOCKS = 100
TENDERMINT_LOOKBACK_BLOCKS = 200
COSMOS_LOOKBACK_BLOCKS = 100

_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class SourceResult:
    height: int
    avg_block_time_ms: float
    endpoint: str


class BlockNotFoundError(LookupError):
    """The node has no block at the requested height."""


def parse_block_time(value: str) -> datetime:
    """Parse an RFC 3339 block header time.

    Tendermint reports nanosecond precision (``2024-05-01T10:00:00.123456789Z``),
    which is truncated to microseconds.
    """
    text = value.strip().replace("Z", "+00:00")
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def average_block_time_ms(later_ms: float, earlier_ms: float, later_height: int, earlier_height: int) -> float:
    """Mean milliseconds per block between two (timestamp, height) samples."""
    blocks = later_height - earlier_height
    if blocks <= 0:
        msg = f"Cannot sample block time: height window {earlier_height}..{later_height} is empty"
        raise ValueError(msg)
    return (later_ms - earlier_ms) / blocks


class BlockSource(ABC):
    """Abstract base class for a chain height / block time source."""

    name: str

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @abstractmethod
    def urls(self, config: NetworkConfig) -> tuple[str, ...]:
        """Endpoint list for this source family, in fallback order."""
        ...

    @abstractmethod
    async def current_state(self, network: Network) -> SourceResult:
        """Current height and recent average block time."""
        ...

    async def _get_json(self, url: str) -> Any:  # noqa: ANN401
        response = await self._client.get(url)
        response.raise_for_status()
        return response.json()


class EvmRpcSource(BlockSource):
    """Ethereum-style JSON-RPC (``eth_blockNumber`` / ``eth_getBlockByNumber``)."""

    name = "evm_rpc"

    def urls(self, config: NetworkConfig) -> tuple[str, ...]:
        return config.evm_rpc_urls

    async def _call(self, url: str, method: str, params: list[Any]) -> Any:  # noqa: ANN401
        response = await self._client.post(
            url,
            json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
        )
        response.raise_for_status()
        data = response.json()
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RuntimeError(message or "JSON-RPC error")
        return data.get("result")

    async def block_number(self, url: str) -> int:
        return int(await self._call(url, "eth_blockNumber", []), 16)

    async def block_timestamp(self, url: str, height: int) -> int:
        """Block timestamp in seconds since the epoch."""
        block = await self._call(url, "eth_getBlockByNumber", [hex(height), False])
        if not block:
            msg = f"Block {height} not found"
            raise BlockNotFoundError(msg)
        return int(block["timestamp"], 16)

    async def current_state(self, network: Network) -> SourceResult:
        height, url = await try_in_order(self.urls(get_network_config(network)), self.block_number)
        earlier = max(0, height - EVM_LOOKBACK_BLOCKS)
        latest_ts, earlier_ts = await asyncio.gather(
            self.block_timestamp(url, height),
            self.block_timestamp(url, earlier),
        )
        avg = average_block_time_ms(latest_ts * 1000, earlier_ts * 1000, height, earlier)
        return SourceResult(height=height, avg_block_time_ms=avg, endpoint=url)


class TendermintRpcSource(BlockSource):
    """Tendermint / CometBFT RPC (``/status`` and ``/block``)."""

    name = "tendermint_rpc"

    def urls(self, config: NetworkConfig) -> tuple[str, ...]:
        return config.tendermint_rpc_urls

    async def status(self, url: str) -> tuple[int, datetime]:
        data = await self._get_json(f"{url.rstrip('/')}/status")
        sync_info = data["result"]["sync_info"]
        return int(sync_info["latest_block_height"]), parse_block_time(sync_info["latest_block_time"])

    async def block_time(self, url: str, height: int) -> datetime:
        data = await self._get_json(f"{url.rstrip('/')}/block?height={height}")
        block = (data.get("result") or {}).get("block")
        if not block:
            msg = f"Block {height} not found"
            raise BlockNotFoundError(msg)
        return parse_block_time(block["header"]["time"])

    async def current_state(self, network: Network) -> SourceResult:
        (height, latest_time), url = await try_in_order(self.urls(get_network_config(network)), self.status)
        earlier = max(1, height - TENDERMINT_LOOKBACK_BLOCKS)
        earlier_time = await self.block_time(url, earlier)
        avg = average_block_time_ms(
            latest_time.timestamp() * 1000, earlier_time.timestamp() * 1000, height, earlier
        )
        return SourceResult(height=height, avg_block_time_ms=avg, endpoint=url)


class CosmosRestSource(BlockSource):
    """Cosmos SDK REST API (``/cosmos/base/tendermint/v1beta1/blocks``)."""

    name = "cosmos_rest"

    BLOCKS_PATH = "/cosmos/base/tendermint/v1beta1/blocks"

    def urls(self, config: NetworkConfig) -> tuple[str, ...]:
        return config.cosmos_api_urls

    async def block(self, url: str, height: int | str) -> tuple[int, datetime]:
        data = await self._get_json(f"{url.rstrip('/')}{self.BLOCKS_PATH}/{height}")
        block = data.get("block") or data.get("sdk_block")
        if not block:
            msg = f"Block {height} not found"
            raise BlockNotFoundError(msg)
        header = block["header"]
        return int(header["height"]), parse_block_time(header["time"])

    async def latest_block(self, url: str) -> tuple[int, datetime]:
        return await self.block(url, "latest")

    async def current_state(self, network: Network) -> SourceResult:
        (height, latest_time), url = await try_in_order(self.urls(get_network_config(network)), self.latest_block)
        earlier = max(1, height - COSMOS_LOOKBACK_BLOCKS)
        _, earlier_time = await self.block(url, earlier)
        avg = average_block_time_ms(
            latest_time.timestamp() * 1000, earlier_time.timestamp() * 1000, height, earlier
        )
        return SourceResult(height=height, avg_block_time_ms=avg, endpoint=url)


def default_sources(client: httpx.AsyncClient) -> list[BlockSource]:
    """The three source families, in reporting order."""
    return [EvmRpcSource(client), TendermintRpcSource(client), CosmosRestSource(client)]
