"""Supported networks and their per-source endpoint lists.

Each list is ordered by fallback priority: the first URL is preferred and
later URLs are only tried when earlier ones fail.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Network(str, enum.Enum):
    XRPL_EVM_MAINNET = "XRPL_EVM_MAINNET"
    XRPL_EVM_TESTNET = "XRPL_EVM_TESTNET"


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    evm_rpc_urls: tuple[str, ...]
    tendermint_rpc_urls: tuple[str, ...]
    cosmos_api_urls: tuple[str, ...]

    def __post_init__(self) -> None:
        for field_name in ("evm_rpc_urls", "tendermint_rpc_urls", "cosmos_api_urls"):
            if not getattr(self, field_name):
                msg = f"{self.name}: {field_name} must not be empty"
                raise ValueError(msg)


NETWORKS: dict[Network, NetworkConfig] = {
    Network.XRPL_EVM_MAINNET: NetworkConfig(
        name="XRPL EVM Mainnet",
        chain_id=1440002,
        evm_rpc_urls=(
            "https://rpc.xrplevm.org",
            "https://json-rpc.xrpl.cumulo.org.es",
            "https://xrpevm-rpc.polkachu.com",
        ),
        tendermint_rpc_urls=(
            "https://cosmos-rpc.xrplevm.org",
            "https://xrp-rpc.polkachu.com",
            "https://rpc.xrpl.cumulo.org.es",
            "https://xrpl-rpc.stakeme.pro",
        ),
        cosmos_api_urls=(
            "https://cosmos-api.xrplevm.org",
            "https://xrp-api.polkachu.com",
            "https://api.xrpl.cumulo.org.es",
            "https://xrpl-rest.stakeme.pro",
        ),
    ),
    Network.XRPL_EVM_TESTNET: NetworkConfig(
        name="XRPL EVM Testnet",
        chain_id=1440001,
        evm_rpc_urls=(
            "https://rpc.testnet.xrplevm.org",
            "https://json-rpc.xrpl.cumulo.com.es",
            "https://xrplevm-testnet-evm.itrocket.net",
        ),
        tendermint_rpc_urls=(
            "https://cosmos-rpc.testnet.xrplevm.org",
            "https://xrp-testnet-rpc.polkachu.com",
            "https://rpc.xrpl.cumulo.com.es",
            "https://xrplevm-testnet-rpc.itrocket.net",
        ),
        cosmos_api_urls=(
            "https://cosmos-api.testnet.xrplevm.org",
            "https://xrp-testnet-api.polkachu.com",
            "https://api.xrpl.cumulo.com.es",
            "https://xrplevm-testnet-api.itrocket.net",
        ),
    ),
}


def get_network_config(network: Network) -> NetworkConfig:
    """Look up the endpoint configuration for a network."""
    return NETWORKS[network]


def network_label(network: Network | str) -> str:
    """Human-readable network name, e.g. ``XRPL EVM Mainnet``."""
    return NETWORKS[Network(network)].name
