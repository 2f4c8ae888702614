"""Monad network table and wallet request payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class NetworkConfig:
    key: str  # "testnet" or "mainnet"
    chain_id: int
    chain_name: str
    rpc_url: str
    block_explorer_url: str
    currency_name: str = "Monad"
    currency_symbol: str = "MON"
    currency_decimals: int = 18

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)


NETWORKS: dict[str, NetworkConfig] = {
    "testnet": NetworkConfig(
        key="testnet",
        chain_id=10143,
        chain_name="Monad Testnet",
        rpc_url="https://testnet-rpc.monad.xyz",
        block_explorer_url="https://testnet.monadexplorer.com",
    ),
    "mainnet": NetworkConfig(
        key="mainnet",
        chain_id=143,
        chain_name="Monad Mainnet",
        rpc_url="https://rpc.monad.xyz",
        block_explorer_url="https://monadexplorer.com",
    ),
}


def get_network(network_type: str) -> NetworkConfig:
    """Look up a network by key.

    Raises:
        ValueError: If the key is not in the table
    """
    try:
        return NETWORKS[network_type]
    except KeyError:
        raise ValueError(
            f"Unknown network '{network_type}'. Expected one of: {', '.join(NETWORKS)}"
        ) from None


def network_for_chain_id(chain_id: int) -> Optional[NetworkConfig]:
    for network in NETWORKS.values():
        if network.chain_id == chain_id:
            return network
    return None


def switch_params(network: NetworkConfig) -> list[dict[str, Any]]:
    """Params for ``wallet_switchEthereumChain``."""
    return [{"chainId": network.chain_id_hex}]


def add_chain_params(network: NetworkConfig) -> list[dict[str, Any]]:
    """Params for ``wallet_addEthereumChain`` (EIP-3085)."""
    return [
        {
            "chainId": network.chain_id_hex,
            "chainName": network.chain_name,
            "nativeCurrency": {
                "name": network.currency_name,
                "symbol": network.currency_symbol,
                "decimals": network.currency_decimals,
            },
            "rpcUrls": [network.rpc_url],
            "blockExplorerUrls": [network.block_explorer_url],
        }
    ]
