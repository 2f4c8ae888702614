"""
Network / identity guard.

Resolves the wallet's active account and chain and checks them against
the preconditions of an operation: a wallet is present, it has granted
access, it is on the expected chain, and (for deployment) it is funded.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import httpx

from ..chain.rpc import RpcError, get_balance, get_chain_id
from ..chain.wallet import UNRECOGNIZED_CHAIN, USER_REJECTED, WalletProvider
from ..errors import (
    InsufficientBalanceError,
    NetworkError,
    NoWalletError,
    NotConnectedError,
    StaleIdentityError,
    WrongNetworkError,
)
from ..networks import NetworkConfig, add_chain_params, network_for_chain_id, switch_params
from ..utils import format_ether

logger = logging.getLogger(__name__)

ConfirmSwitch = Callable[[NetworkConfig], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class Network:
    name: str
    chain_id: int


@dataclass(frozen=True)
class SigningIdentity:
    address: str
    network: Network

    def same_as(self, other: "SigningIdentity") -> bool:
        return (
            self.address.lower() == other.address.lower()
            and self.network.chain_id == other.network.chain_id
        )


def network_from_chain_id(chain_id: int) -> Network:
    known = network_for_chain_id(chain_id)
    return Network(name=known.chain_name if known else "unknown", chain_id=chain_id)


class NetworkGuard:
    """
    Args:
        provider: Wallet provider, or None when no wallet is installed
        confirm_switch: Asked before prompting the wallet to change chain;
            returning False fails with WrongNetworkError. None switches
            without asking.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        *,
        confirm_switch: Optional[ConfirmSwitch] = None,
    ) -> None:
        self.provider = provider
        self._confirm_switch = confirm_switch

    def require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise NoWalletError("No wallet detected. Install a wallet provider first.")
        return self.provider

    async def resolve_identity(self) -> SigningIdentity:
        """
        Current account and chain of the wallet.

        Raises:
            NoWalletError: No provider
            NotConnectedError: Access not granted, or no accounts exposed
            NetworkError: The wallet's node could not be reached
        """
        provider = self.require_provider()
        try:
            accounts = await provider.request("eth_requestAccounts", [])
            chain_id = await get_chain_id(provider)
        except RpcError as exc:
            if exc.code == USER_REJECTED:
                raise NotConnectedError("Wallet connection request was rejected.") from exc
            raise NetworkError(exc.message, operation="resolve identity") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc), operation="resolve identity") from exc

        if not accounts:
            raise NotConnectedError("No accounts found. Please connect your wallet.")

        return SigningIdentity(address=accounts[0], network=network_from_chain_id(chain_id))

    async def ensure_network(self, expected: NetworkConfig) -> SigningIdentity:
        """
        Resolve the identity, switching the wallet to ``expected`` if needed.

        Raises:
            WrongNetworkError: The switch was declined, failed, or did not
                take effect
        """
        identity = await self.resolve_identity()
        if identity.network.chain_id == expected.chain_id:
            return identity

        logger.info(
            "Wallet is on chain %d, expected %s (%d)",
            identity.network.chain_id,
            expected.chain_name,
            expected.chain_id,
        )
        if not await self._switch_confirmed(expected):
            raise WrongNetworkError(f"Please connect to {expected.chain_name} to continue.")

        await self.switch_network(expected)

        identity = await self.resolve_identity()
        if identity.network.chain_id != expected.chain_id:
            raise WrongNetworkError(
                f"Wallet is still on chain {identity.network.chain_id} "
                f"after switching to {expected.chain_name}."
            )
        return identity

    async def switch_network(self, expected: NetworkConfig) -> None:
        """
        Ask the wallet to change chain, adding it first if unknown.

        Raises:
            WrongNetworkError: The wallet refused or failed
        """
        provider = self.require_provider()
        try:
            try:
                await provider.request("wallet_switchEthereumChain", switch_params(expected))
            except RpcError as exc:
                if exc.code != UNRECOGNIZED_CHAIN:
                    raise
                await provider.request("wallet_addEthereumChain", add_chain_params(expected))
                await provider.request("wallet_switchEthereumChain", switch_params(expected))
        except RpcError as exc:
            raise WrongNetworkError(
                f"Could not switch to {expected.chain_name}: {exc.message}"
            ) from exc

    async def ensure_current(self, bound: SigningIdentity) -> SigningIdentity:
        """
        Fail if the wallet moved away from ``bound`` since it was resolved.

        Raises:
            StaleIdentityError: Account or chain changed
        """
        current = await self.resolve_identity()
        if not current.same_as(bound):
            raise StaleIdentityError(
                f"Wallet changed from {bound.address} on chain {bound.network.chain_id} "
                f"to {current.address} on chain {current.network.chain_id}. "
                "Call initialize_web3() again."
            )
        return current

    async def ensure_funded(self, identity: SigningIdentity) -> int:
        """
        Balance of the identity in wei; zero is fatal.

        Raises:
            InsufficientBalanceError: Zero balance
        """
        balance = await get_balance(self.require_provider(), identity.address)
        logger.info("Balance: %s", format_ether(balance))
        if balance == 0:
            raise InsufficientBalanceError(
                f"Insufficient balance for deployment! Fund {identity.address} first."
            )
        return balance

    async def _switch_confirmed(self, expected: NetworkConfig) -> bool:
        if self._confirm_switch is None:
            return True
        answer = self._confirm_switch(expected)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
