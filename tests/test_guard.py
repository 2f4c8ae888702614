"""Tests for wallet identity resolution and network switching."""

from __future__ import annotations

import asyncio

import pytest

from croupier.client.guard import NetworkGuard, SigningIdentity, network_from_chain_id
from croupier.errors import (
    InsufficientBalanceError,
    NetworkError,
    NoWalletError,
    NotConnectedError,
    StaleIdentityError,
    WrongNetworkError,
)
from croupier.networks import NetworkConfig, get_network

from fakes import DEPLOYER, PLAYER, FakeChain, FakeWallet

TESTNET = get_network("testnet")
MAINNET = get_network("mainnet")


class TestResolveIdentity:
    def test_identity(self, wallet: FakeWallet) -> None:
        identity = asyncio.run(NetworkGuard(wallet).resolve_identity())
        assert identity.address == DEPLOYER
        assert identity.network.chain_id == 10143
        assert identity.network.name == "Monad Testnet"

    def test_no_provider(self) -> None:
        with pytest.raises(NoWalletError):
            asyncio.run(NetworkGuard(None).resolve_identity())

    def test_access_rejected(self, wallet: FakeWallet) -> None:
        wallet.reject_connect = True
        with pytest.raises(NotConnectedError, match="rejected"):
            asyncio.run(NetworkGuard(wallet).resolve_identity())

    def test_no_accounts(self, chain: FakeChain) -> None:
        with pytest.raises(NotConnectedError, match="No accounts"):
            asyncio.run(NetworkGuard(FakeWallet(chain, address=None)).resolve_identity())

    def test_node_unreachable(self, wallet: FakeWallet, chain: FakeChain) -> None:
        chain.offline = True
        with pytest.raises(NetworkError):
            asyncio.run(NetworkGuard(wallet).resolve_identity())

    def test_unknown_chain_name(self) -> None:
        assert network_from_chain_id(1).name == "unknown"


class TestEnsureNetwork:
    def test_already_on_network(self, wallet: FakeWallet) -> None:
        asyncio.run(NetworkGuard(wallet).ensure_network(TESTNET))
        assert "wallet_switchEthereumChain" not in wallet.requests

    def test_switches(self, wallet: FakeWallet) -> None:
        identity = asyncio.run(NetworkGuard(wallet).ensure_network(MAINNET))
        assert identity.network.chain_id == 143
        assert wallet.chain_id == 143

    def test_adds_unknown_chain_first(self, wallet: FakeWallet) -> None:
        wallet.known_chains.discard(143)
        asyncio.run(NetworkGuard(wallet).ensure_network(MAINNET))
        assert wallet.requests.count("wallet_switchEthereumChain") == 2
        assert "wallet_addEthereumChain" in wallet.requests
        assert wallet.chain_id == 143

    def test_switch_refused(self, wallet: FakeWallet) -> None:
        wallet.refuse_switch = True
        with pytest.raises(WrongNetworkError, match="Could not switch"):
            asyncio.run(NetworkGuard(wallet).ensure_network(MAINNET))

    def test_confirmation_declined(self, wallet: FakeWallet) -> None:
        guard = NetworkGuard(wallet, confirm_switch=lambda network: False)
        with pytest.raises(WrongNetworkError, match="Please connect to Monad Mainnet"):
            asyncio.run(guard.ensure_network(MAINNET))
        assert "wallet_switchEthereumChain" not in wallet.requests

    def test_async_confirmation(self, wallet: FakeWallet) -> None:
        asked: list[NetworkConfig] = []

        async def confirm(network: NetworkConfig) -> bool:
            asked.append(network)
            return True

        asyncio.run(NetworkGuard(wallet, confirm_switch=confirm).ensure_network(MAINNET))
        assert asked == [MAINNET]

    def test_switch_without_effect(self, wallet: FakeWallet) -> None:
        class StuckWallet(FakeWallet):
            async def request(self, method, params=None):
                if method == "wallet_switchEthereumChain":
                    return None
                return await super().request(method, params)

        stuck = StuckWallet(wallet.chain)
        with pytest.raises(WrongNetworkError, match="still on chain 10143"):
            asyncio.run(NetworkGuard(stuck).ensure_network(MAINNET))


class TestEnsureCurrent:
    def test_unchanged(self, wallet: FakeWallet) -> None:
        guard = NetworkGuard(wallet)

        async def scenario() -> SigningIdentity:
            bound = await guard.resolve_identity()
            return await guard.ensure_current(bound)

        assert asyncio.run(scenario()).address == DEPLOYER

    def test_account_changed(self, wallet: FakeWallet) -> None:
        guard = NetworkGuard(wallet)

        async def scenario() -> None:
            bound = await guard.resolve_identity()
            wallet.address = PLAYER
            await guard.ensure_current(bound)

        with pytest.raises(StaleIdentityError):
            asyncio.run(scenario())

    def test_chain_changed(self, wallet: FakeWallet) -> None:
        guard = NetworkGuard(wallet)

        async def scenario() -> None:
            bound = await guard.resolve_identity()
            wallet.chain_id = 143
            await guard.ensure_current(bound)

        with pytest.raises(StaleIdentityError):
            asyncio.run(scenario())


class TestEnsureFunded:
    def test_funded(self, wallet: FakeWallet) -> None:
        guard = NetworkGuard(wallet)

        async def scenario() -> int:
            return await guard.ensure_funded(await guard.resolve_identity())

        assert asyncio.run(scenario()) == 100 * 10**18

    def test_zero_balance(self, wallet: FakeWallet, chain: FakeChain) -> None:
        chain.fund(DEPLOYER, 0)
        guard = NetworkGuard(wallet)

        async def scenario() -> None:
            await guard.ensure_funded(await guard.resolve_identity())

        with pytest.raises(InsufficientBalanceError):
            asyncio.run(scenario())
