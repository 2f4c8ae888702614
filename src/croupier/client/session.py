"""
Game session: the client-facing API.

A ``GameSession`` is the context object an application owns and routes
every call through. It ties a wallet provider, the network guard, the
binding registry and the transaction runner together.

Concurrency: calls may be issued concurrently. Two state-changing calls
on the same contract race at the contract; the session does not
serialize them. After a wallet or network switch, await
``initialize_web3()`` before issuing new calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..chain.rpc import get_balance
from ..chain.tx import has_code
from ..chain.wallet import WalletProvider
from ..constants import (
    BET_GAS_LIMIT,
    CASHOUT_GAS_LIMIT,
    DEFAULT_MAX_BET,
    EVENT_POLL_INTERVAL,
    GAME_CONTRACTS,
    MIN_BET,
    RECEIPT_POLL_INTERVAL,
)
from ..deploy.artifacts import ArtifactStore
from ..errors import InvalidAmountError, NotInitializedError
from ..networks import NetworkConfig, get_network
from ..utils import format_ether, parse_ether
from .events import EventPoller, EventSubscription, Handler
from .games import GameContract
from .guard import ConfirmSwitch, NetworkGuard, SigningIdentity
from .lifecycle import TransactionOutcome, TransactionRunner, validate_transaction
from .registry import BindingRegistry, BindingState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionInfo:
    identity: SigningIdentity
    contracts: tuple[str, ...]

    @property
    def account(self) -> str:
        return self.identity.address


class GameSession:
    """
    Args:
        provider: Wallet provider; None when no wallet is available
        store: Artifact store written by the deployer
        network: Network the contracts live on
        confirm_switch: Asked before switching the wallet's chain
        max_bet: Upper bet limit used by ``place_bet``
        settlement_timeout: Seconds to wait for a receipt; None waits as
            long as the node does
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        store: ArtifactStore,
        *,
        network: NetworkConfig | str = "testnet",
        contract_names: Sequence[str] = GAME_CONTRACTS,
        confirm_switch: Optional[ConfirmSwitch] = None,
        min_bet: Any = MIN_BET,
        max_bet: Any = DEFAULT_MAX_BET,
        settlement_timeout: Optional[float] = None,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        event_poll_interval: float = EVENT_POLL_INTERVAL,
    ) -> None:
        self.provider = provider
        self.store = store
        self.network = get_network(network) if isinstance(network, str) else network
        self.guard = NetworkGuard(provider, confirm_switch=confirm_switch)
        self.registry = BindingRegistry(store, contract_names)
        self.min_bet = min_bet
        self.max_bet = max_bet
        self.settlement_timeout = settlement_timeout
        self.poll_interval = poll_interval
        self.event_poll_interval = event_poll_interval
        self._pollers: dict[tuple[int, str], EventPoller] = {}

    @property
    def state(self) -> BindingState:
        return self.registry.state

    # ============ Binding ============

    async def initialize_web3(self) -> SessionInfo:
        """
        Connect the wallet, make sure it is on the session network and bind
        a handle for every deployed contract. Subscriptions made under an
        earlier binding are closed.

        Raises:
            NoWalletError / NotConnectedError / WrongNetworkError
        """
        try:
            identity = await self.guard.ensure_network(self.network)
            bindings = self.registry.initialize(identity, self.provider)
        except Exception as exc:
            logger.error("Web3 initialization failed: %s", exc)
            raise
        self._close_stale_pollers(bindings.generation)
        return SessionInfo(identity=bindings.identity, contracts=tuple(bindings.handles))

    async def switch_to_monad(self, network_type: str = "testnet") -> SessionInfo:
        """Switch the wallet to a Monad network and rebind all handles."""
        network = get_network(network_type)
        await self.guard.switch_network(network)
        logger.info("Switched to Monad %s", network_type)
        self.network = network
        return await self.initialize_web3()

    def get_contract(self, name: str) -> GameContract:
        return self.registry.get_handle(name)

    async def get_current_account(self) -> str:
        return self.registry.identity.address

    async def get_balance(self, address: str) -> str:
        """Native balance of ``address``, formatted in whole units."""
        if self.registry.state is BindingState.UNINITIALIZED:
            raise NotInitializedError("Web3 not initialized. Please call initialize_web3() first.")
        return format_ether(await get_balance(self.provider, address))

    # ============ State-changing ============

    async def place_bet(
        self,
        name: str,
        amount: Any,
        args: Sequence[Any] = (),
        overrides: Optional[dict[str, Any]] = None,
    ) -> TransactionOutcome:
        """
        Place a bet of ``amount`` (native units) on a game contract.

        Raises:
            InvalidAmountError / UnknownContractError: Before any network call
            StaleIdentityError: The wallet changed since binding
            TransactionRejectedError / TransactionRevertedError / NetworkError
        """
        self.registry.check_name(name)
        validate_transaction(amount, self.max_bet, self.min_bet)
        try:
            value = parse_ether(amount)
        except ValueError as exc:
            raise InvalidAmountError(str(exc), operation="place bet", contract=name) from exc

        handle = await self._checked_handle(name)
        return await self._runner().execute(
            "place bet",
            name,
            lambda: handle.place_bet(value, args, gas_limit=BET_GAS_LIMIT, overrides=overrides),
        )

    async def cash_out(self, name: str) -> TransactionOutcome:
        """Cash out winnings from a game contract."""
        self.registry.check_name(name)
        handle = await self._checked_handle(name)
        return await self._runner().execute(
            "cash out", name, lambda: handle.cash_out(gas_limit=CASHOUT_GAS_LIMIT)
        )

    # ============ Read-only ============
    # These degrade to a default instead of raising: an unknown balance
    # reads as "0", an unknown game as None, an unknown deployment as False.

    async def get_player_balance(self, name: str, address: str) -> str:
        self.registry.check_name(name)
        try:
            balance = await self.get_contract(name).get_player_balance(address)
        except Exception as exc:
            logger.warning("Failed to get player balance for %s: %s", name, exc)
            return "0"
        return format_ether(balance)

    async def get_active_game(self, name: str, address: str) -> Any:
        self.registry.check_name(name)
        try:
            return await self.get_contract(name).get_active_game(address)
        except Exception as exc:
            logger.warning("Failed to get active game for %s: %s", name, exc)
            return None

    async def is_contract_deployed(self, name: str) -> bool:
        self.registry.check_name(name)
        try:
            address = self.store.load(name).address
            return await has_code(self.guard.require_provider(), address)
        except Exception as exc:
            logger.warning("Failed to check deployment for %s: %s", name, exc)
            return False

    def get_contract_addresses(self) -> dict[str, Optional[str]]:
        return self.store.addresses(self.registry.contract_names)

    def validate_transaction(self, amount: Any, max_bet: Any = None) -> bool:
        return validate_transaction(
            amount, self.max_bet if max_bet is None else max_bet, self.min_bet
        )

    # ============ Events ============

    async def listen_to_contract_events(
        self, name: str, event_name: str, handler: Handler
    ) -> EventSubscription:
        """
        Call ``handler`` for each ``event_name`` event the contract emits.

        Returns:
            The subscription; call it (or its ``unsubscribe``) to stop
        """
        handle = self.get_contract(name)
        key = (self.registry.bindings.generation, name)
        poller = self._pollers.get(key)
        if poller is None:
            poller = EventPoller(
                self.provider, name, handle.address, handle.abi, self.event_poll_interval
            )
            self._pollers[key] = poller
        return await poller.subscribe(event_name, handler)

    def pollers(self) -> list[EventPoller]:
        return list(self._pollers.values())

    async def aclose(self) -> None:
        for poller in self._pollers.values():
            poller.close()
        self._pollers.clear()
        self.registry.reset()

    # ============ Internals ============

    async def _checked_handle(self, name: str) -> GameContract:
        handle = self.registry.get_handle(name)
        await self.guard.ensure_current(handle.identity)
        return handle

    def _close_stale_pollers(self, generation: int) -> None:
        for key in [k for k in self._pollers if k[0] != generation]:
            self._pollers.pop(key).close()

    def _runner(self) -> TransactionRunner:
        return TransactionRunner(
            self.guard.require_provider(),
            settlement_timeout=self.settlement_timeout,
            poll_interval=self.poll_interval,
        )
