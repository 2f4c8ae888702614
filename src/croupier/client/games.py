"""
Typed game contract handles.

Every game contract exposes the same surface (``placeBet``, ``cashOut``,
``getPlayerBalance``, ``getActiveGame`` and its events); ``GameContract``
gives each one a method over the generic call transport in ``chain``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..chain import abi as abi_codec
from ..chain.rpc import eth_call
from ..chain.tx import build_contract_tx, send_transaction
from ..chain.wallet import WalletProvider
from ..deploy.artifacts import ContractDescriptor
from .guard import SigningIdentity

GAME_FUNCTIONS = ("placeBet", "cashOut", "getPlayerBalance", "getActiveGame")


class GameContract:
    """A game contract bound to one address, ABI and signing identity."""

    def __init__(
        self,
        descriptor: ContractDescriptor,
        provider: WalletProvider,
        identity: SigningIdentity,
    ) -> None:
        missing = [f for f in GAME_FUNCTIONS if not abi_codec.has_function(descriptor.abi, f)]
        if missing:
            raise ValueError(f"ABI for {descriptor.name} lacks {', '.join(missing)}")
        self.name = descriptor.name
        self.address = descriptor.address
        self.abi = descriptor.abi
        self.provider = provider
        self.identity = identity

    def __repr__(self) -> str:
        return f"GameContract({self.name!r}, {self.address!r})"

    # ---- State-changing ----

    async def place_bet(
        self,
        value: int,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> str:
        """Submit ``placeBet`` with ``value`` wei attached; returns the tx hash."""
        return await self.transact("placeBet", args, value, gas_limit, overrides)

    async def cash_out(self, gas_limit: Optional[int] = None) -> str:
        return await self.transact("cashOut", (), 0, gas_limit)

    async def transact(
        self,
        function_name: str,
        args: Sequence[Any] = (),
        value: int = 0,
        gas_limit: Optional[int] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> str:
        tx = build_contract_tx(
            sender=self.identity.address,
            contract_address=self.address,
            abi=self.abi,
            function_name=function_name,
            args=list(args),
            value=value,
            gas_limit=gas_limit,
            overrides=overrides,
        )
        return await send_transaction(self.provider, tx)

    # ---- Read-only ----

    async def get_player_balance(self, player: str) -> int:
        return int(await self.call("getPlayerBalance", [player]) or 0)

    async def get_active_game(self, player: str) -> Any:
        return await self.call("getActiveGame", [player])

    async def call(self, function_name: str, args: Optional[list] = None) -> Any:
        calldata = abi_codec.encode_call(self.abi, function_name, args)
        result = await eth_call(self.provider, self.address, calldata)
        if result is None or result == "0x":
            return None
        return abi_codec.decode_result(self.abi, function_name, result)

    # ---- Events ----

    def event_abi(self, event_name: str) -> dict[str, Any]:
        return abi_codec.event_abi(self.abi, event_name)
