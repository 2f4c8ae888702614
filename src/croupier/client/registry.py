"""
Contract binding registry.

Holds the handle set for one signing identity at a time. The registry is
an explicit state machine: ``UNINITIALIZED`` until the first successful
``initialize``, then ``BOUND``; each later ``initialize`` rebinds. A new
handle set is built off to the side and swapped in with a single
assignment, so callers never observe a mix of old and new handles.
Operations that already captured a handle keep using it.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from ..chain.wallet import WalletProvider
from ..constants import GAME_CONTRACTS
from ..deploy.artifacts import ArtifactStore
from ..errors import ArtifactError, NotConnectedError, NotInitializedError, UnknownContractError
from .games import GameContract
from .guard import SigningIdentity

logger = logging.getLogger(__name__)


class BindingState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    BOUND = "bound"


@dataclass(frozen=True)
class Bindings:
    identity: SigningIdentity
    handles: Mapping[str, GameContract]
    generation: int
    failed: Mapping[str, str] = field(default_factory=dict)


class BindingRegistry:
    def __init__(self, store: ArtifactStore, contract_names: Sequence[str] = GAME_CONTRACTS) -> None:
        self.store = store
        self.contract_names = tuple(contract_names)
        self._bindings: Optional[Bindings] = None
        self._generation = 0

    @property
    def state(self) -> BindingState:
        return BindingState.UNINITIALIZED if self._bindings is None else BindingState.BOUND

    @property
    def bindings(self) -> Bindings:
        if self._bindings is None:
            raise NotInitializedError("Web3 not initialized. Please call initialize_web3() first.")
        return self._bindings

    @property
    def identity(self) -> SigningIdentity:
        return self.bindings.identity

    def check_name(self, name: str) -> None:
        if name not in self.contract_names:
            raise UnknownContractError(
                f"Unknown contract: {name}. Expected one of: {', '.join(self.contract_names)}"
            )

    def initialize(
        self,
        identity: Optional[SigningIdentity],
        provider: WalletProvider,
    ) -> Bindings:
        """
        Bind one handle per stored contract to ``identity``.

        A contract whose artifacts are missing or malformed is logged and
        left unbound; the others are still bound.

        Raises:
            NotConnectedError: No identity to bind to
        """
        if identity is None:
            raise NotConnectedError("No accounts found. Please connect your wallet.")

        handles: dict[str, GameContract] = {}
        failed: dict[str, str] = {}
        for name in self.contract_names:
            try:
                handles[name] = GameContract(self.store.load(name), provider, identity)
            except (ArtifactError, ValueError) as exc:
                logger.error("Failed to initialize %s contract: %s", name, exc)
                failed[name] = str(exc)
                continue
            logger.info("%s contract initialized", name)

        self._generation += 1
        bindings = Bindings(
            identity=identity,
            handles=MappingProxyType(handles),
            generation=self._generation,
            failed=MappingProxyType(failed),
        )
        self._bindings = bindings
        return bindings

    def get_handle(self, name: str) -> GameContract:
        """
        Current handle for ``name``.

        Raises:
            UnknownContractError: ``name`` is not a known contract
            NotInitializedError: Not initialized, or this contract failed to bind
        """
        self.check_name(name)
        handle = self.bindings.handles.get(name)
        if handle is None:
            raise NotInitializedError(
                f"Contract {name} not initialized. Please call initialize_web3() first.",
                contract=name,
            )
        return handle

    def reset(self) -> None:
        self._bindings = None
