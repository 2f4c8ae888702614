"""
Runtime client: binds a wallet to the deployed game contracts.
"""

from .events import ContractEvent, EventPoller, EventSubscription
from .games import GameContract
from .guard import Network, NetworkGuard, SigningIdentity
from .lifecycle import FailureReason, TransactionOutcome, TransactionRunner, validate_transaction
from .registry import BindingRegistry, BindingState, Bindings
from .session import GameSession, SessionInfo

__all__ = [
    "BindingRegistry",
    "BindingState",
    "Bindings",
    "ContractEvent",
    "EventPoller",
    "EventSubscription",
    "FailureReason",
    "GameContract",
    "GameSession",
    "Network",
    "NetworkGuard",
    "SessionInfo",
    "SigningIdentity",
    "TransactionOutcome",
    "TransactionRunner",
    "validate_transaction",
]
