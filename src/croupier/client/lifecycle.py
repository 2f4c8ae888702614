"""
Transaction lifecycle.

A state-changing call is validated, submitted with a fixed gas ceiling,
and awaited until its receipt settles. Failures are classified as
rejected (the user declined to sign), reverted (the contract refused)
or network (submission or settlement could not be observed), and are
raised to the caller. Nothing is retried.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from ..chain.rpc import RpcError, wait_for_receipt
from ..chain.tx import receipt_succeeded
from ..chain.wallet import USER_REJECTED, WalletProvider
from ..constants import DEFAULT_MAX_BET, MIN_BET, RECEIPT_POLL_INTERVAL
from ..errors import (
    InvalidAmountError,
    NetworkError,
    TransactionError,
    TransactionRejectedError,
    TransactionRevertedError,
)
from ..utils import hex_to_int, to_decimal

logger = logging.getLogger(__name__)

# JSON-RPC code nodes use for "execution reverted"
EXECUTION_REVERTED = 3


class FailureReason(enum.Enum):
    REJECTED = "rejected"
    REVERTED = "reverted"
    NETWORK = "network"


@dataclass
class TransactionOutcome:
    """Result of one state-changing call.

    Created on submission; only the settlement wait changes it.
    """

    operation: str
    contract: str
    tx_hash: Optional[str] = None
    settled: bool = False
    failure_reason: Optional[FailureReason] = None
    receipt: dict[str, Any] = field(default_factory=dict)

    @property
    def block_number(self) -> Optional[int]:
        return hex_to_int(self.receipt["blockNumber"]) if "blockNumber" in self.receipt else None

    @property
    def gas_used(self) -> Optional[int]:
        return hex_to_int(self.receipt["gasUsed"]) if "gasUsed" in self.receipt else None


def validate_transaction(
    amount: Any,
    max_bet: Union[int, float, str, Decimal, None] = DEFAULT_MAX_BET,
    min_bet: Union[int, float, str, Decimal] = MIN_BET,
) -> bool:
    """
    Check a bet amount against the bet limits (both inclusive).

    Raises:
        InvalidAmountError: Non-numeric, not positive, above ``max_bet``
            or below ``min_bet``
    """
    if max_bet is None:
        max_bet = DEFAULT_MAX_BET
    try:
        value = to_decimal(amount)
    except ValueError:
        raise InvalidAmountError("Invalid bet amount. Please enter a positive number.") from None

    if value <= 0:
        raise InvalidAmountError("Invalid bet amount. Please enter a positive number.")
    if value > to_decimal(max_bet):
        raise InvalidAmountError(f"Bet amount too high. Maximum bet is {max_bet} MON.")
    if value < to_decimal(min_bet):
        raise InvalidAmountError(f"Bet amount too low. Minimum bet is {min_bet} MON.")
    return True


_FAILURE_REASONS = {
    TransactionRejectedError: FailureReason.REJECTED,
    TransactionRevertedError: FailureReason.REVERTED,
    NetworkError: FailureReason.NETWORK,
}


def _is_revert(exc: RpcError) -> bool:
    if exc.code == EXECUTION_REVERTED:
        return True
    return "revert" in exc.message.lower()


class TransactionRunner:
    """
    Submits one call and waits for its settlement.

    Args:
        provider: Wallet used to observe receipts
        settlement_timeout: Seconds to wait for a receipt; None waits as
            long as the node does
    """

    def __init__(
        self,
        provider: WalletProvider,
        *,
        settlement_timeout: Optional[float] = None,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> None:
        self.provider = provider
        self.settlement_timeout = settlement_timeout
        self.poll_interval = poll_interval

    async def execute(
        self,
        operation: str,
        contract: str,
        submit: Callable[[], Awaitable[str]],
    ) -> TransactionOutcome:
        outcome = TransactionOutcome(operation=operation, contract=contract)

        try:
            outcome.tx_hash = await submit()
        except RpcError as exc:
            if exc.code == USER_REJECTED:
                raise self._failure(
                    outcome, TransactionRejectedError, "Transaction was rejected in the wallet."
                ) from exc
            if _is_revert(exc):
                raise self._failure(outcome, TransactionRevertedError, exc.message) from exc
            raise self._failure(outcome, NetworkError, exc.message) from exc
        except (httpx.HTTPError, OSError) as exc:
            raise self._failure(outcome, NetworkError, str(exc) or type(exc).__name__) from exc

        logger.info("Waiting for %s %s transaction %s...", contract, operation, outcome.tx_hash)

        try:
            receipt = await wait_for_receipt(
                self.provider,
                outcome.tx_hash,
                timeout=self.settlement_timeout,
                poll_interval=self.poll_interval,
            )
        except (RpcError, httpx.HTTPError, OSError) as exc:
            raise self._failure(
                outcome, NetworkError, f"settlement of {outcome.tx_hash} not observed: {exc}"
            ) from exc

        outcome.receipt = receipt
        if not receipt_succeeded(receipt):
            raise self._failure(
                outcome, TransactionRevertedError, f"transaction {outcome.tx_hash} reverted"
            )

        outcome.settled = True
        logger.info("%s %s settled: %s", contract, operation, outcome.tx_hash)
        return outcome

    @staticmethod
    def _failure(
        outcome: TransactionOutcome,
        error_cls: type[TransactionError],
        message: str,
    ) -> TransactionError:
        outcome.failure_reason = _FAILURE_REASONS[error_cls]
        logger.error("%s failed for %s: %s", outcome.operation, outcome.contract, message)
        return error_cls(
            message,
            outcome=outcome,
            operation=outcome.operation,
            contract=outcome.contract,
        )
