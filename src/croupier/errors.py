"""Error taxonomy for croupier.

Every error carries a ``reason`` string suitable for direct display and,
where known, the ``operation`` and ``contract`` it happened in.
"""

from __future__ import annotations

from typing import Any, Optional


class CroupierError(RuntimeError):
    """Base class for all croupier errors."""

    exit_code: int = 1

    def __init__(
        self,
        reason: str,
        *,
        operation: Optional[str] = None,
        contract: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.operation = operation
        self.contract = contract
        super().__init__(self._format())

    def _format(self) -> str:
        if self.operation and self.contract:
            return f"{self.operation} failed for {self.contract}: {self.reason}"
        if self.operation:
            return f"{self.operation} failed: {self.reason}"
        return self.reason


# ============ Wallet / identity ============


class NoWalletError(CroupierError):
    """No wallet provider is available."""


class NotConnectedError(CroupierError):
    """The wallet has not granted account access."""


class WrongNetworkError(CroupierError):
    """The wallet is on the wrong chain and could not be switched."""


class StaleIdentityError(CroupierError):
    """The wallet account or chain changed since the handles were bound."""


# ============ Binding ============


class NotInitializedError(CroupierError):
    """A handle was requested before ``initialize_web3`` completed."""


class UnknownContractError(CroupierError, ValueError):
    """The contract name is not one of the known game contracts."""


class ArtifactError(CroupierError):
    """A stored contract artifact is missing or malformed."""


# ============ Input validation ============


class InvalidAmountError(CroupierError, ValueError):
    """A bet amount is non-numeric, non-positive or outside the bet limits."""


# ============ Transactions ============


class TransactionError(CroupierError):
    """Base class for state-changing call failures.

    ``outcome`` is the :class:`~croupier.client.lifecycle.TransactionOutcome`
    recorded for the failed call, when one exists.
    """

    def __init__(self, reason: str, *, outcome: Any = None, **context: Any) -> None:
        self.outcome = outcome
        super().__init__(reason, **context)


class TransactionRejectedError(TransactionError):
    """The user declined to sign the transaction."""


class TransactionRevertedError(TransactionError):
    """The contract rejected the call."""


class NetworkError(TransactionError, ConnectionError):
    """Submission or settlement could not be observed."""


# ============ Deployment ============


class DeploymentError(CroupierError):
    """Base class for deployment failures."""


class DeploymentVerificationError(DeploymentError):
    """No code was found at the deployed address."""


class InsufficientBalanceError(DeploymentError):
    """The deployer account has zero balance."""
