"""
croupier: deploy the Monad game contracts and bind a wallet to them.
"""

from importlib.metadata import PackageNotFoundError, version

__all__ = [
    # Client
    "GameSession",
    "SessionInfo",
    "TransactionOutcome",
    "FailureReason",
    "validate_transaction",
    # Deployment
    "ArtifactStore",
    "DeploymentOrchestrator",
    "DeploymentRecord",
    "DeploymentResult",
    # Wallets
    "LocalWallet",
    "WalletProvider",
    # Errors
    "CroupierError",
    "NoWalletError",
    "NotConnectedError",
    "WrongNetworkError",
    "StaleIdentityError",
    "NotInitializedError",
    "UnknownContractError",
    "ArtifactError",
    "InvalidAmountError",
    "TransactionError",
    "TransactionRejectedError",
    "TransactionRevertedError",
    "NetworkError",
    "DeploymentError",
    "DeploymentVerificationError",
    "InsufficientBalanceError",
]

from .chain.wallet import LocalWallet, WalletProvider
from .client import (
    FailureReason,
    GameSession,
    SessionInfo,
    TransactionOutcome,
    validate_transaction,
)
from .deploy import ArtifactStore, DeploymentOrchestrator, DeploymentRecord, DeploymentResult
from .errors import (
    ArtifactError,
    CroupierError,
    DeploymentError,
    DeploymentVerificationError,
    InsufficientBalanceError,
    InvalidAmountError,
    NetworkError,
    NoWalletError,
    NotConnectedError,
    NotInitializedError,
    StaleIdentityError,
    TransactionError,
    TransactionRejectedError,
    TransactionRevertedError,
    UnknownContractError,
    WrongNetworkError,
)

try:
    __version__ = version("croupier")
except PackageNotFoundError:
    __version__ = None
