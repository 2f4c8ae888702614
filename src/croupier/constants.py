"""Configuration constants for croupier."""

# Game contracts, in deployment order
GAME_CONTRACTS = (
    "DiceRoll",
    "SpinWheel",
    "BlackJack",
    "Mines",
    "HighLow",
)

# Gas ceilings for state-changing calls. A call that needs more fails.
BET_GAS_LIMIT = 200_000
CASHOUT_GAS_LIMIT = 100_000
DEPLOY_GAS_LIMIT = 3_000_000

# Bet limits, in native currency units
MIN_BET = "0.01"
DEFAULT_MAX_BET = 10

# Seconds to wait for a deployment to be mined
DEPLOY_CONFIRMATION_TIMEOUT = 180
RECEIPT_POLL_INTERVAL = 2.0
EVENT_POLL_INTERVAL = 2.0

# Default on-disk locations, relative to the working directory
DEFAULT_ARTIFACTS_DIR = "src/contract_data"
DEFAULT_BUILD_DIR = "artifacts"
DEFAULT_RECORD_PATH = "deployment-summary.json"
DEFAULT_SUMMARY_PATH = "DEPLOYMENT_SUMMARY.md"
