"""Runtime settings read from the environment (and ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_ARTIFACTS_DIR,
    DEFAULT_BUILD_DIR,
    DEFAULT_RECORD_PATH,
    DEFAULT_SUMMARY_PATH,
)
from .networks import NetworkConfig, get_network

DEFAULT_ENV_PATH = Path(".env")


@dataclass(frozen=True)
class Settings:
    network: NetworkConfig
    rpc_url: str
    artifacts_dir: Path
    build_dir: Path
    record_path: Path
    summary_path: Path


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Build settings from environment variables.

    Values already present in the process environment win over the
    ``.env`` file.

    Args:
        env_path: Path to a .env file (default: ./.env)

    Raises:
        ValueError: If MONAD_NETWORK names an unknown network
    """
    env_path = env_path or DEFAULT_ENV_PATH
    if env_path.exists():
        load_dotenv(env_path, override=False)

    network = get_network(os.environ.get("MONAD_NETWORK", "testnet"))
    return Settings(
        network=network,
        rpc_url=os.environ.get("MONAD_RPC_URL") or network.rpc_url,
        artifacts_dir=Path(os.environ.get("CROUPIER_ARTIFACTS_DIR", DEFAULT_ARTIFACTS_DIR)),
        build_dir=Path(os.environ.get("CROUPIER_BUILD_DIR", DEFAULT_BUILD_DIR)),
        record_path=Path(os.environ.get("CROUPIER_RECORD_PATH", DEFAULT_RECORD_PATH)),
        summary_path=Path(os.environ.get("CROUPIER_SUMMARY_PATH", DEFAULT_SUMMARY_PATH)),
    )
