"""
Signing credential management.

The deployer and the local wallet sign with a single secp256k1 key read
from PRIVATE_KEY (process environment or a .env file).
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..config import DEFAULT_ENV_PATH


def generate_key() -> tuple[str, str]:
    """
    Generate a new keypair.

    Returns:
        Tuple of (private_key_hex, checksummed address)
    """
    private_key = "0x" + secrets.token_hex(32)
    return private_key, Account.from_key(private_key).address


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load the private key from the environment or a .env file.

    Args:
        env_path: Path to .env file (default: ./.env)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If PRIVATE_KEY is not set
    """
    env_path = env_path or DEFAULT_ENV_PATH

    if env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get("PRIVATE_KEY", "").strip()
    if not private_key:
        raise ValueError(
            f"PRIVATE_KEY not found in environment variables. "
            f"Add PRIVATE_KEY=your_private_key_here to {env_path}"
        )

    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """
    Get an eth-account LocalAccount.

    Args:
        private_key: 0x-prefixed hex private key. If None, loads from env.
    """
    if private_key is None:
        private_key = load_private_key()
    return Account.from_key(private_key)
