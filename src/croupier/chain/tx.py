"""
Transaction builder.

Transactions are expressed as ``eth_sendTransaction`` requests and handed
to a wallet provider, which signs them. The same path serves contract
calls and contract creation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .abi import encode_call
from .rpc import Requester, get_code, wait_for_receipt

logger = logging.getLogger(__name__)

_QUANTITY_FIELDS = ("gas", "value", "nonce", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas")


def build_contract_tx(
    sender: str,
    contract_address: str,
    abi: list,
    function_name: str,
    args: Optional[list] = None,
    value: int = 0,
    gas_limit: Optional[int] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Build an ``eth_sendTransaction`` request for a contract call.

    Args:
        sender: 0x-prefixed sender address
        contract_address: 0x-prefixed contract address
        abi: Contract ABI
        function_name: Function to call
        args: Function arguments
        value: Native currency to attach, in wei
        gas_limit: Gas ceiling (default: wallet estimates)
        overrides: Extra request fields; ``gasLimit`` is accepted as an
            alias of ``gas``

    Returns:
        Transaction request dict with hex quantities
    """
    tx: dict[str, Any] = {
        "from": sender,
        "to": contract_address,
        "data": encode_call(abi, function_name, args),
        "value": hex(value),
    }
    if gas_limit is not None:
        tx["gas"] = hex(gas_limit)

    for key, val in (overrides or {}).items():
        key = "gas" if key == "gasLimit" else key
        if key in _QUANTITY_FIELDS and isinstance(val, int):
            val = hex(val)
        tx[key] = val

    return tx


def build_deploy_tx(
    sender: str,
    bytecode: str,
    gas_limit: Optional[int] = None,
) -> dict[str, Any]:
    """Build a contract creation request (no ``to``)."""
    tx: dict[str, Any] = {"from": sender, "data": bytecode, "value": "0x0"}
    if gas_limit is not None:
        tx["gas"] = hex(gas_limit)
    return tx


async def send_transaction(provider: Requester, tx: dict[str, Any]) -> str:
    """Hand a request to the wallet; returns the transaction hash."""
    tx_hash = await provider.request("eth_sendTransaction", [tx])
    logger.debug("Submitted transaction %s", tx_hash)
    return tx_hash


def receipt_succeeded(receipt: dict[str, Any]) -> bool:
    status = receipt.get("status", "0x1")
    if isinstance(status, str):
        status = int(status, 16)
    return status == 1


async def deploy_contract(
    provider: Requester,
    sender: str,
    bytecode: str,
    gas_limit: Optional[int] = None,
    timeout: Optional[float] = None,
    poll_interval: float = 2.0,
) -> dict[str, Any]:
    """
    Deploy a contract and wait for it to be mined.

    Returns:
        Dict with tx_hash, receipt, status and contract_address

    Raises:
        TimeoutError: If the creation is not mined within ``timeout``
        RuntimeError: If the creation reverted or the receipt has no address
    """
    tx_hash = await send_transaction(provider, build_deploy_tx(sender, bytecode, gas_limit))
    receipt = await wait_for_receipt(
        provider, tx_hash, timeout=timeout, poll_interval=poll_interval
    )

    if not receipt_succeeded(receipt):
        raise RuntimeError(f"Deployment transaction {tx_hash} reverted")

    contract_address = receipt.get("contractAddress")
    if not contract_address:
        raise RuntimeError(f"Receipt for {tx_hash} has no contract address")

    return {
        "tx_hash": tx_hash,
        "receipt": receipt,
        "status": 1,
        "contract_address": contract_address,
    }


async def has_code(provider: Requester, address: str) -> bool:
    code = await get_code(provider, address)
    return code not in ("0x", "0x0", "")
