"""
Async JSON-RPC client.

Lightweight alternative to web3.py: httpx for HTTP, eth-abi (see
``abi.py``) for encoding. The helper coroutines below accept anything with
an async ``request(method, params)`` method, so they work the same against
an ``RpcClient`` or a wallet provider.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional, Protocol

import httpx

from ..utils import hex_to_int

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Requester(Protocol):
    async def request(self, method: str, params: Optional[list] = None) -> Any:
        ...


class RpcError(RuntimeError):
    """JSON-RPC error response (or EIP-1193 provider error)."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RpcClient:
    """JSON-RPC over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: If the node returned an error object
            httpx.HTTPError: If the request itself failed
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        response = await self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        data = response.json()

        if "error" in data:
            error = data["error"] or {}
            raise RpcError(
                int(error.get("code", -32603)),
                str(error.get("message", "unknown error")),
                error.get("data"),
            )

        return data.get("result")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


async def get_chain_id(provider: Requester) -> int:
    return hex_to_int(await provider.request("eth_chainId", []))


async def get_balance(provider: Requester, address: str) -> int:
    """Balance of ``address`` in wei."""
    return hex_to_int(await provider.request("eth_getBalance", [address, "latest"]))


async def get_code(provider: Requester, address: str) -> str:
    """Runtime bytecode at ``address`` ("0x" when there is none)."""
    code = await provider.request("eth_getCode", [address, "latest"])
    return code or "0x"


async def get_nonce(provider: Requester, address: str) -> int:
    result = await provider.request("eth_getTransactionCount", [address, "pending"])
    return hex_to_int(result)


async def get_gas_price(provider: Requester) -> int:
    return hex_to_int(await provider.request("eth_gasPrice", []))


async def get_block_number(provider: Requester) -> int:
    return hex_to_int(await provider.request("eth_blockNumber", []))


async def eth_call(provider: Requester, to: str, data: str) -> str:
    return await provider.request("eth_call", [{"to": to, "data": data}, "latest"])


async def get_logs(
    provider: Requester,
    address: str,
    from_block: int,
    to_block: int,
    topics: Optional[list] = None,
) -> list[dict]:
    params: dict[str, Any] = {
        "address": address,
        "fromBlock": hex(from_block),
        "toBlock": hex(to_block),
    }
    if topics:
        params["topics"] = topics
    return await provider.request("eth_getLogs", [params]) or []


async def wait_for_receipt(
    provider: Requester,
    tx_hash: str,
    timeout: Optional[float] = None,
    poll_interval: float = 2.0,
) -> dict:
    """
    Poll until a transaction receipt is available.

    Args:
        provider: Anything with an async ``request`` method
        tx_hash: Transaction hash
        timeout: Maximum wait in seconds; None waits indefinitely
        poll_interval: Seconds between polls

    Raises:
        TimeoutError: If no receipt appeared within ``timeout``
    """
    start = time.monotonic()
    while True:
        receipt = await provider.request("eth_getTransactionReceipt", [tx_hash])
        if receipt is not None:
            return receipt
        if timeout is not None and time.monotonic() - start >= timeout:
            raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")
        logger.debug("Receipt for %s not available yet", tx_hash)
        await asyncio.sleep(poll_interval)
