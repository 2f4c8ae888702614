"""
Wallet providers.

A wallet provider is the EIP-1193 shaped object the client talks to: one
``request(method, params)`` coroutine. Browser extensions expose exactly
this; ``LocalWallet`` gives the same surface over a local private key and
an HTTP RPC endpoint, so deployment scripts and the CLI share the client
code with browser-backed applications.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from eth_account.signers.local import LocalAccount

from ..networks import NETWORKS, NetworkConfig
from ..utils import hex_to_int
from .abi import to_checksum_address
from .rpc import RpcClient, RpcError, get_chain_id, get_gas_price, get_nonce

logger = logging.getLogger(__name__)

# EIP-1193 / EIP-3326 provider error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNRECOGNIZED_CHAIN = 4902

Approval = Callable[[dict[str, Any]], Union[bool, Awaitable[bool]]]


class WalletProvider(Protocol):
    async def request(self, method: str, params: Optional[list] = None) -> Any:
        ...


async def _approved(callback: Optional[Approval], payload: dict[str, Any]) -> bool:
    if callback is None:
        return True
    result = callback(payload)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


class LocalWallet:
    """
    Private-key wallet over an HTTP RPC endpoint.

    Args:
        rpc: Client for the currently selected chain
        account: Signing account; None behaves like a locked wallet
        approve: Called with each transaction request before signing;
            returning False rejects it with code 4001
        rpc_factory: Builds the RPC client after a chain switch
    """

    def __init__(
        self,
        rpc: RpcClient,
        account: Optional[LocalAccount] = None,
        *,
        approve: Optional[Approval] = None,
        rpc_factory: Callable[[str], RpcClient] = RpcClient,
    ) -> None:
        self.rpc = rpc
        self.account = account
        self._approve = approve
        self._rpc_factory = rpc_factory
        self._known_chains: dict[int, str] = {n.chain_id: n.rpc_url for n in NETWORKS.values()}

    @classmethod
    def for_network(
        cls,
        network: NetworkConfig,
        account: Optional[LocalAccount] = None,
        rpc_url: Optional[str] = None,
        **kwargs: Any,
    ) -> "LocalWallet":
        return cls(RpcClient(rpc_url or network.rpc_url), account, **kwargs)

    @property
    def address(self) -> Optional[str]:
        return self.account.address if self.account else None

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        params = params or []

        if method in ("eth_requestAccounts", "eth_accounts"):
            return [self.account.address] if self.account else []

        if method == "eth_sendTransaction":
            return await self._send_transaction(params[0])

        if method == "wallet_switchEthereumChain":
            return await self._switch_chain(hex_to_int(params[0]["chainId"]))

        if method == "wallet_addEthereumChain":
            chain = params[0]
            self._known_chains[hex_to_int(chain["chainId"])] = chain["rpcUrls"][0]
            return None

        return await self.rpc.request(method, params)

    async def _switch_chain(self, chain_id: int) -> None:
        rpc_url = self._known_chains.get(chain_id)
        if rpc_url is None:
            raise RpcError(UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {hex(chain_id)}")
        if rpc_url != self.rpc.rpc_url:
            await self.rpc.aclose()
            self.rpc = self._rpc_factory(rpc_url)
        logger.info("Wallet switched to chain %d (%s)", chain_id, rpc_url)

    async def _send_transaction(self, request: dict[str, Any]) -> str:
        if self.account is None:
            raise RpcError(UNAUTHORIZED, "Wallet is locked")

        sender = request.get("from")
        if sender and sender.lower() != self.account.address.lower():
            raise RpcError(UNAUTHORIZED, f"Account {sender} is not managed by this wallet")

        if not await _approved(self._approve, request):
            raise RpcError(USER_REJECTED, "User rejected the request.")

        tx: dict[str, Any] = {
            "value": hex_to_int(request.get("value")),
            "data": request.get("data", "0x"),
            "chainId": await get_chain_id(self.rpc),
        }
        if request.get("to"):
            tx["to"] = to_checksum_address(request["to"])

        tx["nonce"] = (
            hex_to_int(request["nonce"])
            if "nonce" in request
            else await get_nonce(self.rpc, self.account.address)
        )
        tx["gasPrice"] = (
            hex_to_int(request["gasPrice"])
            if "gasPrice" in request
            else await get_gas_price(self.rpc)
        )
        if "gas" in request:
            tx["gas"] = hex_to_int(request["gas"])
        else:
            estimate_req = {k: v for k, v in request.items() if k in ("from", "to", "data", "value")}
            estimate_req["from"] = self.account.address
            tx["gas"] = hex_to_int(await self.rpc.request("eth_estimateGas", [estimate_req]))

        signed = self.account.sign_transaction(tx)
        raw_tx = "0x" + bytes(signed.raw_transaction).hex()
        return await self.rpc.request("eth_sendRawTransaction", [raw_tx])

    async def aclose(self) -> None:
        await self.rpc.aclose()
