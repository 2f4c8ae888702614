"""
In-memory chain and wallet for tests.

``FakeChain`` answers the JSON-RPC methods croupier uses and runs a tiny
game contract at every address it deploys to: ``placeBet`` credits the
sender's in-game balance, ``cashOut`` pays it back, both emit events.
``FakeWallet`` is an EIP-1193 style provider in front of it.
"""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Any, Optional

import httpx
from eth_abi import encode

from croupier.chain.abi import event_topic, function_abi, function_selector
from croupier.chain.rpc import RpcError
from croupier.chain.wallet import UNRECOGNIZED_CHAIN, USER_REJECTED
from croupier.constants import GAME_CONTRACTS
from croupier.utils import hex_to_int

DEPLOYER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
PLAYER = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
TESTNET_CHAIN_ID = 10143

GAME_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "placeBet",
        "stateMutability": "payable",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "cashOut",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getPlayerBalance",
        "stateMutability": "view",
        "inputs": [{"name": "player", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getActiveGame",
        "stateMutability": "view",
        "inputs": [{"name": "player", "type": "address"}],
        "outputs": [
            {"name": "active", "type": "bool"},
            {"name": "betAmount", "type": "uint256"},
        ],
    },
    {
        "type": "event",
        "name": "BetPlaced",
        "anonymous": False,
        "inputs": [
            {"name": "player", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "CashedOut",
        "anonymous": False,
        "inputs": [
            {"name": "player", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
        ],
    },
]

_SELECTORS = {
    "0x" + function_selector(function_abi(GAME_ABI, name)).hex(): name
    for name in ("placeBet", "cashOut", "getPlayerBalance", "getActiveGame")
}
_TOPICS = {
    name: event_topic(next(e for e in GAME_ABI if e.get("name") == name))
    for name in ("BetPlaced", "CashedOut")
}


def game_bytecode(name: str) -> str:
    return "0x60" + name.encode("utf-8").hex()


def write_build_dir(build_dir: Path, names=GAME_CONTRACTS) -> Path:
    """Lay out Hardhat-style compiled artifacts for ``names``."""
    for name in names:
        target = build_dir / "contracts" / f"{name}.sol"
        target.mkdir(parents=True, exist_ok=True)
        artifact = {
            "_format": "hh-sol-artifact-1",
            "contractName": name,
            "sourceName": f"contracts/{name}.sol",
            "abi": GAME_ABI,
            "bytecode": game_bytecode(name),
            "deployedBytecode": game_bytecode(name),
        }
        (target / f"{name}.json").write_text(json.dumps(artifact), encoding="utf-8")
    return build_dir


def _word(types: list[str], values: list[Any]) -> str:
    return "0x" + encode(types, values).hex()


class FakeChain:
    """
    Attributes tests flip to provoke failures:
        offline: Every request raises ``httpx.ConnectError``
        withhold_receipts: Receipts never appear
        failing_bytecode: Creations with this bytecode revert
        empty_bytecode: Creations with this bytecode leave no code
        gas_required: Gas a call needs; a lower ceiling runs out of gas
        reverting: Functions rejected by the node at submission
        code_lookup_fails: Addresses whose ``eth_getCode`` raises ``httpx.ConnectError``
    """

    def __init__(self, chain_id: int = TESTNET_CHAIN_ID) -> None:
        self.chain_id = chain_id
        self.block_number = 100
        self.gas_price = 50 * 10**9
        self.balances: dict[str, int] = {}
        self.code: dict[str, str] = {}
        self.games: dict[str, dict[str, int]] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        self.transactions: list[dict[str, Any]] = []
        self.logs: list[dict[str, Any]] = []
        self.nonces: dict[str, int] = {}
        self.offline = False
        self.withhold_receipts = False
        self.failing_bytecode: set[str] = set()
        self.empty_bytecode: set[str] = set()
        self.gas_required = {"placeBet": 60_000, "cashOut": 40_000, "deploy": 1_000_000}
        self.reverting: set[str] = set()
        self.code_lookup_fails: set[str] = set()
        self._counter = itertools.count(1)

    def fund(self, address: str, wei: int) -> None:
        self.balances[address.lower()] = wei

    def deployed_addresses(self) -> list[str]:
        return list(self.code)

    # ---- JSON-RPC ----

    async def handle(self, method: str, params: list) -> Any:
        if self.offline:
            raise httpx.ConnectError("connection refused")

        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_blockNumber":
            return hex(self.block_number)
        if method == "eth_gasPrice":
            return hex(self.gas_price)
        if method == "eth_getBalance":
            return hex(self.balances.get(params[0].lower(), 0))
        if method == "eth_getCode":
            if params[0].lower() in self.code_lookup_fails:
                raise httpx.ConnectError("connection reset")
            return self.code.get(params[0].lower(), "0x")
        if method == "eth_getTransactionCount":
            return hex(self.nonces.get(params[0].lower(), 0))
        if method == "eth_estimateGas":
            return hex(21_000)
        if method == "eth_getTransactionReceipt":
            if self.withhold_receipts:
                return None
            return self.receipts.get(params[0])
        if method == "eth_getLogs":
            return self._get_logs(params[0])
        if method == "eth_call":
            return self._call(params[0])
        raise RpcError(-32601, f"Method {method} not found")

    def submit(self, sender: str, tx: dict[str, Any]) -> str:
        """Mine ``tx`` into a new block and return its hash."""
        if self.offline:
            raise httpx.ConnectError("connection refused")

        to = tx.get("to")
        function = _SELECTORS.get(tx.get("data", "")[:10]) if to else None
        if function in self.reverting:
            raise RpcError(3, "execution reverted")

        n = next(self._counter)
        tx_hash = f"0x{n:064x}"
        self.block_number += 1
        self.nonces[sender.lower()] = self.nonces.get(sender.lower(), 0) + 1
        self.transactions.append(dict(tx, hash=tx_hash, sender=sender))

        gas = hex_to_int(tx.get("gas")) if "gas" in tx else 10**7
        receipt: dict[str, Any] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block_number),
            "from": sender,
            "to": to,
            "contractAddress": None,
            "status": "0x1",
            "gasUsed": hex(21_000),
            "logs": [],
        }

        if not to:
            self._deploy(tx["data"], n, gas, receipt)
        elif function is not None:
            needed = self.gas_required.get(function, 21_000)
            if gas < needed:
                receipt.update(status="0x0", gasUsed=hex(gas))
            else:
                receipt["gasUsed"] = hex(needed)
                self._run_game(to.lower(), function, sender, hex_to_int(tx.get("value")), receipt)

        self.receipts[tx_hash] = receipt
        return tx_hash

    # ---- Contract behaviour ----

    def _deploy(self, bytecode: str, n: int, gas: int, receipt: dict[str, Any]) -> None:
        if bytecode in self.failing_bytecode or gas < self.gas_required["deploy"]:
            receipt["status"] = "0x0"
            return
        address = f"0x{0xC0DE0000 + n:040x}"
        receipt["contractAddress"] = address
        receipt["gasUsed"] = hex(self.gas_required["deploy"])
        if bytecode not in self.empty_bytecode:
            self.code[address] = bytecode
            self.games[address] = {}

    def _run_game(
        self, address: str, function: str, sender: str, value: int, receipt: dict[str, Any]
    ) -> None:
        balances = self.games.setdefault(address, {})
        player = sender.lower()
        if function == "placeBet":
            self.balances[player] = self.balances.get(player, 0) - value
            balances[player] = balances.get(player, 0) + value
            self._emit(address, "BetPlaced", sender, value, receipt)
        elif function == "cashOut":
            amount = balances.pop(player, 0)
            self.balances[player] = self.balances.get(player, 0) + amount
            self._emit(address, "CashedOut", sender, amount, receipt)

    def _emit(
        self, address: str, event: str, player: str, amount: int, receipt: dict[str, Any]
    ) -> None:
        log = {
            "address": address,
            "topics": [_TOPICS[event], _word(["address"], [player])],
            "data": _word(["uint256"], [amount]),
            "blockNumber": receipt["blockNumber"],
            "transactionHash": receipt["transactionHash"],
            "logIndex": hex(len(receipt["logs"])),
        }
        receipt["logs"].append(log)
        self.logs.append(log)

    def _call(self, request: dict[str, Any]) -> str:
        address = request["to"].lower()
        if address not in self.code:
            return "0x"
        data = request.get("data", "0x")
        function = _SELECTORS.get(data[:10])
        player = "0x" + data[-40:]
        balance = self.games.get(address, {}).get(player.lower(), 0)
        if function == "getPlayerBalance":
            return _word(["uint256"], [balance])
        if function == "getActiveGame":
            return _word(["bool", "uint256"], [balance > 0, balance])
        raise RpcError(3, "execution reverted")

    def _get_logs(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        start = hex_to_int(query["fromBlock"])
        end = hex_to_int(query["toBlock"])
        address = query["address"].lower()
        return [
            log
            for log in self.logs
            if log["address"] == address and start <= hex_to_int(log["blockNumber"]) <= end
        ]


class FakeWallet:
    """
    EIP-1193 style provider for one account on a ``FakeChain``.

    Attributes tests flip:
        address: None models a wallet exposing no accounts
        reject_connect: Account access requests fail with 4001
        reject_transactions: Signing requests fail with 4001
        refuse_switch: Chain switch requests fail with 4001
    """

    def __init__(
        self,
        chain: FakeChain,
        address: Optional[str] = DEPLOYER,
        chain_id: Optional[int] = None,
    ) -> None:
        self.chain = chain
        self.address = address
        self.chain_id = chain.chain_id if chain_id is None else chain_id
        self.known_chains = {TESTNET_CHAIN_ID, 143, chain.chain_id}
        self.reject_connect = False
        self.reject_transactions = False
        self.refuse_switch = False
        self.requests: list[str] = []
        self.closed = False

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        params = params or []
        self.requests.append(method)

        if method in ("eth_requestAccounts", "eth_accounts"):
            if self.reject_connect:
                raise RpcError(USER_REJECTED, "User rejected the request.")
            return [self.address] if self.address else []

        if method == "eth_chainId":
            if self.chain.offline:
                raise httpx.ConnectError("connection refused")
            return hex(self.chain_id)

        if method == "wallet_switchEthereumChain":
            if self.refuse_switch:
                raise RpcError(USER_REJECTED, "User rejected the request.")
            chain_id = hex_to_int(params[0]["chainId"])
            if chain_id not in self.known_chains:
                raise RpcError(UNRECOGNIZED_CHAIN, "Unrecognized chain ID")
            self.chain_id = chain_id
            return None

        if method == "wallet_addEthereumChain":
            self.known_chains.add(hex_to_int(params[0]["chainId"]))
            return None

        if method == "eth_sendTransaction":
            if self.reject_transactions:
                raise RpcError(USER_REJECTED, "User rejected the request.")
            return self.chain.submit(self.address, params[0])

        return await self.chain.handle(method, params)

    def sent(self) -> list[dict[str, Any]]:
        return [tx for tx in self.chain.transactions if tx["sender"] == self.address]

    async def aclose(self) -> None:
        self.closed = True
