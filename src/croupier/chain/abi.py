"""
ABI helpers: compiled artifact loading, call encoding, event decoding.

Compiled artifacts are read from Hardhat (``<build>/contracts/<Name>.sol/
<Name>.json``) or Foundry (``<build>/<Name>.sol/<Name>.json``) output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from eth_abi import decode, encode
from eth_hash.auto import keccak


def keccak256(data: bytes) -> bytes:
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(data)


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format."""
    addr = address.lower().replace("0x", "")
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


# ---------------------------------------------------------------------------
# Compiled artifacts
# ---------------------------------------------------------------------------


def find_compiled_artifact(contract_name: str, build_dir: Path) -> Path:
    """
    Locate the compiled artifact for a contract.

    Raises:
        FileNotFoundError: If neither the Hardhat nor the Foundry layout has it
    """
    candidates = [
        build_dir / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json",
        build_dir / f"{contract_name}.sol" / f"{contract_name}.json",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(
        f"Compiled artifact for {contract_name} not found under {build_dir}. "
        "Compile the contracts first."
    )


def load_compiled_artifact(contract_name: str, build_dir: Path) -> dict[str, Any]:
    path = find_compiled_artifact(contract_name, build_dir)
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def artifact_bytecode(artifact: dict[str, Any]) -> str:
    """
    Creation bytecode from a compiled artifact, 0x-prefixed.

    Raises:
        ValueError: If the artifact carries no bytecode
    """
    bytecode = artifact.get("bytecode", "")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if not bytecode or bytecode == "0x":
        raise ValueError(f"No bytecode in artifact for {artifact.get('contractName', '?')}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def _canonical_type(param: dict[str, Any]) -> str:
    type_ = param["type"]
    if type_.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){type_[len('tuple'):]}"
    return type_


def _checksum_addresses(param: dict[str, Any], value: Any) -> Any:
    """Checksum every ``address`` inside a decoded value; eth-abi casing varies by release."""
    type_ = param["type"]
    if type_.endswith("]"):
        inner = dict(param, type=type_[: type_.rindex("[")])
        return type(value)(_checksum_addresses(inner, v) for v in value)
    if type_ == "tuple":
        return tuple(
            _checksum_addresses(comp, v) for comp, v in zip(param.get("components", []), value)
        )
    if type_ == "address":
        return to_checksum_address(value)
    return value


def function_abi(abi: list, function_name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return entry
    raise ValueError(f"Function {function_name} not found in ABI")


def has_function(abi: list, function_name: str) -> bool:
    return any(
        e.get("type") == "function" and e.get("name") == function_name for e in abi
    )


def function_selector(func: dict[str, Any]) -> bytes:
    input_types = [_canonical_type(inp) for inp in func.get("inputs", [])]
    sig = f"{func['name']}({','.join(input_types)})"
    return keccak256(sig.encode("utf-8"))[:4]


def encode_call(abi: list, function_name: str, args: Optional[list] = None) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex calldata
    """
    func = function_abi(abi, function_name)
    input_types = [_canonical_type(inp) for inp in func.get("inputs", [])]
    args = list(args or [])
    if len(args) != len(input_types):
        raise ValueError(
            f"{function_name} expects {len(input_types)} argument(s), got {len(args)}"
        )
    encoded_args = encode(input_types, args) if args else b""
    return "0x" + function_selector(func).hex() + encoded_args.hex()


def decode_result(abi: list, function_name: str, data: str) -> Any:
    """
    ABI-decode a function return value.

    Returns:
        A single value, a tuple for multiple outputs, or None for no outputs
    """
    func = function_abi(abi, function_name)
    outputs = func.get("outputs", [])
    if not outputs:
        return None

    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    decoded = tuple(
        _checksum_addresses(out, value)
        for out, value in zip(outputs, decode([_canonical_type(out) for out in outputs], raw))
    )

    if len(decoded) == 1:
        return decoded[0]
    return decoded


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def event_abi(abi: list, event_name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == event_name:
            return entry
    raise ValueError(f"Event {event_name} not found in ABI")


def event_topic(event: dict[str, Any]) -> str:
    input_types = [_canonical_type(inp) for inp in event.get("inputs", [])]
    sig = f"{event['name']}({','.join(input_types)})"
    return "0x" + keccak256(sig.encode("utf-8")).hex()


def _is_dynamic(type_: str) -> bool:
    return type_ in ("string", "bytes") or type_.endswith("]") or type_.startswith("(")


def decode_event_log(event: dict[str, Any], log: dict[str, Any]) -> dict[str, Any]:
    """
    Decode a raw log entry into ``{name: value}`` for each event input.

    Indexed dynamic values (strings, bytes, arrays) are only recoverable as
    their Keccak hash, which is returned as raw bytes.
    """
    inputs = event.get("inputs", [])
    topics = list(log.get("topics", []))[1:]  # topic 0 is the signature

    indexed = [inp for inp in inputs if inp.get("indexed")]
    plain = [inp for inp in inputs if not inp.get("indexed")]

    values: dict[str, Any] = {}
    for inp, topic in zip(indexed, topics):
        raw = bytes.fromhex(topic[2:])
        type_ = _canonical_type(inp)
        if _is_dynamic(type_):
            values[inp["name"]] = raw
        else:
            values[inp["name"]] = _checksum_addresses(inp, decode([type_], raw)[0])

    data = log.get("data") or "0x"
    if plain:
        decoded = decode([_canonical_type(inp) for inp in plain], bytes.fromhex(data[2:]))
        for inp, value in zip(plain, decoded):
            values[inp["name"]] = _checksum_addresses(inp, value)

    return values
