"""
ABI handling for the storage contract.

``STORAGE_ABI`` is the wire contract between this tool and the deployed
contract and must stay byte-for-byte compatible with the compiler output.
Parsing validates the JSON structure with jsonschema before anything is
encoded, so a broken ABI never reaches the network.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import jsonschema
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_hash.auto import keccak

from .errors import AbiParseError, CallError, DecodeError

STORAGE_ABI = """
[
	{
		"inputs": [],
		"name": "retrieve",
		"outputs": [
			{
				"internalType": "uint256",
				"name": "",
				"type": "uint256"
			}
		],
		"stateMutability": "view",
		"type": "function"
	},
	{
		"inputs": [
			{
				"internalType": "uint256",
				"name": "num",
				"type": "uint256"
			}
		],
		"name": "store",
		"outputs": [],
		"stateMutability": "nonpayable",
		"type": "function"
	}
]"""

_PARAM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "name": {"type": "string"},
        "type": {"type": "string", "minLength": 1},
        "internalType": {"type": "string"},
        "indexed": {"type": "boolean"},
    },
}

ABI_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["type"],
        "properties": {
            "type": {
                "enum": ["function", "constructor", "event", "error", "fallback", "receive"],
            },
            "name": {"type": "string"},
            "inputs": {"type": "array", "items": _PARAM_SCHEMA},
            "outputs": {"type": "array", "items": _PARAM_SCHEMA},
            "stateMutability": {"enum": ["pure", "view", "nonpayable", "payable"]},
            "anonymous": {"type": "boolean"},
        },
        "if": {"properties": {"type": {"const": "function"}}},
        "then": {"required": ["type", "name", "inputs"]},
    },
}

READ_ONLY_MUTABILITY = frozenset({"view", "pure"})


def function_selector(signature: str) -> bytes:
    """First 4 bytes of Keccak-256 over the canonical signature."""
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(signature.encode("utf-8"))[:4]


def _strip_0x(data: str) -> str:
    return data[2:] if data.startswith(("0x", "0X")) else data


@dataclass(frozen=True)
class AbiFunction:
    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    state_mutability: str = "nonpayable"

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "AbiFunction":
        return cls(
            name=entry["name"],
            inputs=tuple(p["type"] for p in entry.get("inputs", [])),
            outputs=tuple(p["type"] for p in entry.get("outputs", [])),
            state_mutability=entry.get("stateMutability", "nonpayable"),
        )

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    @property
    def is_read_only(self) -> bool:
        return self.state_mutability in READ_ONLY_MUTABILITY

    def encode_call(self, *args: Any) -> bytes:
        """
        ABI-encode a call to this function.

        Returns:
            Calldata: 4-byte selector followed by the encoded arguments

        Raises:
            CallError: Wrong argument count or a value the type cannot hold
        """
        if len(args) != len(self.inputs):
            raise CallError(
                f"{self.signature} takes {len(self.inputs)} argument(s), got {len(args)}"
            )
        if not args:
            return self.selector
        try:
            return self.selector + encode(list(self.inputs), list(args))
        except (EncodingError, TypeError, ValueError) as exc:
            raise CallError(f"Cannot encode arguments for {self.signature}: {exc}") from exc

    def decode_call(self, calldata: bytes | str) -> tuple:
        """Recover the argument tuple from calldata produced by ``encode_call``."""
        try:
            raw = bytes.fromhex(_strip_0x(calldata)) if isinstance(calldata, str) else calldata
        except ValueError as exc:
            raise DecodeError(f"Calldata for {self.signature} is not hex") from exc
        if raw[:4] != self.selector:
            raise DecodeError(f"Calldata is not a call to {self.signature}")
        if not self.inputs:
            return ()
        try:
            return tuple(decode(list(self.inputs), raw[4:]))
        except DecodingError as exc:
            raise DecodeError(f"Malformed calldata for {self.signature}: {exc}") from exc

    def decode_output(self, data: bytes | str) -> tuple:
        """
        ABI-decode return data.

        Raises:
            DecodeError: Empty or malformed return data
        """
        if not self.outputs:
            return ()
        try:
            raw = bytes.fromhex(_strip_0x(data)) if isinstance(data, str) else data
        except ValueError as exc:
            raise DecodeError(f"Return data for {self.name} is not hex") from exc
        if not raw:
            # Calls to an address without code come back empty.
            raise DecodeError(f"Empty return data for {self.name}")
        try:
            return tuple(decode(list(self.outputs), raw))
        except DecodingError as exc:
            raise DecodeError(f"Malformed return data for {self.name}: {exc}") from exc


@dataclass(frozen=True)
class ContractAbi:
    entries: tuple[dict[str, Any], ...]
    functions: dict[str, AbiFunction]

    def function(self, name: str) -> AbiFunction:
        try:
            return self.functions[name]
        except KeyError:
            raise CallError(f"Function {name} not found in ABI") from None

    def __contains__(self, name: object) -> bool:
        return name in self.functions


def _format_error(error: jsonschema.ValidationError) -> str:
    location = "/".join(str(part) for part in error.path) or "<root>"
    return f"{location}: {error.message}"


def parse_abi(text: str) -> ContractAbi:
    """
    Parse and validate an ABI JSON document.

    Args:
        text: ABI JSON (a list of entries, as emitted by solc)

    Returns:
        ContractAbi with one AbiFunction per function entry

    Raises:
        AbiParseError: Invalid JSON or an entry that violates the ABI schema
    """
    try:
        entries = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise AbiParseError(f"ABI is not valid JSON: {exc}") from exc

    validator_cls = jsonschema.validators.validator_for(ABI_SCHEMA)
    validator = validator_cls(ABI_SCHEMA)
    errors = sorted(validator.iter_errors(entries), key=lambda e: [str(p) for p in e.path])
    if errors:
        formatted = [_format_error(err) for err in errors]
        raise AbiParseError(f"ABI failed validation: {formatted[0]}", errors=formatted)

    functions: dict[str, AbiFunction] = {}
    for entry in entries:
        if entry["type"] != "function":
            continue
        func = AbiFunction.from_entry(entry)
        if func.name in functions:
            # Overloads are not addressable by bare name.
            raise AbiParseError(f"Overloaded function {func.name} is not supported")
        functions[func.name] = func

    return ContractAbi(entries=tuple(entries), functions=functions)
