"""
ABI helpers for the JSON-RPC adapter.

Selector lookup, calldata encoding, return-data decoding, event log
decoding and revert-reason extraction for the registry ABIs in
erc8004.core.registry.
"""

from __future__ import annotations

from typing import Any

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address

from erc8004.core.exceptions import ValidationError
from erc8004.core.types import ContractEvent

# Error(string) and Panic(uint256)
REVERT_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")


def canonical_type(param: dict[str, Any]) -> str:
    """ABI type string, expanding tuple components: tuple[] -> (string,bytes)[]."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def function_signature(entry: dict[str, Any]) -> str:
    types = ",".join(canonical_type(p) for p in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def function_selector(entry: dict[str, Any]) -> bytes:
    return keccak(text=function_signature(entry))[:4]


def event_topic(entry: dict[str, Any]) -> bytes:
    return keccak(text=function_signature(entry))


def find_function(abi: list[dict[str, Any]], name: str, args: list[Any] | None = None) -> dict[str, Any]:
    """
    Look up a function by bare name or full signature.

    With a bare name and several overloads, the overload whose input count
    matches len(args) wins.
    """
    functions = [e for e in abi if e.get("type") == "function"]
    if "(" in name:
        for entry in functions:
            if function_signature(entry) == name:
                return entry
        raise ValidationError(f"Function {name} not in ABI", field="function_name")

    candidates = [e for e in functions if e["name"] == name]
    if not candidates:
        raise ValidationError(f"Function {name} not in ABI", field="function_name")
    if len(candidates) > 1 and args is not None:
        matching = [e for e in candidates if len(e.get("inputs", [])) == len(args)]
        if len(matching) == 1:
            return matching[0]
        raise ValidationError(
            f"Function {name} is overloaded; pass the full signature", field="function_name"
        )
    return candidates[0]


def encode_call(entry: dict[str, Any], args: list[Any]) -> bytes:
    """Selector + ABI-encoded arguments."""
    types = [canonical_type(p) for p in entry.get("inputs", [])]
    if len(types) != len(args):
        raise ValidationError(
            f"{entry['name']} expects {len(types)} arguments, got {len(args)}",
            field="args",
        )
    try:
        return function_selector(entry) + abi_encode(types, list(args))
    except Exception as exc:
        raise ValidationError(
            f"Could not encode arguments for {function_signature(entry)}: {exc}", field="args"
        ) from exc


def _normalize(abi_type: str, value: Any) -> Any:
    """Addresses to checksum strings, fixed bytes to 0x-hex, recursively."""
    if abi_type.endswith("]"):
        inner = abi_type[: abi_type.rindex("[")]
        return [_normalize(inner, v) for v in value]
    if abi_type.startswith("("):
        inner_types = _split_tuple(abi_type)
        return tuple(_normalize(t, v) for t, v in zip(inner_types, value))
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith("bytes") and abi_type != "bytes":
        return "0x" + bytes(value).hex()
    return value


def _split_tuple(abi_type: str) -> list[str]:
    body = abi_type[1:-1]
    parts, depth, current = [], 0, ""
    for ch in body:
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        depth += ch == "("
        depth -= ch == ")"
        current += ch
    if current:
        parts.append(current)
    return parts


def decode_result(entry: dict[str, Any], data: bytes) -> Any:
    """
    Decode return data.

    One output returns the bare value; several return a dict keyed by
    output name, falling back to the position for unnamed outputs.
    """
    outputs = entry.get("outputs", [])
    types = [canonical_type(p) for p in outputs]
    values = abi_decode(types, data)
    normalized = [_normalize(t, v) for t, v in zip(types, values)]
    if len(outputs) == 1:
        return normalized[0]
    return {
        (p.get("name") or str(i)): v for i, (p, v) in enumerate(zip(outputs, normalized))
    }


def decode_revert_reason(data: bytes | None) -> str | None:
    """Extract the message from Error(string) / Panic(uint256) revert data."""
    if not data or len(data) < 4:
        return None
    selector, payload = data[:4], data[4:]
    try:
        if selector == REVERT_SELECTOR:
            return abi_decode(["string"], payload)[0]
        if selector == PANIC_SELECTOR:
            return f"Panic(0x{abi_decode(['uint256'], payload)[0]:x})"
    except Exception:
        return None
    return None


def decode_logs(abi: list[dict[str, Any]], logs: list[dict[str, Any]]) -> list[ContractEvent]:
    """
    Decode receipt logs that match events of the given ABI.

    Logs emitted by other contracts or unknown events are skipped.
    """
    events_by_topic = {
        event_topic(e): e for e in abi if e.get("type") == "event" and not e.get("anonymous")
    }
    decoded: list[ContractEvent] = []
    for log in logs:
        topics = [_hex_to_bytes(t) for t in log.get("topics", [])]
        if not topics or topics[0] not in events_by_topic:
            continue
        entry = events_by_topic[topics[0]]
        indexed = [p for p in entry["inputs"] if p.get("indexed")]
        plain = [p for p in entry["inputs"] if not p.get("indexed")]

        args: dict[str, Any] = {}
        for param, topic in zip(indexed, topics[1:]):
            abi_type = canonical_type(param)
            if abi_type in ("string", "bytes") or abi_type.endswith("]") or abi_type.startswith("("):
                # Dynamic indexed values are only available as their hash
                args[param["name"]] = "0x" + topic.hex()
            else:
                args[param["name"]] = _normalize(abi_type, abi_decode([abi_type], topic)[0])

        plain_types = [canonical_type(p) for p in plain]
        if plain_types:
            values = abi_decode(plain_types, _hex_to_bytes(log.get("data", "0x")))
            for param, abi_type, value in zip(plain, plain_types, values):
                args[param["name"]] = _normalize(abi_type, value)

        decoded.append(ContractEvent(name=entry["name"], args=args, address=log.get("address")))
    return decoded


def _hex_to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


__all__ = [
    "canonical_type",
    "function_signature",
    "function_selector",
    "event_topic",
    "find_function",
    "encode_call",
    "decode_result",
    "decode_revert_reason",
    "decode_logs",
]
