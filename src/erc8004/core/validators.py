"""
Local input validation shared by the encoder, clients and IPFS helpers.

Every check raises ValidationError before any network or signing work
happens.
"""

from __future__ import annotations

from typing import Any

from eth_utils import is_address, is_hex, to_checksum_address

from erc8004.core.exceptions import ValidationError

MIN_SCORE = 0
MAX_SCORE = 100


def require_address(value: Any, field: str = "address") -> str:
    """Validate a 20-byte account identifier and return it checksummed."""
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(
            f"{field} must be a 20-byte hex address, got {value!r}",
            field=field,
        )
    return to_checksum_address(value)


def require_uint(value: Any, bits: int = 256, field: str = "value") -> int:
    """Validate that value is an int within [0, 2**bits)."""
    # bool is an int subclass but never a meaningful on-chain integer here
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer, got {type(value).__name__}", field=field)
    if value < 0:
        raise ValidationError(f"{field} must be non-negative, got {value}", field=field)
    if value >= 1 << bits:
        raise ValidationError(f"{field} does not fit in uint{bits}", field=field)
    return value


def require_bytes32(value: Any, field: str = "hash") -> bytes:
    """Accept a 32-byte value as bytes or 0x-hex and return raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str) and is_hex(value):
        hex_part = value[2:] if value.lower().startswith("0x") else value
        try:
            raw = bytes.fromhex(hex_part)
        except ValueError as exc:
            raise ValidationError(f"{field} is not valid hex", field=field) from exc
    else:
        raise ValidationError(f"{field} must be 32 bytes or a 0x-hex string", field=field)

    if len(raw) != 32:
        raise ValidationError(f"{field} must be exactly 32 bytes, got {len(raw)}", field=field)
    return raw


def require_score(value: Any, field: str = "score") -> int:
    """Validate a 0-100 score (feedback score or validation response)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    if value < MIN_SCORE or value > MAX_SCORE:
        raise ValidationError(
            f"{field} MUST be between {MIN_SCORE} and {MAX_SCORE}, got {value}",
            field=field,
        )
    return value


__all__ = [
    "MIN_SCORE",
    "MAX_SCORE",
    "require_address",
    "require_uint",
    "require_bytes32",
    "require_score",
]
