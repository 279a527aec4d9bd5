"""
Canonical encoding and digest of the feedbackAuth record.

The record is ABI-encoded as a static tuple: every field occupies one
32-byte big-endian slot, addresses left-padded with zeros. The digest is
keccak-256 over those 224 bytes. Verifiers decode the same layout, so field
order and widths here are part of the wire protocol.
"""

from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address

from erc8004.core.exceptions import ValidationError
from erc8004.core.registry import ENCODED_FEEDBACK_AUTH_LENGTH, FEEDBACK_AUTH_TYPES
from erc8004.core.types import FeedbackAuth
from erc8004.core.validators import require_address, require_uint


def normalize_feedback_auth(auth: FeedbackAuth) -> FeedbackAuth:
    """
    Validate every field against its on-chain type.

    Returns a copy with checksummed addresses. Raises ValidationError on
    negative or overflowing integers and malformed addresses.
    """
    return FeedbackAuth(
        agent_id=require_uint(auth.agent_id, 256, "agent_id"),
        client_address=require_address(auth.client_address, "client_address"),
        index_limit=require_uint(auth.index_limit, 64, "index_limit"),
        expiry=require_uint(auth.expiry, 256, "expiry"),
        chain_id=require_uint(auth.chain_id, 256, "chain_id"),
        identity_registry=require_address(auth.identity_registry, "identity_registry"),
        signer_address=require_address(auth.signer_address, "signer_address"),
    )


def encode_feedback_auth(auth: FeedbackAuth) -> bytes:
    """ABI-encode the seven-field record (always 224 bytes)."""
    normalized = normalize_feedback_auth(auth)
    return abi_encode(list(FEEDBACK_AUTH_TYPES), list(normalized.as_tuple()))


def feedback_auth_digest(auth: FeedbackAuth) -> bytes:
    """keccak-256 of the canonical encoding. This is what gets signed."""
    return keccak(encode_feedback_auth(auth))


def decode_feedback_auth(encoded: bytes) -> FeedbackAuth:
    """Inverse of encode_feedback_auth; rejects anything that is not 224 bytes."""
    if len(encoded) != ENCODED_FEEDBACK_AUTH_LENGTH:
        raise ValidationError(
            f"Encoded feedbackAuth must be {ENCODED_FEEDBACK_AUTH_LENGTH} bytes, got {len(encoded)}",
            field="feedback_auth",
        )
    try:
        values = abi_decode(list(FEEDBACK_AUTH_TYPES), encoded, strict=True)
    except Exception as exc:
        raise ValidationError(
            f"Encoded feedbackAuth is malformed: {exc}", field="feedback_auth"
        ) from exc

    agent_id, client, index_limit, expiry, chain_id, registry, signer = values
    return FeedbackAuth(
        agent_id=agent_id,
        client_address=to_checksum_address(client),
        index_limit=index_limit,
        expiry=expiry,
        chain_id=chain_id,
        identity_registry=to_checksum_address(registry),
        signer_address=to_checksum_address(signer),
    )


__all__ = [
    "normalize_feedback_auth",
    "encode_feedback_auth",
    "feedback_auth_digest",
    "decode_feedback_auth",
]
