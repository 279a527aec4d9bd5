"""
feedbackAuth envelope: canonical encoding followed by the raw signature.

    envelope = abi.encode(agentId, clientAddress, indexLimit, expiry,
                          chainId, identityRegistry, signerAddress)   # 224 bytes
               ++ r(32) ++ s(32) ++ v(1)                              # 65 bytes

The verifier splits at byte 224. Adding, removing or resizing a field
moves that boundary and breaks every deployed registry.
"""

from __future__ import annotations

from erc8004.auth.encoding import decode_feedback_auth, encode_feedback_auth, feedback_auth_digest
from erc8004.auth.policy import AuthCheck, RejectionReason, check_feedback_auth
from erc8004.auth.signer import normalize_signature, recover_signer
from erc8004.core.exceptions import SigningError, ValidationError
from erc8004.core.registry import ENCODED_FEEDBACK_AUTH_LENGTH, ENVELOPE_LENGTH
from erc8004.core.types import FeedbackAuth, FeedbackAuthEnvelope


def build_envelope(auth: FeedbackAuth, signature: bytes) -> bytes:
    """Concatenate the canonical encoding of auth with its 65-byte signature."""
    try:
        sig = normalize_signature(signature)
    except SigningError as exc:
        raise ValidationError(str(exc.message), field="signature") from exc
    return encode_feedback_auth(auth) + sig


def _as_bytes(envelope: bytes | str) -> bytes:
    if isinstance(envelope, str):
        hex_part = envelope[2:] if envelope.lower().startswith("0x") else envelope
        try:
            return bytes.fromhex(hex_part)
        except ValueError as exc:
            raise ValidationError("feedbackAuth envelope is not valid hex", field="feedback_auth") from exc
    return bytes(envelope)


def parse_envelope(envelope: bytes | str) -> FeedbackAuthEnvelope:
    """Split an envelope at the fixed boundary and decode the record."""
    raw = _as_bytes(envelope)
    if len(raw) != ENVELOPE_LENGTH:
        raise ValidationError(
            f"feedbackAuth envelope must be {ENVELOPE_LENGTH} bytes, got {len(raw)}",
            field="feedback_auth",
        )
    encoded = raw[:ENCODED_FEEDBACK_AUTH_LENGTH]
    signature = raw[ENCODED_FEEDBACK_AUTH_LENGTH:]
    return FeedbackAuthEnvelope(
        auth=decode_feedback_auth(encoded),
        signature=signature,
        encoded=encoded,
    )


def verify_envelope(
    envelope: bytes | str,
    *,
    chain_id: int,
    identity_registry: str,
    now: int,
    last_index: int | None = None,
    agent_id: int | None = None,
    client_address: str | None = None,
    strict_index: bool = True,
) -> tuple[FeedbackAuthEnvelope | None, AuthCheck]:
    """
    Run the checks a registry runs on an envelope, without the owner lookup.

    Recovers the EIP-191 signer from the digest of the embedded record and
    requires it to equal signerAddress, then checks the binding fields.
    Returns the parsed envelope (None if it could not be parsed) and the
    check result. Never raises for a bad envelope.
    """
    try:
        parsed = parse_envelope(envelope)
    except ValidationError as exc:
        check = AuthCheck()
        check.fail(RejectionReason.MALFORMED, exc.message)
        return None, check

    check = AuthCheck()
    try:
        recovered = recover_signer(feedback_auth_digest(parsed.auth), parsed.signature)
    except SigningError as exc:
        check.fail(RejectionReason.BAD_SIGNATURE, exc.message)
    else:
        if recovered != parsed.auth.signer_address:
            check.fail(
                RejectionReason.SIGNER_MISMATCH,
                "feedbackAuth signature does not match signerAddress",
            )

    bindings = check_feedback_auth(
        parsed.auth,
        chain_id=chain_id,
        identity_registry=identity_registry,
        now=now,
        last_index=last_index,
        agent_id=agent_id,
        client_address=client_address,
        strict_index=strict_index,
    )
    check.reasons.extend(bindings.reasons)
    check.messages.extend(bindings.messages)
    return parsed, check


__all__ = [
    "build_envelope",
    "parse_envelope",
    "verify_envelope",
]
