"""
Index and expiry policy for feedback authorizations.

Replay protection rests on two values embedded in the signed record:

- indexLimit must be exactly the next unused feedback index for the
  (agentId, clientAddress) pair. Once the client consumes that index, every
  earlier authorization for the pair is dead.
- expiry is an absolute Unix timestamp. After it passes the envelope is
  void; there is no renewal, a fresh record has to be issued.

chainId and identityRegistry pin the authorization to one deployment.

The read of lastIndex is not atomic with the later submission. Two
authorizations built from the same read race, and only the first one to
land succeeds. Callers issuing concurrently for the same pair must
serialize issuance themselves.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from eth_utils import to_checksum_address

from erc8004.core.exceptions import ValidationError
from erc8004.core.types import FeedbackAuth
from erc8004.core.validators import require_uint

UINT64_MAX = (1 << 64) - 1


class RejectionReason(str, Enum):
    """Why a verifier refuses a feedbackAuth envelope."""

    MALFORMED = "MALFORMED"
    BAD_SIGNATURE = "BAD_SIGNATURE"
    SIGNER_MISMATCH = "SIGNER_MISMATCH"
    UNAUTHORIZED_SIGNER = "UNAUTHORIZED_SIGNER"
    AGENT_MISMATCH = "AGENT_MISMATCH"
    CLIENT_MISMATCH = "CLIENT_MISMATCH"
    CHAIN_MISMATCH = "CHAIN_MISMATCH"
    REGISTRY_MISMATCH = "REGISTRY_MISMATCH"
    EXPIRED = "EXPIRED"
    INDEX_MISMATCH = "INDEX_MISMATCH"


@dataclass
class AuthCheck:
    """Result of checking a record or envelope against a deployment."""

    reasons: list[RejectionReason] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.reasons

    @property
    def reason(self) -> str | None:
        """First failure message, as a registry would report it."""
        return self.messages[0] if self.messages else None

    def fail(self, reason: RejectionReason, message: str) -> None:
        self.reasons.append(reason)
        self.messages.append(message)


def current_timestamp() -> int:
    return int(time.time())


def next_index_limit(last_index: int) -> int:
    """indexLimit for the next authorization: exactly one past the last used index."""
    last_index = require_uint(last_index, 64, "last_index")
    if last_index >= UINT64_MAX:
        raise ValidationError(
            "Feedback index space for this client is exhausted", field="last_index"
        )
    return last_index + 1


def require_validity_window(validity_window: int) -> int:
    """The window is the caller's choice; it only has to be a positive number of seconds."""
    if isinstance(validity_window, bool) or not isinstance(validity_window, int):
        raise ValidationError("validity_window must be an integer number of seconds", field="validity_window")
    if validity_window <= 0:
        raise ValidationError(
            f"validity_window must be positive, got {validity_window}", field="validity_window"
        )
    return validity_window


def compute_expiry(validity_window: int, now: int | None = None) -> int:
    """Absolute expiry for a caller-chosen validity window in seconds."""
    validity_window = require_validity_window(validity_window)
    now = current_timestamp() if now is None else now
    return now + validity_window


def check_feedback_auth(
    auth: FeedbackAuth,
    *,
    chain_id: int,
    identity_registry: str,
    now: int,
    last_index: int | None = None,
    agent_id: int | None = None,
    client_address: str | None = None,
    strict_index: bool = True,
) -> AuthCheck:
    """
    Check the binding fields of a record against a verifying deployment.

    Signature recovery and signer authorization are not covered here; see
    erc8004.auth.envelope.verify_envelope. Optional arguments are only
    checked when given.
    """
    check = AuthCheck()

    if agent_id is not None and auth.agent_id != agent_id:
        check.fail(
            RejectionReason.AGENT_MISMATCH,
            f"feedbackAuth is for agent {auth.agent_id}, not {agent_id}",
        )
    if client_address is not None and to_checksum_address(auth.client_address) != to_checksum_address(
        client_address
    ):
        check.fail(RejectionReason.CLIENT_MISMATCH, "feedbackAuth was issued to a different client")
    if auth.chain_id != chain_id:
        check.fail(
            RejectionReason.CHAIN_MISMATCH,
            f"feedbackAuth chainId {auth.chain_id} does not match {chain_id}",
        )
    if to_checksum_address(auth.identity_registry) != to_checksum_address(identity_registry):
        check.fail(
            RejectionReason.REGISTRY_MISMATCH,
            "feedbackAuth is bound to a different identity registry",
        )
    if auth.is_expired(now):
        check.fail(RejectionReason.EXPIRED, f"feedbackAuth expired at {auth.expiry}")
    if last_index is not None:
        if strict_index and auth.index_limit != last_index + 1:
            check.fail(
                RejectionReason.INDEX_MISMATCH,
                f"indexLimit {auth.index_limit} is not the next index {last_index + 1}",
            )
        elif not strict_index and auth.index_limit <= last_index:
            check.fail(
                RejectionReason.INDEX_MISMATCH,
                f"indexLimit {auth.index_limit} was already consumed (last index {last_index})",
            )

    return check


__all__ = [
    "UINT64_MAX",
    "RejectionReason",
    "AuthCheck",
    "current_timestamp",
    "next_index_limit",
    "require_validity_window",
    "compute_expiry",
    "check_feedback_auth",
]
