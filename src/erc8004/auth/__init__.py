"""
Feedback authorization protocol (feedbackAuth).

Encoding, EIP-191 signing, envelope construction, index/expiry policy and
the end-to-end submission flow.
"""

from erc8004.auth.authorizer import FeedbackAuthorizer, FeedbackRegistry
from erc8004.auth.encoding import (
    decode_feedback_auth,
    encode_feedback_auth,
    feedback_auth_digest,
)
from erc8004.auth.envelope import build_envelope, parse_envelope, verify_envelope
from erc8004.auth.policy import (
    AuthCheck,
    RejectionReason,
    check_feedback_auth,
    compute_expiry,
    next_index_limit,
)
from erc8004.auth.signer import (
    AdapterSigner,
    LocalAccountSigner,
    MessageSigner,
    recover_signer,
    sign_digest,
)
from erc8004.auth.submission import FeedbackSubmitter

__all__ = [
    "FeedbackAuthorizer",
    "FeedbackRegistry",
    "FeedbackSubmitter",
    "encode_feedback_auth",
    "decode_feedback_auth",
    "feedback_auth_digest",
    "build_envelope",
    "parse_envelope",
    "verify_envelope",
    "AuthCheck",
    "RejectionReason",
    "check_feedback_auth",
    "compute_expiry",
    "next_index_limit",
    "MessageSigner",
    "LocalAccountSigner",
    "AdapterSigner",
    "sign_digest",
    "recover_signer",
]
