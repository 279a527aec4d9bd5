"""
erc8004 - Python client for ERC-8004 Trustless Agents registries.

Agent owners authorize clients to leave feedback with a signed, replay
resistant feedbackAuth envelope; clients submit it to the Reputation
Registry together with their score.

Usage:
    >>> from erc8004 import Config, ERC8004Client, LocalAccountSigner
    >>>
    >>> client = await ERC8004Client.from_config(Config.from_env(), account=CLIENT_KEY)
    >>> outcome = await client.submit_authorized_feedback(
    ...     agent_id=1,
    ...     score=95,
    ...     validity_window=3600,
    ...     signer=LocalAccountSigner.from_key(OWNER_KEY),
    ... )
"""

from erc8004.adapters import BlockchainAdapter, JsonRpcAdapter
from erc8004.auth import (
    AdapterSigner,
    FeedbackAuthorizer,
    FeedbackRegistry,
    FeedbackSubmitter,
    LocalAccountSigner,
    MessageSigner,
    RejectionReason,
    build_envelope,
    encode_feedback_auth,
    feedback_auth_digest,
    parse_envelope,
    recover_signer,
    verify_envelope,
)
from erc8004.client import ERC8004Client
from erc8004.clients import IdentityClient, ReputationClient, ValidationClient
from erc8004.core.config import Config
from erc8004.core.exceptions import (
    AbiDecodingError,
    ConfigurationError,
    ERC8004Error,
    IPFSError,
    NetworkError,
    ReceiptError,
    RegistryRejectionError,
    SigningError,
    TransactionTimeoutError,
    ValidationError,
)
from erc8004.core.logging import configure_logging, get_logger
from erc8004.core.types import (
    AgentRegistrationFile,
    ContractAddresses,
    ContractEvent,
    Feedback,
    FeedbackAuth,
    FeedbackAuthEnvelope,
    FeedbackFile,
    MetadataEntry,
    SubmissionOutcome,
    SubmissionState,
    Summary,
    TransactionResult,
    ValidationStatus,
)
from erc8004.utils.ipfs import (
    IPFSClient,
    IPFSConfig,
    IPFSUploadResult,
    cid_to_bytes32,
    create_ipfs_client,
    ipfs_uri_to_bytes32,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "ERC8004Client",
    "IdentityClient",
    "ReputationClient",
    "ValidationClient",
    "Config",
    # Adapters
    "BlockchainAdapter",
    "JsonRpcAdapter",
    # Authorization
    "FeedbackAuthorizer",
    "FeedbackRegistry",
    "FeedbackSubmitter",
    "MessageSigner",
    "LocalAccountSigner",
    "AdapterSigner",
    "RejectionReason",
    "encode_feedback_auth",
    "feedback_auth_digest",
    "build_envelope",
    "parse_envelope",
    "verify_envelope",
    "recover_signer",
    # Types
    "FeedbackAuth",
    "FeedbackAuthEnvelope",
    "SubmissionOutcome",
    "SubmissionState",
    "TransactionResult",
    "ContractEvent",
    "ContractAddresses",
    "Feedback",
    "FeedbackFile",
    "Summary",
    "ValidationStatus",
    "MetadataEntry",
    "AgentRegistrationFile",
    # IPFS
    "IPFSClient",
    "IPFSConfig",
    "IPFSUploadResult",
    "cid_to_bytes32",
    "ipfs_uri_to_bytes32",
    "create_ipfs_client",
    # Errors
    "ERC8004Error",
    "AbiDecodingError",
    "ConfigurationError",
    "IPFSError",
    "NetworkError",
    "ReceiptError",
    "RegistryRejectionError",
    "SigningError",
    "TransactionTimeoutError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
