"""
Type definitions for the ERC-8004 client.

Dataclasses and enums shared by the authorization core, the registry
clients and the IPFS helper. Field names follow Python conventions; the
`to_dict()` helpers emit the camelCase shapes used by the off-chain JSON
files described in EIP-8004.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

REGISTRATION_TYPE = "https://eips.ethereum.org/EIPS/eip-8004#registration-v1"


class SubmissionState(str, Enum):
    """Stages of one authorized feedback submission."""

    QUERY_INDEX = "QUERY_INDEX"
    BUILD_RECORD = "BUILD_RECORD"
    SIGN = "SIGN"
    SUBMIT = "SUBMIT"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


# ---------------------------------------------------------------------------
# Feedback authorization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeedbackAuth:
    """
    The signed feedback authorization record.

    Tuple layout on the wire:
    (agentId, clientAddress, indexLimit, expiry, chainId, identityRegistry, signerAddress)
    """

    agent_id: int
    client_address: str
    index_limit: int
    expiry: int                  # Unix seconds
    chain_id: int
    identity_registry: str
    signer_address: str

    def as_tuple(self) -> tuple[int, str, int, int, int, str, str]:
        """Return the fields in wire order."""
        return (
            self.agent_id,
            self.client_address,
            self.index_limit,
            self.expiry,
            self.chain_id,
            self.identity_registry,
            self.signer_address,
        )

    def is_expired(self, now: int) -> bool:
        """Whether the authorization is void at the given Unix time."""
        return now > self.expiry


@dataclass(frozen=True)
class FeedbackAuthEnvelope:
    """A parsed envelope: the record plus the 65-byte signature."""

    auth: FeedbackAuth
    signature: bytes
    encoded: bytes

    def to_bytes(self) -> bytes:
        return self.encoded + self.signature

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@dataclass
class ContractEvent:
    """A decoded log entry from a transaction receipt."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    address: str | None = None


@dataclass
class TransactionResult:
    """Acknowledgment of a mined registry transaction."""

    tx_hash: str
    block_number: int | None = None
    events: list[ContractEvent] = field(default_factory=list)
    receipt: dict[str, Any] = field(default_factory=dict)

    def find_event(self, name: str) -> ContractEvent | None:
        """Return the first event with the given name, if any."""
        return next((e for e in self.events if e.name == name), None)


@dataclass
class ContractAddresses:
    """Deployment the client talks to."""

    identity_registry: str
    reputation_registry: str
    validation_registry: str
    chain_id: int


# ---------------------------------------------------------------------------
# Registry read models
# ---------------------------------------------------------------------------

@dataclass
class Feedback:
    """A feedback entry as stored in the Reputation Registry."""

    score: int
    tag1: str | None = None          # bytes32 hex
    tag2: str | None = None          # bytes32 hex
    is_revoked: bool = False
    client_address: str | None = None


@dataclass
class Summary:
    """Aggregate count and average for reputation or validation."""

    count: int
    average: int


@dataclass
class ValidationStatus:
    """
    Status of one validation request.

    response_hash is None when the deployed contract predates the
    responseHash field.
    """

    validator_address: str
    agent_id: int
    response: int
    tag: str
    last_update: int
    response_hash: str | None = None


@dataclass
class MetadataEntry:
    """On-chain metadata key/value for agent registration."""

    key: str
    value: str


@dataclass
class AgentEndpoint:
    name: str
    endpoint: str
    version: str | None = None
    capabilities: Any = None


@dataclass
class AgentRegistrationFile:
    """
    Off-chain agent registration file referenced by tokenURI.

    Only type, name, description and image are MUST fields.
    """

    type: str
    name: str
    description: str
    image: str
    endpoints: list[AgentEndpoint] = field(default_factory=list)
    registrations: list[dict[str, Any]] = field(default_factory=list)
    supported_trust: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentRegistrationFile:
        endpoints = [
            AgentEndpoint(
                name=e.get("name", ""),
                endpoint=e.get("endpoint", ""),
                version=e.get("version"),
                capabilities=e.get("capabilities"),
            )
            for e in data.get("endpoints", []) or []
        ]
        return cls(
            type=data.get("type", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            image=data.get("image", ""),
            endpoints=endpoints,
            registrations=list(data.get("registrations", []) or []),
            supported_trust=list(data.get("supportedTrust", []) or []),
            raw=data,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }
        if self.endpoints:
            data["endpoints"] = [
                {
                    k: v
                    for k, v in {
                        "name": e.name,
                        "endpoint": e.endpoint,
                        "version": e.version,
                        "capabilities": e.capabilities,
                    }.items()
                    if v is not None
                }
                for e in self.endpoints
            ]
        if self.registrations:
            data["registrations"] = self.registrations
        if self.supported_trust:
            data["supportedTrust"] = self.supported_trust
        return data


@dataclass
class FeedbackFile:
    """
    Off-chain feedback file, typically uploaded to IPFS and referenced by
    feedbackUri/feedbackHash.
    """

    agent_registry: str
    agent_id: int
    client_address: str
    created_at: str                  # ISO 8601
    feedback_auth: str               # 0x-hex envelope
    score: int
    tag1: str | None = None
    tag2: str | None = None
    skill: str | None = None
    context: str | None = None
    task: str | None = None
    capability: str | None = None    # prompts | resources | tools | completions
    name: str | None = None
    proof_of_payment: dict[str, str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "agentRegistry": self.agent_registry,
            "agentId": self.agent_id,
            "clientAddress": self.client_address,
            "createdAt": self.created_at,
            "feedbackAuth": self.feedback_auth,
            "score": self.score,
        }
        optional = {
            "tag1": self.tag1,
            "tag2": self.tag2,
            "skill": self.skill,
            "context": self.context,
            "task": self.task,
            "capability": self.capability,
            "name": self.name,
            "proof_of_payment": self.proof_of_payment,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        data.update(self.extra)
        return data


@dataclass
class SubmissionOutcome:
    """What happened during one authorized feedback submission."""

    state: SubmissionState
    auth: FeedbackAuth | None = None
    envelope: bytes | None = None
    result: TransactionResult | None = None

    @property
    def confirmed(self) -> bool:
        return self.state == SubmissionState.CONFIRMED
