"""
ERC-8004 registry contract interface.

ABIs (as Python dicts) for the Identity, Reputation and Validation
registries of the feedbackAuth revision of ERC-8004, plus the protocol
constants shared by the authorization core.

Reference: https://eips.ethereum.org/EIPS/eip-8004
"""

from __future__ import annotations

from eth_utils import keccak

from erc8004.core.validators import require_address, require_bytes32


# ───────────────────────────────────────────────────────────────────
# Protocol constants
# ───────────────────────────────────────────────────────────────────

ZERO_HASH = "0x" + "00" * 32
ZERO_ADDRESS = "0x" + "00" * 20

# Wire order of the feedbackAuth tuple. Changing any entry breaks every
# deployed verifier.
FEEDBACK_AUTH_TYPES: tuple[str, ...] = (
    "uint256",  # agentId
    "address",  # clientAddress
    "uint64",   # indexLimit
    "uint256",  # expiry
    "uint256",  # chainId
    "address",  # identityRegistry
    "address",  # signerAddress
)

ENCODED_FEEDBACK_AUTH_LENGTH = 32 * len(FEEDBACK_AUTH_TYPES)
SIGNATURE_LENGTH = 65
ENVELOPE_LENGTH = ENCODED_FEEDBACK_AUTH_LENGTH + SIGNATURE_LENGTH

# Chain IDs for agentRegistry string construction
CHAIN_IDS: dict[str, int] = {
    "ETH": 1,
    "ETH-SEPOLIA": 11155111,
    "BASE": 8453,
    "BASE-SEPOLIA": 84532,
    "ARB": 42161,
    "ARB-SEPOLIA": 421614,
    "MATIC": 137,
    "MATIC-AMOY": 80002,
    "OP": 10,
    "OP-SEPOLIA": 11155420,
    "HARDHAT": 31337,
}


# ───────────────────────────────────────────────────────────────────
# Contract ABIs (only the functions and events the clients use)
# ───────────────────────────────────────────────────────────────────

IDENTITY_REGISTRY_ABI = [
    # read: ownerOf(uint256) → address
    {
        "name": "ownerOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    # read: tokenURI(uint256) → string
    {
        "name": "tokenURI",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "string"}],
    },
    # read: getMetadata(uint256, string) → bytes
    {
        "name": "getMetadata",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "key", "type": "string"},
        ],
        "outputs": [{"name": "value", "type": "bytes"}],
    },
    # write: register() → uint256
    {
        "name": "register",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [{"name": "agentId", "type": "uint256"}],
    },
    # write: register(string) → uint256
    {
        "name": "register",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "tokenURI", "type": "string"}],
        "outputs": [{"name": "agentId", "type": "uint256"}],
    },
    # write: register(string, MetadataEntry[]) → uint256
    {
        "name": "register",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "tokenURI", "type": "string"},
            {
                "name": "metadata",
                "type": "tuple[]",
                "components": [
                    {"name": "key", "type": "string"},
                    {"name": "value", "type": "bytes"},
                ],
            },
        ],
        "outputs": [{"name": "agentId", "type": "uint256"}],
    },
    # write: setAgentUri(uint256, string)
    {
        "name": "setAgentUri",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "newUri", "type": "string"},
        ],
        "outputs": [],
    },
    # write: setMetadata(uint256, string, bytes)
    {
        "name": "setMetadata",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "key", "type": "string"},
            {"name": "value", "type": "bytes"},
        ],
        "outputs": [],
    },
    # event: Registered(uint256 indexed agentId, string tokenURI, address indexed owner)
    {
        "name": "Registered",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "agentId", "type": "uint256", "indexed": True},
            {"name": "tokenURI", "type": "string", "indexed": False},
            {"name": "owner", "type": "address", "indexed": True},
        ],
    },
    # event: MetadataSet(uint256 indexed agentId, string indexed indexedKey, string key, bytes value)
    {
        "name": "MetadataSet",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "agentId", "type": "uint256", "indexed": True},
            {"name": "indexedKey", "type": "string", "indexed": True},
            {"name": "key", "type": "string", "indexed": False},
            {"name": "value", "type": "bytes", "indexed": False},
        ],
    },
]

REPUTATION_REGISTRY_ABI = [
    # ─── Read functions ───
    {
        "name": "getIdentityRegistry",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "identityRegistry", "type": "address"}],
    },
    {
        "name": "getLastIndex",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    {
        "name": "getClients",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "agentId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address[]"}],
    },
    {
        "name": "readFeedback",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
            {"name": "index", "type": "uint64"},
        ],
        "outputs": [
            {"name": "score", "type": "uint8"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
            {"name": "isRevoked", "type": "bool"},
        ],
    },
    {
        "name": "readAllFeedback",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddresses", "type": "address[]"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
            {"name": "includeRevoked", "type": "bool"},
        ],
        "outputs": [
            {"name": "clientAddresses", "type": "address[]"},
            {"name": "scores", "type": "uint8[]"},
            {"name": "tag1s", "type": "bytes32[]"},
            {"name": "tag2s", "type": "bytes32[]"},
            {"name": "revokedStatuses", "type": "bool[]"},
        ],
    },
    {
        "name": "getSummary",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddresses", "type": "address[]"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
        ],
        "outputs": [
            {"name": "count", "type": "uint64"},
            {"name": "averageScore", "type": "uint8"},
        ],
    },
    {
        "name": "getResponseCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
            {"name": "feedbackIndex", "type": "uint64"},
            {"name": "responders", "type": "address[]"},
        ],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    # ─── Write functions ───
    # giveFeedback(uint256, uint8, bytes32, bytes32, string, bytes32, bytes)
    {
        "name": "giveFeedback",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "score", "type": "uint8"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
            {"name": "feedbackUri", "type": "string"},
            {"name": "feedbackHash", "type": "bytes32"},
            {"name": "feedbackAuth", "type": "bytes"},
        ],
        "outputs": [],
    },
    {
        "name": "revokeFeedback",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "feedbackIndex", "type": "uint64"},
        ],
        "outputs": [],
    },
    {
        "name": "appendResponse",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
            {"name": "feedbackIndex", "type": "uint64"},
            {"name": "responseUri", "type": "string"},
            {"name": "responseHash", "type": "bytes32"},
        ],
        "outputs": [],
    },
    # ─── Events ───
    {
        "name": "NewFeedback",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "agentId", "type": "uint256", "indexed": True},
            {"name": "clientAddress", "type": "address", "indexed": True},
            {"name": "score", "type": "uint8", "indexed": False},
            {"name": "tag1", "type": "bytes32", "indexed": True},
            {"name": "tag2", "type": "bytes32", "indexed": False},
            {"name": "feedbackUri", "type": "string", "indexed": False},
            {"name": "feedbackHash", "type": "bytes32", "indexed": False},
        ],
    },
    {
        "name": "FeedbackRevoked",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "agentId", "type": "uint256", "indexed": True},
            {"name": "clientAddress", "type": "address", "indexed": True},
            {"name": "feedbackIndex", "type": "uint64", "indexed": True},
        ],
    },
]

VALIDATION_REGISTRY_ABI = [
    # ─── Read functions ───
    {
        "name": "getIdentityRegistry",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "identityRegistry", "type": "address"}],
    },
    # getValidationStatus(bytes32) → (address, uint256, uint8, bytes32, bytes32, uint256)
    {
        "name": "getValidationStatus",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "requestHash", "type": "bytes32"}],
        "outputs": [
            {"name": "validatorAddress", "type": "address"},
            {"name": "agentId", "type": "uint256"},
            {"name": "response", "type": "uint8"},
            {"name": "responseHash", "type": "bytes32"},
            {"name": "tag", "type": "bytes32"},
            {"name": "lastUpdate", "type": "uint256"},
        ],
    },
    {
        "name": "getSummary",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "validatorAddresses", "type": "address[]"},
            {"name": "tag", "type": "bytes32"},
        ],
        "outputs": [
            {"name": "count", "type": "uint64"},
            {"name": "avgResponse", "type": "uint8"},
        ],
    },
    {
        "name": "getAgentValidations",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "agentId", "type": "uint256"}],
        "outputs": [{"name": "requestHashes", "type": "bytes32[]"}],
    },
    {
        "name": "getValidatorRequests",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "validatorAddress", "type": "address"}],
        "outputs": [{"name": "requestHashes", "type": "bytes32[]"}],
    },
    # ─── Write functions ───
    {
        "name": "validationRequest",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "validatorAddress", "type": "address"},
            {"name": "agentId", "type": "uint256"},
            {"name": "requestUri", "type": "string"},
            {"name": "requestHash", "type": "bytes32"},
        ],
        "outputs": [],
    },
    {
        "name": "validationResponse",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "requestHash", "type": "bytes32"},
            {"name": "response", "type": "uint8"},
            {"name": "responseUri", "type": "string"},
            {"name": "responseHash", "type": "bytes32"},
            {"name": "tag", "type": "bytes32"},
        ],
        "outputs": [],
    },
]

# Contracts deployed before responseHash was added return five fields.
LEGACY_VALIDATION_STATUS_ABI = [
    {
        "name": "getValidationStatus",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "requestHash", "type": "bytes32"}],
        "outputs": [
            {"name": "validatorAddress", "type": "address"},
            {"name": "agentId", "type": "uint256"},
            {"name": "response", "type": "uint8"},
            {"name": "tag", "type": "bytes32"},
            {"name": "lastUpdate", "type": "uint256"},
        ],
    },
]


# ───────────────────────────────────────────────────────────────────
# Helper Functions
# ───────────────────────────────────────────────────────────────────

def get_chain_id(network: str) -> int | None:
    """Get chain ID for a network name such as "BASE-SEPOLIA"."""
    return CHAIN_IDS.get(str(network).upper())


def build_agent_registry_string(chain_id: int, identity_registry: str) -> str:
    """
    Build the ERC-8004 agentRegistry identifier string.

    Format: {namespace}:{chainId}:{identityRegistry}
    Example: eip155:1:0x8004A169FB4a3325136EB29fA0ceB6D2e539a432
    """
    return f"eip155:{chain_id}:{require_address(identity_registry, 'identity_registry')}"


def tag_to_bytes32(tag: str | None) -> bytes:
    """keccak256 of the UTF-8 tag; the zero hash when no tag is given."""
    if not tag:
        return bytes(32)
    return keccak(text=tag)


def hash_or_zero(value: bytes | str | None, field: str = "hash") -> bytes:
    """A bytes32 argument, defaulting to the zero hash."""
    if value is None:
        return bytes(32)
    return require_bytes32(value, field)


__all__ = [
    "ZERO_HASH",
    "ZERO_ADDRESS",
    "FEEDBACK_AUTH_TYPES",
    "ENCODED_FEEDBACK_AUTH_LENGTH",
    "SIGNATURE_LENGTH",
    "ENVELOPE_LENGTH",
    "CHAIN_IDS",
    "IDENTITY_REGISTRY_ABI",
    "REPUTATION_REGISTRY_ABI",
    "VALIDATION_REGISTRY_ABI",
    "LEGACY_VALIDATION_STATUS_ABI",
    "get_chain_id",
    "build_agent_registry_string",
    "tag_to_bytes32",
    "hash_or_zero",
]
