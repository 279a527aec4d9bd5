"""
Reputation Registry client.

Wraps giveFeedback and the read side of the registry, and gives agent
owners the two halves of feedbackAuth issuance (build a record, sign it).
Implements the FeedbackRegistry boundary used by FeedbackSubmitter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from erc8004.auth.authorizer import FeedbackAuthorizer
from erc8004.auth.encoding import normalize_feedback_auth
from erc8004.auth.envelope import parse_envelope
from erc8004.auth.signer import AdapterSigner, MessageSigner, normalize_signature
from erc8004.core.logging import get_logger
from erc8004.core.registry import REPUTATION_REGISTRY_ABI, hash_or_zero, tag_to_bytes32
from erc8004.core.types import Feedback, FeedbackAuth, Summary, TransactionResult
from erc8004.core.validators import require_address, require_score, require_uint

if TYPE_CHECKING:
    from erc8004.adapters.base import BlockchainAdapter

logger = get_logger("clients.reputation")


class ReputationClient:
    """
    Client for the ERC-8004 Reputation Registry.

    Args:
        adapter: Chain access; needs a signing account for writes.
        contract_address: Reputation Registry address.
        identity_registry: Identity Registry that feedbackAuth records bind to.
    """

    def __init__(
        self,
        adapter: BlockchainAdapter,
        contract_address: str,
        identity_registry: str,
    ) -> None:
        self._adapter = adapter
        self._address = require_address(contract_address, "reputation_registry")
        self._identity_registry = require_address(identity_registry, "identity_registry")

    @property
    def address(self) -> str:
        return self._address

    @property
    def identity_registry(self) -> str:
        return self._identity_registry

    # ─── feedbackAuth ────────────────────────────────────────────────

    def create_feedback_auth(
        self,
        agent_id: int,
        client_address: str,
        index_limit: int,
        expiry: int,
        chain_id: int,
        signer_address: str,
    ) -> FeedbackAuth:
        """Build a record bound to this client's identity registry."""
        return normalize_feedback_auth(
            FeedbackAuth(
                agent_id=agent_id,
                client_address=client_address,
                index_limit=index_limit,
                expiry=expiry,
                chain_id=chain_id,
                identity_registry=self._identity_registry,
                signer_address=signer_address,
            )
        )

    async def sign_feedback_auth(
        self,
        auth: FeedbackAuth,
        signer: MessageSigner | None = None,
    ) -> bytes:
        """
        Sign a record and return the 289-byte envelope.

        Defaults to the adapter's account. The record must not be expired.
        """
        if signer is None:
            signer = await AdapterSigner.from_adapter(self._adapter)
        authorizer = FeedbackAuthorizer(
            signer,
            chain_id=auth.chain_id,
            identity_registry=self._identity_registry,
            signer_address=auth.signer_address,
        )
        return await authorizer.sign(auth)

    # ─── Writes ──────────────────────────────────────────────────────

    async def give_feedback(
        self,
        agent_id: int,
        score: int,
        feedback_auth: bytes | str,
        tag1: str | None = None,
        tag2: str | None = None,
        feedback_uri: str | None = None,
        feedback_hash: bytes | str | None = None,
    ) -> TransactionResult:
        """
        Submit feedback with a signed authorization envelope.

        The score and envelope shape are checked locally and a v of 0/1 is
        rewritten to 27/28; everything else (signature, index, expiry) is
        the registry's call.
        """
        score = require_score(score)
        agent_id = require_uint(agent_id, 256, "agent_id")
        parsed = parse_envelope(feedback_auth)
        envelope = parsed.encoded + normalize_signature(parsed.signature)

        args = [
            agent_id,
            score,
            tag_to_bytes32(tag1),
            tag_to_bytes32(tag2),
            feedback_uri or "",
            hash_or_zero(feedback_hash, "feedback_hash"),
            envelope,
        ]
        result = await self._adapter.send(
            self._address, REPUTATION_REGISTRY_ABI, "giveFeedback", args
        )
        logger.info(f"Feedback for agent {agent_id} recorded in tx {result.tx_hash}")
        return result

    async def revoke_feedback(self, agent_id: int, feedback_index: int) -> TransactionResult:
        return await self._adapter.send(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "revokeFeedback",
            [require_uint(agent_id, 256, "agent_id"), require_uint(feedback_index, 64, "feedback_index")],
        )

    async def append_response(
        self,
        agent_id: int,
        client_address: str,
        feedback_index: int,
        response_uri: str,
        response_hash: bytes | str | None = None,
    ) -> TransactionResult:
        return await self._adapter.send(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "appendResponse",
            [
                require_uint(agent_id, 256, "agent_id"),
                require_address(client_address, "client_address"),
                require_uint(feedback_index, 64, "feedback_index"),
                response_uri,
                hash_or_zero(response_hash, "response_hash"),
            ],
        )

    # ─── Reads ───────────────────────────────────────────────────────

    async def get_identity_registry(self) -> str:
        return await self._adapter.call(
            self._address, REPUTATION_REGISTRY_ABI, "getIdentityRegistry", []
        )

    async def get_last_index(self, agent_id: int, client_address: str) -> int:
        """Last feedback index used by client_address for agent_id (0 if none)."""
        result = await self._adapter.call(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "getLastIndex",
            [require_uint(agent_id, 256, "agent_id"), require_address(client_address, "client_address")],
        )
        return int(result)

    async def get_summary(
        self,
        agent_id: int,
        client_addresses: list[str] | None = None,
        tag1: str | None = None,
        tag2: str | None = None,
    ) -> Summary:
        result = await self._adapter.call(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "getSummary",
            [
                require_uint(agent_id, 256, "agent_id"),
                [require_address(a, "client_address") for a in client_addresses or []],
                tag_to_bytes32(tag1),
                tag_to_bytes32(tag2),
            ],
        )
        return Summary(count=int(result["count"]), average=int(result["averageScore"]))

    async def read_feedback(self, agent_id: int, client_address: str, index: int) -> Feedback:
        client_address = require_address(client_address, "client_address")
        result = await self._adapter.call(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "readFeedback",
            [require_uint(agent_id, 256, "agent_id"), client_address, require_uint(index, 64, "index")],
        )
        return Feedback(
            score=int(result["score"]),
            tag1=result["tag1"],
            tag2=result["tag2"],
            is_revoked=bool(result["isRevoked"]),
            client_address=client_address,
        )

    async def read_all_feedback(
        self,
        agent_id: int,
        client_addresses: list[str] | None = None,
        tag1: str | None = None,
        tag2: str | None = None,
        include_revoked: bool = False,
    ) -> list[Feedback]:
        result = await self._adapter.call(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "readAllFeedback",
            [
                require_uint(agent_id, 256, "agent_id"),
                [require_address(a, "client_address") for a in client_addresses or []],
                tag_to_bytes32(tag1),
                tag_to_bytes32(tag2),
                include_revoked,
            ],
        )
        return [
            Feedback(score=int(score), tag1=t1, tag2=t2, is_revoked=bool(revoked), client_address=client)
            for client, score, t1, t2, revoked in zip(
                result["clientAddresses"],
                result["scores"],
                result["tag1s"],
                result["tag2s"],
                result["revokedStatuses"],
            )
        ]

    async def get_response_count(
        self,
        agent_id: int,
        client_address: str,
        feedback_index: int,
        responders: list[str] | None = None,
    ) -> int:
        result = await self._adapter.call(
            self._address,
            REPUTATION_REGISTRY_ABI,
            "getResponseCount",
            [
                require_uint(agent_id, 256, "agent_id"),
                require_address(client_address, "client_address"),
                require_uint(feedback_index, 64, "feedback_index"),
                [require_address(a, "responder") for a in responders or []],
            ],
        )
        return int(result)

    async def get_clients(self, agent_id: int) -> list[str]:
        return list(
            await self._adapter.call(
                self._address,
                REPUTATION_REGISTRY_ABI,
                "getClients",
                [require_uint(agent_id, 256, "agent_id")],
            )
        )


__all__ = ["ReputationClient"]
