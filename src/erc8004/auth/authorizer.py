"""
Feedback authorization issuance.

FeedbackAuthorizer is what an agent owner (or operator) runs to let one
client submit one feedback entry:

    last = await registry.get_last_index(agent_id, client)
    auth = authorizer.build_feedback_auth(agent_id, client, last, validity_window=3600)
    envelope = await authorizer.sign(auth)

The envelope is handed to the client, who submits it with giveFeedback.
Nothing is cached between calls: index and expiry depend on registry
state and the clock, so every attempt starts from a fresh index read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol

from erc8004.auth.encoding import feedback_auth_digest, normalize_feedback_auth
from erc8004.auth.envelope import build_envelope
from erc8004.auth.policy import (
    compute_expiry,
    current_timestamp,
    next_index_limit,
    require_validity_window,
)
from erc8004.auth.signer import MessageSigner, recover_signer, sign_digest
from erc8004.core.exceptions import SigningError, ValidationError
from erc8004.core.logging import get_logger
from erc8004.core.types import FeedbackAuth
from erc8004.core.validators import require_address, require_uint

if TYPE_CHECKING:
    from erc8004.core.types import TransactionResult

logger = get_logger("auth.authorizer")


class FeedbackRegistry(Protocol):
    """
    The part of a Reputation Registry the authorization flow depends on.

    ReputationClient implements it against a live chain;
    erc8004.testing.InMemoryReputationRegistry implements it in memory.
    """

    async def get_last_index(self, agent_id: int, client_address: str) -> int: ...

    async def give_feedback(
        self,
        agent_id: int,
        score: int,
        feedback_auth: bytes | str,
        tag1: str | None = None,
        tag2: str | None = None,
        feedback_uri: str | None = None,
        feedback_hash: bytes | str | None = None,
    ) -> TransactionResult: ...


class FeedbackAuthorizer:
    """
    Builds and signs feedbackAuth envelopes for one deployment.

    Args:
        signer: Signing capability of the agent owner or operator.
        chain_id: Chain the authorization is valid on.
        identity_registry: Identity Registry the agent lives in.
        signer_address: Address recorded as signerAddress. Defaults to
            signer.address and is required when the signer has none. Set
            it to a contract wallet address when an EOA signs on behalf of
            an ERC-1271 wallet; local recovery checks are skipped in that
            case since the registry validates via the wallet.
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        signer: MessageSigner | None,
        chain_id: int,
        identity_registry: str,
        signer_address: str | None = None,
        clock: Callable[[], int] = current_timestamp,
    ) -> None:
        self._signer = signer
        self._chain_id = require_uint(chain_id, 256, "chain_id")
        self._identity_registry = require_address(identity_registry, "identity_registry")
        self._clock = clock

        signer_eoa = getattr(signer, "address", None) if signer is not None else None
        if signer_address is not None:
            self._signer_address = require_address(signer_address, "signer_address")
        elif signer_eoa:
            self._signer_address = require_address(signer_eoa, "signer_address")
        elif signer is not None:
            raise SigningError(
                f"{type(signer).__name__} exposes no address; pass signer_address explicitly"
            )
        else:
            self._signer_address = None
        self._contract_wallet = bool(
            signer_eoa and self._signer_address and require_address(signer_eoa) != self._signer_address
        )

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def identity_registry(self) -> str:
        return self._identity_registry

    @property
    def signer_address(self) -> str | None:
        return self._signer_address

    @property
    def is_contract_wallet(self) -> bool:
        return self._contract_wallet

    @property
    def clock(self) -> Callable[[], int]:
        return self._clock

    def build_feedback_auth(
        self,
        agent_id: int,
        client_address: str,
        last_index: int,
        validity_window: int,
    ) -> FeedbackAuth:
        """
        Build the record for the next feedback from client_address.

        indexLimit = last_index + 1, expiry = now + validity_window.
        """
        if self._signer_address is None:
            raise SigningError("No signer configured for feedback authorization")

        now = self._clock()
        auth = FeedbackAuth(
            agent_id=agent_id,
            client_address=client_address,
            index_limit=next_index_limit(last_index),
            expiry=compute_expiry(validity_window, now=now),
            chain_id=self._chain_id,
            identity_registry=self._identity_registry,
            signer_address=self._signer_address,
        )
        return normalize_feedback_auth(auth)

    async def sign(self, auth: FeedbackAuth) -> bytes:
        """
        Sign auth and return the envelope bytes.

        Refuses records that are already expired or bound elsewhere, and
        records naming a signerAddress other than this authorizer's.
        """
        auth = normalize_feedback_auth(auth)
        if auth.expiry <= self._clock():
            raise ValidationError("feedbackAuth expiry must be in the future", field="expiry")
        if auth.chain_id != self._chain_id:
            raise ValidationError(
                f"feedbackAuth chainId {auth.chain_id} does not match {self._chain_id}",
                field="chain_id",
            )
        if auth.identity_registry != self._identity_registry:
            raise ValidationError(
                "feedbackAuth identityRegistry does not match this deployment",
                field="identity_registry",
            )
        if auth.signer_address != self._signer_address:
            raise SigningError(
                "feedbackAuth signerAddress is not the configured signer",
                signer_address=self._signer_address,
            )

        digest = feedback_auth_digest(auth)
        signature = await sign_digest(self._signer, digest)

        if not self._contract_wallet:
            recovered = recover_signer(digest, signature)
            if recovered != auth.signer_address:
                raise SigningError(
                    f"Signature recovers to {recovered}, not signerAddress {auth.signer_address}",
                    signer_address=auth.signer_address,
                )

        logger.info(
            f"Issued feedbackAuth agent={auth.agent_id} client={auth.client_address} "
            f"indexLimit={auth.index_limit} expiry={auth.expiry}"
        )
        return build_envelope(auth, signature)

    async def authorize(
        self,
        registry: FeedbackRegistry,
        agent_id: int,
        client_address: str,
        validity_window: int,
    ) -> tuple[FeedbackAuth, bytes]:
        """Read the client's last index, build the record and sign it."""
        client_address = require_address(client_address, "client_address")
        agent_id = require_uint(agent_id, 256, "agent_id")
        require_validity_window(validity_window)
        if self._signer is None:
            raise SigningError("No signer configured for feedback authorization")

        last_index = await registry.get_last_index(agent_id, client_address)
        logger.debug(f"Last feedback index for agent={agent_id} client={client_address}: {last_index}")
        auth = self.build_feedback_auth(agent_id, client_address, last_index, validity_window)
        envelope = await self.sign(auth)
        return auth, envelope


__all__ = [
    "FeedbackRegistry",
    "FeedbackAuthorizer",
]
