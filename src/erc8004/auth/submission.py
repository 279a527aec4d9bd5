"""
Authorized feedback submission.

One call runs the whole pipeline:

    QUERY_INDEX -> BUILD_RECORD -> SIGN -> SUBMIT -> CONFIRMED | REJECTED

No step is retried. Any failure surfaces to the caller, who starts over
from QUERY_INDEX with fresh registry state; a signed-but-unsubmitted
envelope is never kept across calls.
"""

from __future__ import annotations

from typing import Callable

from erc8004.auth.authorizer import FeedbackAuthorizer, FeedbackRegistry
from erc8004.auth.envelope import verify_envelope
from erc8004.auth.policy import RejectionReason, require_validity_window
from erc8004.core.exceptions import RegistryRejectionError, SigningError, ValidationError
from erc8004.core.logging import get_logger
from erc8004.core.types import SubmissionOutcome, SubmissionState
from erc8004.core.validators import require_address, require_score, require_uint

logger = get_logger("auth.submission")

_SIGNATURE_REASONS = {RejectionReason.SIGNER_MISMATCH, RejectionReason.BAD_SIGNATURE}


class FeedbackSubmitter:
    """
    Drives one feedback submission end to end.

    The authorizer signs on behalf of the agent owner; the registry submits
    as the client. In production those are usually different processes, and
    this class is the single-process shortcut (and the reference for what
    each side does).
    """

    def __init__(
        self,
        registry: FeedbackRegistry,
        authorizer: FeedbackAuthorizer,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._registry = registry
        self._authorizer = authorizer
        self._clock = clock or authorizer.clock

    async def submit(
        self,
        agent_id: int,
        client_address: str,
        score: int,
        validity_window: int,
        tag1: str | None = None,
        tag2: str | None = None,
        feedback_uri: str | None = None,
        feedback_hash: bytes | str | None = None,
    ) -> SubmissionOutcome:
        """
        Authorize and submit one feedback entry.

        Raises:
            ValidationError: score outside [0, 100] or malformed input, before
                any network call.
            SigningError: the signer is missing or failed.
            NetworkError: the index read or submission did not reach the chain.
            RegistryRejectionError: the registry refused the envelope.
        """
        # Local preconditions first: nothing below may touch the network
        require_score(score)
        agent_id = require_uint(agent_id, 256, "agent_id")
        client_address = require_address(client_address, "client_address")
        require_validity_window(validity_window)
        if self._authorizer.signer_address is None:
            raise SigningError("No signer configured for feedback authorization")

        state = SubmissionState.QUERY_INDEX
        logger.debug(f"[{state.value}] agent={agent_id} client={client_address}")
        last_index = await self._registry.get_last_index(agent_id, client_address)

        state = SubmissionState.BUILD_RECORD
        auth = self._authorizer.build_feedback_auth(
            agent_id, client_address, last_index, validity_window
        )
        logger.debug(f"[{state.value}] indexLimit={auth.index_limit} expiry={auth.expiry}")

        state = SubmissionState.SIGN
        envelope = await self._authorizer.sign(auth)

        # Flag envelopes the registry would refuse before paying for a transaction
        _, check = verify_envelope(
            envelope,
            chain_id=self._authorizer.chain_id,
            identity_registry=self._authorizer.identity_registry,
            now=self._clock(),
            last_index=last_index,
            agent_id=agent_id,
            client_address=client_address,
        )
        reasons = check.reasons
        if self._authorizer.is_contract_wallet:
            # ERC-1271 signatures only verify through the wallet contract
            reasons = [r for r in reasons if r not in _SIGNATURE_REASONS]
        if reasons:
            raise ValidationError(
                f"feedbackAuth failed local verification: {check.reason}",
                field="feedback_auth",
                details={"reasons": [r.value for r in reasons]},
            )

        state = SubmissionState.SUBMIT
        logger.info(
            f"[{state.value}] giveFeedback agent={agent_id} client={client_address} "
            f"score={score} indexLimit={auth.index_limit}"
        )
        try:
            result = await self._registry.give_feedback(
                agent_id,
                score,
                envelope,
                tag1=tag1,
                tag2=tag2,
                feedback_uri=feedback_uri,
                feedback_hash=feedback_hash,
            )
        except RegistryRejectionError as e:
            logger.warning(
                f"[{SubmissionState.REJECTED.value}] agent={agent_id} client={client_address}: "
                f"{e.reason or e.message}"
            )
            raise

        logger.info(f"[{SubmissionState.CONFIRMED.value}] tx={result.tx_hash}")
        return SubmissionOutcome(
            state=SubmissionState.CONFIRMED,
            auth=auth,
            envelope=envelope,
            result=result,
        )


__all__ = ["FeedbackSubmitter"]
