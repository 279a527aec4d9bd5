"""Unit tests for FeedbackAuthorizer (issuance side)."""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from erc8004.auth.authorizer import FeedbackAuthorizer
from erc8004.auth.envelope import parse_envelope, verify_envelope
from erc8004.auth.submission import FeedbackSubmitter
from erc8004.core.exceptions import NetworkError, SigningError, ValidationError
from erc8004.core.types import SubmissionState

from conftest import AGENT_ID, CHAIN_ID, IDENTITY_REGISTRY, NOW, BareSigner

CONTRACT_WALLET = "0x7777777777777777777777777777777777777777"


class TestBuildFeedbackAuth:
    """Tests for building the record."""

    def test_record_fields(self, authorizer, owner_account, client_account) -> None:
        auth = authorizer.build_feedback_auth(AGENT_ID, client_account.address, 4, 600)

        assert auth.agent_id == AGENT_ID
        assert auth.client_address == client_account.address
        assert auth.index_limit == 5
        assert auth.expiry == NOW + 600
        assert auth.chain_id == CHAIN_ID
        assert auth.identity_registry == IDENTITY_REGISTRY
        assert auth.signer_address == owner_account.address

    def test_client_address_is_checksummed(self, authorizer, client_account) -> None:
        auth = authorizer.build_feedback_auth(AGENT_ID, client_account.address.lower(), 0, 600)
        assert auth.client_address == client_account.address

    def test_no_signer_rejected(self, clock, client_account) -> None:
        authorizer = FeedbackAuthorizer(None, CHAIN_ID, IDENTITY_REGISTRY, clock=clock)
        with pytest.raises(SigningError, match="No signer"):
            authorizer.build_feedback_auth(AGENT_ID, client_account.address, 0, 600)


class TestSignerAddress:
    """Tests for signers that expose no address attribute."""

    def test_bare_signer_requires_signer_address(self, owner_account, clock) -> None:
        with pytest.raises(SigningError, match="signer_address"):
            FeedbackAuthorizer(BareSigner(owner_account), CHAIN_ID, IDENTITY_REGISTRY, clock=clock)

    @pytest.mark.asyncio
    async def test_bare_signer_with_signer_address_submits(
        self, owner_account, client_account, client_registry, clock
    ) -> None:
        authorizer = FeedbackAuthorizer(
            BareSigner(owner_account),
            CHAIN_ID,
            IDENTITY_REGISTRY,
            signer_address=owner_account.address,
            clock=clock,
        )
        assert not authorizer.is_contract_wallet

        outcome = await FeedbackSubmitter(client_registry, authorizer).submit(
            AGENT_ID, client_account.address, 50, 3600
        )

        assert outcome.state == SubmissionState.CONFIRMED
        assert outcome.auth.signer_address == owner_account.address


class TestSign:
    """Tests for signing a record into an envelope."""

    @pytest.mark.asyncio
    async def test_envelope_verifies(self, authorizer, client_account) -> None:
        auth = authorizer.build_feedback_auth(AGENT_ID, client_account.address, 0, 600)
        envelope = await authorizer.sign(auth)

        parsed, check = verify_envelope(
            envelope,
            chain_id=CHAIN_ID,
            identity_registry=IDENTITY_REGISTRY,
            now=NOW,
            last_index=0,
            agent_id=AGENT_ID,
            client_address=client_account.address,
        )
        assert check.valid
        assert parsed.auth == auth

    @pytest.mark.asyncio
    async def test_expired_record_not_signed(self, authorizer, sample_auth) -> None:
        with pytest.raises(ValidationError, match="future"):
            await authorizer.sign(replace(sample_auth, expiry=NOW))

    @pytest.mark.asyncio
    async def test_other_chain_not_signed(self, authorizer, sample_auth) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await authorizer.sign(replace(sample_auth, chain_id=1))
        assert exc_info.value.field == "chain_id"

    @pytest.mark.asyncio
    async def test_other_registry_not_signed(self, authorizer, sample_auth) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await authorizer.sign(
                replace(sample_auth, identity_registry="0x9999999999999999999999999999999999999999")
            )
        assert exc_info.value.field == "identity_registry"

    @pytest.mark.asyncio
    async def test_foreign_signer_address_not_signed(self, authorizer, sample_auth, stranger_account) -> None:
        with pytest.raises(SigningError):
            await authorizer.sign(replace(sample_auth, signer_address=stranger_account.address))

    @pytest.mark.asyncio
    async def test_contract_wallet_signer_skips_local_recovery(
        self, owner_signer, clock, client_account
    ) -> None:
        authorizer = FeedbackAuthorizer(
            owner_signer, CHAIN_ID, IDENTITY_REGISTRY, signer_address=CONTRACT_WALLET, clock=clock
        )
        assert authorizer.is_contract_wallet

        auth = authorizer.build_feedback_auth(AGENT_ID, client_account.address, 0, 600)
        envelope = await authorizer.sign(auth)
        assert parse_envelope(envelope).auth.signer_address == CONTRACT_WALLET


class TestAuthorize:
    """Tests for the read-index-then-sign shortcut."""

    @pytest.mark.asyncio
    async def test_uses_registry_last_index(self, authorizer, client_account) -> None:
        registry = AsyncMock()
        registry.get_last_index.return_value = 3

        auth, envelope = await authorizer.authorize(registry, AGENT_ID, client_account.address, 600)

        registry.get_last_index.assert_awaited_once_with(AGENT_ID, client_account.address)
        assert auth.index_limit == 4
        assert parse_envelope(envelope).auth == auth

    @pytest.mark.asyncio
    async def test_bad_window_fails_before_network(self, authorizer, client_account) -> None:
        registry = AsyncMock()
        with pytest.raises(ValidationError):
            await authorizer.authorize(registry, AGENT_ID, client_account.address, 0)
        registry.get_last_index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_failure_propagates(self, authorizer, client_account) -> None:
        registry = AsyncMock()
        registry.get_last_index.side_effect = NetworkError("connection refused")
        with pytest.raises(NetworkError):
            await authorizer.authorize(registry, AGENT_ID, client_account.address, 600)

    @pytest.mark.asyncio
    async def test_each_call_reads_fresh_index(self, authorizer, client_account) -> None:
        registry = AsyncMock()
        registry.get_last_index.side_effect = [0, 1]

        first, _ = await authorizer.authorize(registry, AGENT_ID, client_account.address, 600)
        second, _ = await authorizer.authorize(registry, AGENT_ID, client_account.address, 600)

        assert (first.index_limit, second.index_limit) == (1, 2)
