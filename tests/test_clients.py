"""Unit tests for the registry clients and the ERC8004Client facade."""

import base64
import json
from unittest.mock import AsyncMock

import httpx
import pytest
from eth_utils import keccak

from erc8004.auth.envelope import parse_envelope
from erc8004.auth.signer import recover_signer
from erc8004.auth.encoding import feedback_auth_digest
from erc8004.client import ERC8004Client
from erc8004.clients.identity import IdentityClient
from erc8004.clients.reputation import ReputationClient
from erc8004.clients.validation import ValidationClient
from erc8004.core.config import Config
from erc8004.core.exceptions import (
    AbiDecodingError,
    ConfigurationError,
    NetworkError,
    ReceiptError,
    SigningError,
    ValidationError,
)
from erc8004.core.registry import (
    IDENTITY_REGISTRY_ABI,
    LEGACY_VALIDATION_STATUS_ABI,
    REPUTATION_REGISTRY_ABI,
    VALIDATION_REGISTRY_ABI,
)
from erc8004.core.types import ContractAddresses, ContractEvent, MetadataEntry, TransactionResult

from conftest import (
    AGENT_ID,
    BareSigner,
    CHAIN_ID,
    IDENTITY_REGISTRY,
    OWNER_KEY,
    REPUTATION_REGISTRY,
    VALIDATION_REGISTRY,
)

# Far enough ahead that the wall clock never catches up during a test run
FAR_EXPIRY = 4_000_000_000


@pytest.fixture
def adapter(owner_account, owner_signer):
    adapter = AsyncMock()
    adapter.get_address.return_value = owner_account.address
    adapter.get_chain_id.return_value = CHAIN_ID
    adapter.sign_message.side_effect = owner_signer.sign_personal_message
    adapter.send.return_value = TransactionResult(tx_hash="0xfeed", block_number=12)
    return adapter


@pytest.fixture
def reputation(adapter):
    return ReputationClient(adapter, REPUTATION_REGISTRY, IDENTITY_REGISTRY)


class TestReputationClient:
    """Tests for ReputationClient."""

    @pytest.mark.asyncio
    async def test_give_feedback_arguments(self, reputation, adapter, owner_signer, sample_auth) -> None:
        envelope = await reputation.sign_feedback_auth(
            reputation.create_feedback_auth(
                AGENT_ID,
                sample_auth.client_address,
                1,
                FAR_EXPIRY,
                CHAIN_ID,
                sample_auth.signer_address,
            ),
            signer=owner_signer,
        )

        result = await reputation.give_feedback(
            AGENT_ID, 95, "0x" + envelope.hex(), tag1="quality", feedback_uri="ipfs://QmFeedback"
        )

        assert result.tx_hash == "0xfeed"
        adapter.send.assert_awaited_once_with(
            REPUTATION_REGISTRY,
            REPUTATION_REGISTRY_ABI,
            "giveFeedback",
            [AGENT_ID, 95, keccak(text="quality"), bytes(32), "ipfs://QmFeedback", bytes(32), envelope],
        )

    @pytest.mark.asyncio
    async def test_give_feedback_normalizes_recovery_id(self, reputation, adapter, owner_signer, sample_auth) -> None:
        auth = reputation.create_feedback_auth(
            AGENT_ID, sample_auth.client_address, 1, FAR_EXPIRY, CHAIN_ID, sample_auth.signer_address
        )
        envelope = await reputation.sign_feedback_auth(auth, signer=owner_signer)
        wallet_style = bytearray(envelope)
        wallet_style[-1] -= 27

        await reputation.give_feedback(AGENT_ID, 70, bytes(wallet_style))

        sent = adapter.send.await_args.args[3][-1]
        assert sent == envelope
        assert sent[-1] in (27, 28)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", [-1, 101])
    async def test_give_feedback_rejects_bad_score(self, reputation, adapter, score) -> None:
        with pytest.raises(ValidationError):
            await reputation.give_feedback(AGENT_ID, score, bytes(289))
        adapter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_give_feedback_rejects_malformed_envelope(self, reputation, adapter) -> None:
        with pytest.raises(ValidationError, match="289 bytes"):
            await reputation.give_feedback(AGENT_ID, 50, bytes(100))
        adapter.send.assert_not_awaited()

    def test_create_feedback_auth_binds_identity_registry(self, reputation, client_account, owner_account) -> None:
        auth = reputation.create_feedback_auth(
            AGENT_ID, client_account.address.lower(), 1, FAR_EXPIRY, CHAIN_ID, owner_account.address
        )
        assert auth.identity_registry == IDENTITY_REGISTRY
        assert auth.client_address == client_account.address

    @pytest.mark.asyncio
    async def test_sign_feedback_auth_defaults_to_adapter_account(
        self, reputation, adapter, owner_account, client_account
    ) -> None:
        auth = reputation.create_feedback_auth(
            AGENT_ID, client_account.address, 1, FAR_EXPIRY, CHAIN_ID, owner_account.address
        )
        envelope = await reputation.sign_feedback_auth(auth)

        parsed = parse_envelope(envelope)
        assert parsed.auth == auth
        assert recover_signer(feedback_auth_digest(auth), parsed.signature) == owner_account.address
        adapter.sign_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_last_index(self, reputation, adapter, client_account) -> None:
        adapter.call.return_value = 4
        assert await reputation.get_last_index(AGENT_ID, client_account.address) == 4
        adapter.call.assert_awaited_once_with(
            REPUTATION_REGISTRY, REPUTATION_REGISTRY_ABI, "getLastIndex", [AGENT_ID, client_account.address]
        )

    @pytest.mark.asyncio
    async def test_get_summary(self, reputation, adapter) -> None:
        adapter.call.return_value = {"count": 3, "averageScore": 72}
        summary = await reputation.get_summary(AGENT_ID, tag1="quality")

        assert (summary.count, summary.average) == (3, 72)
        args = adapter.call.await_args.args[3]
        assert args == [AGENT_ID, [], keccak(text="quality"), bytes(32)]

    @pytest.mark.asyncio
    async def test_read_feedback(self, reputation, adapter, client_account) -> None:
        tag = "0x" + keccak(text="quality").hex()
        adapter.call.return_value = {"score": 88, "tag1": tag, "tag2": "0x" + "00" * 32, "isRevoked": False}

        feedback = await reputation.read_feedback(AGENT_ID, client_account.address, 1)

        assert feedback.score == 88
        assert feedback.tag1 == tag
        assert feedback.client_address == client_account.address

    @pytest.mark.asyncio
    async def test_read_all_feedback(self, reputation, adapter, client_account, owner_account) -> None:
        zero = "0x" + "00" * 32
        adapter.call.return_value = {
            "clientAddresses": [client_account.address, owner_account.address],
            "scores": [90, 40],
            "tag1s": [zero, zero],
            "tag2s": [zero, zero],
            "revokedStatuses": [False, True],
        }

        entries = await reputation.read_all_feedback(AGENT_ID, include_revoked=True)

        assert [(e.client_address, e.score, e.is_revoked) for e in entries] == [
            (client_account.address, 90, False),
            (owner_account.address, 40, True),
        ]

    @pytest.mark.asyncio
    async def test_revoke_and_respond(self, reputation, adapter, client_account) -> None:
        await reputation.revoke_feedback(AGENT_ID, 2)
        await reputation.append_response(AGENT_ID, client_account.address, 2, "ipfs://QmReply")

        revoke, respond = adapter.send.await_args_list
        assert revoke.args[2:] == ("revokeFeedback", [AGENT_ID, 2])
        assert respond.args[2:] == (
            "appendResponse",
            [AGENT_ID, client_account.address, 2, "ipfs://QmReply", bytes(32)],
        )


class TestIdentityClient:
    """Tests for IdentityClient."""

    @pytest.mark.asyncio
    async def test_register_with_uri_returns_agent_id(self, adapter, owner_account) -> None:
        adapter.send.return_value = TransactionResult(
            tx_hash="0xabc",
            events=[ContractEvent(name="Registered", args={"agentId": 7, "owner": owner_account.address})],
        )
        identity = IdentityClient(adapter, IDENTITY_REGISTRY)

        agent_id, result = await identity.register_with_uri("ipfs://QmAgent")

        assert agent_id == 7
        assert result.tx_hash == "0xabc"
        adapter.send.assert_awaited_once_with(
            IDENTITY_REGISTRY, IDENTITY_REGISTRY_ABI, "register(string)", ["ipfs://QmAgent"]
        )

    @pytest.mark.asyncio
    async def test_register_with_metadata_encodes_values(self, adapter) -> None:
        adapter.send.return_value = TransactionResult(
            tx_hash="0xabc", events=[ContractEvent(name="Registered", args={"agentId": 8})]
        )
        identity = IdentityClient(adapter, IDENTITY_REGISTRY)

        agent_id, _ = await identity.register_with_metadata(
            "ipfs://QmAgent", [MetadataEntry(key="agentName", value="weather")]
        )

        assert agent_id == 8
        function, args = adapter.send.await_args.args[2:]
        assert function == "register(string,(string,bytes)[])"
        assert args == ["ipfs://QmAgent", [("agentName", b"weather")]]

    @pytest.mark.asyncio
    async def test_missing_registered_event(self, adapter) -> None:
        identity = IdentityClient(adapter, IDENTITY_REGISTRY)
        with pytest.raises(ReceiptError) as exc_info:
            await identity.register()
        assert exc_info.value.tx_hash == "0xfeed"

    @pytest.mark.asyncio
    async def test_metadata_round_trip(self, adapter) -> None:
        identity = IdentityClient(adapter, IDENTITY_REGISTRY)
        adapter.call.return_value = b"weather"

        await identity.set_metadata(AGENT_ID, "agentName", "weather")
        assert await identity.get_metadata(AGENT_ID, "agentName") == "weather"
        assert adapter.send.await_args.args[3] == [AGENT_ID, "agentName", b"weather"]

    @pytest.mark.asyncio
    async def test_registration_file_from_data_uri(self, adapter) -> None:
        payload = {"type": "registration", "name": "inline", "description": "", "image": ""}
        adapter.call.return_value = "data:application/json;base64," + base64.b64encode(
            json.dumps(payload).encode()
        ).decode()

        reg = await IdentityClient(adapter, IDENTITY_REGISTRY).get_registration_file(AGENT_ID)
        assert reg.name == "inline"

    @pytest.mark.asyncio
    async def test_registration_file_via_gateway(self, adapter) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"name": "gateway-agent", "endpoints": []})

        adapter.call.return_value = "ipfs://QmAgentFile"
        identity = IdentityClient(
            adapter,
            IDENTITY_REGISTRY,
            gateway_url="https://gw.example/ipfs/",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        reg = await identity.get_registration_file(AGENT_ID)

        assert reg.name == "gateway-agent"
        assert seen == ["https://gw.example/ipfs/QmAgentFile"]

    @pytest.mark.asyncio
    async def test_registration_file_via_ipfs_client(self, adapter) -> None:
        ipfs = AsyncMock()
        ipfs.fetch_json.return_value = {"name": "pinned"}
        adapter.call.return_value = "ipfs://QmPinned"

        reg = await IdentityClient(adapter, IDENTITY_REGISTRY, ipfs_client=ipfs).get_registration_file(AGENT_ID)

        assert reg.name == "pinned"
        ipfs.fetch_json.assert_awaited_once_with("ipfs://QmPinned")

    @pytest.mark.asyncio
    async def test_registration_file_http_error(self, adapter) -> None:
        adapter.call.return_value = "https://agent.example/registration.json"
        identity = IdentityClient(
            adapter,
            IDENTITY_REGISTRY,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))),
        )
        with pytest.raises(NetworkError) as exc_info:
            await identity.get_registration_file(AGENT_ID)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unsupported_uri_scheme(self, adapter) -> None:
        adapter.call.return_value = "ftp://agent.example/registration.json"
        with pytest.raises(ValidationError, match="Unsupported URI scheme"):
            await IdentityClient(adapter, IDENTITY_REGISTRY).get_registration_file(AGENT_ID)


class TestValidationClient:
    """Tests for ValidationClient."""

    REQUEST_HASH = "0x" + "ab" * 32

    @pytest.mark.asyncio
    async def test_validation_response_range(self, adapter) -> None:
        client = ValidationClient(adapter, VALIDATION_REGISTRY)
        with pytest.raises(ValidationError) as exc_info:
            await client.validation_response(self.REQUEST_HASH, 101)
        assert exc_info.value.field == "response"
        adapter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validation_request_arguments(self, adapter, client_account) -> None:
        client = ValidationClient(adapter, VALIDATION_REGISTRY)
        await client.validation_request(client_account.address, AGENT_ID, "ipfs://QmWork", self.REQUEST_HASH)

        function, args = adapter.send.await_args.args[2:]
        assert function == "validationRequest"
        assert args == [client_account.address, AGENT_ID, "ipfs://QmWork", bytes([0xAB]) * 32]

    @pytest.mark.asyncio
    async def test_status_current_layout(self, adapter, client_account) -> None:
        adapter.call.return_value = {
            "validatorAddress": client_account.address,
            "agentId": 1,
            "response": 100,
            "responseHash": "0x" + "cd" * 32,
            "tag": "0x" + "00" * 32,
            "lastUpdate": 1_700_000_500,
        }
        status = await ValidationClient(adapter, VALIDATION_REGISTRY).get_validation_status(self.REQUEST_HASH)

        assert status.response == 100
        assert status.response_hash == "0x" + "cd" * 32

    @pytest.mark.asyncio
    async def test_status_falls_back_to_legacy_layout(self, adapter, client_account) -> None:
        legacy = {
            "validatorAddress": client_account.address,
            "agentId": 1,
            "response": 80,
            "tag": "0x" + "00" * 32,
            "lastUpdate": 1_700_000_500,
        }
        adapter.call.side_effect = [AbiDecodingError("short data"), legacy]

        status = await ValidationClient(adapter, VALIDATION_REGISTRY).get_validation_status(self.REQUEST_HASH)

        assert status.response == 80
        assert status.response_hash is None
        first, second = adapter.call.await_args_list
        assert first.args[1] is VALIDATION_REGISTRY_ABI
        assert second.args[1] is LEGACY_VALIDATION_STATUS_ABI

    @pytest.mark.asyncio
    async def test_get_summary(self, adapter) -> None:
        adapter.call.return_value = {"count": 4, "avgResponse": 90}
        summary = await ValidationClient(adapter, VALIDATION_REGISTRY).get_summary(AGENT_ID)
        assert (summary.count, summary.average) == (4, 90)


class TestERC8004Client:
    """Tests for the ERC8004Client facade."""

    ADDRESSES = ContractAddresses(
        identity_registry=IDENTITY_REGISTRY,
        reputation_registry=REPUTATION_REGISTRY,
        validation_registry=VALIDATION_REGISTRY,
        chain_id=CHAIN_ID,
    )

    @pytest.mark.asyncio
    async def test_submit_authorized_feedback(
        self, adapter, owner_signer, owner_account, client_account
    ) -> None:
        adapter.get_address.return_value = client_account.address
        adapter.call.return_value = 2
        client = ERC8004Client(adapter, self.ADDRESSES)

        outcome = await client.submit_authorized_feedback(
            agent_id=AGENT_ID, score=95, validity_window=3600, signer=owner_signer
        )

        assert outcome.confirmed
        assert outcome.auth.index_limit == 3
        assert outcome.auth.client_address == client_account.address
        assert outcome.auth.signer_address == owner_account.address
        function, args = adapter.send.await_args.args[2:]
        assert function == "giveFeedback"
        assert args[-1] == outcome.envelope

    @pytest.mark.asyncio
    async def test_submit_with_bare_signer_and_signer_address(
        self, adapter, owner_account, client_account
    ) -> None:
        adapter.get_address.return_value = client_account.address
        adapter.call.return_value = 0
        client = ERC8004Client(adapter, self.ADDRESSES)

        outcome = await client.submit_authorized_feedback(
            AGENT_ID,
            80,
            3600,
            signer=BareSigner(owner_account),
            signer_address=owner_account.address,
        )

        assert outcome.confirmed
        assert outcome.auth.signer_address == owner_account.address

    @pytest.mark.asyncio
    async def test_bare_signer_without_signer_address(self, adapter, owner_account, client_account) -> None:
        adapter.get_address.return_value = client_account.address
        client = ERC8004Client(adapter, self.ADDRESSES)

        with pytest.raises(SigningError, match="signer_address"):
            await client.submit_authorized_feedback(
                AGENT_ID, 80, 3600, signer=BareSigner(owner_account)
            )
        adapter.call.assert_not_awaited()
        adapter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authorize_for_contract_wallet(self, adapter, owner_signer, client_account) -> None:
        wallet = "0x7777777777777777777777777777777777777777"
        adapter.call.return_value = 0
        client = ERC8004Client(adapter, self.ADDRESSES)

        auth, envelope = await client.authorize_feedback(
            AGENT_ID, client_account.address, 600, signer=owner_signer, signer_address=wallet
        )

        assert auth.signer_address == wallet
        assert parse_envelope(envelope).auth == auth

    @pytest.mark.asyncio
    async def test_submit_without_account_or_client(self, adapter, owner_signer) -> None:
        adapter.get_address.return_value = None
        client = ERC8004Client(adapter, self.ADDRESSES)

        with pytest.raises(ConfigurationError):
            await client.submit_authorized_feedback(AGENT_ID, 95, 3600, signer=owner_signer)
        adapter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authorize_feedback_uses_adapter_account(self, adapter, owner_account, client_account) -> None:
        adapter.call.return_value = 0
        client = ERC8004Client(adapter, self.ADDRESSES)

        auth, envelope = await client.authorize_feedback(AGENT_ID, client_account.address, 600)

        assert auth.signer_address == owner_account.address
        assert parse_envelope(envelope).auth == auth

    def test_get_addresses_returns_copy(self, adapter) -> None:
        client = ERC8004Client(adapter, self.ADDRESSES)
        addresses = client.get_addresses()
        addresses.chain_id = 1
        assert client.get_addresses().chain_id == CHAIN_ID

    @pytest.mark.asyncio
    async def test_from_config(self, restore_logging) -> None:
        config = Config(
            rpc_url="http://127.0.0.1:8545",
            identity_registry=IDENTITY_REGISTRY,
            reputation_registry=REPUTATION_REGISTRY,
            validation_registry=VALIDATION_REGISTRY,
            chain_id=CHAIN_ID,
            ipfs_gateway_url="https://gw.example/ipfs/",
        )
        async with await ERC8004Client.from_config(config, account=OWNER_KEY) as client:
            assert client.reputation.address == REPUTATION_REGISTRY
            assert client.reputation.identity_registry == IDENTITY_REGISTRY
            assert await client.get_chain_id() == CHAIN_ID
            assert client.ipfs is None

    @pytest.mark.asyncio
    async def test_close_closes_adapter_and_ipfs(self, adapter) -> None:
        ipfs = AsyncMock()
        client = ERC8004Client(adapter, self.ADDRESSES, ipfs_client=ipfs)
        await client.close()
        adapter.close.assert_awaited_once()
        ipfs.close.assert_awaited_once()
