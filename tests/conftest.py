import logging

import pytest
from eth_account import Account

from erc8004.auth.authorizer import FeedbackAuthorizer
from erc8004.auth.signer import LocalAccountSigner
from erc8004.core.logging import LOGGER_NAME
from erc8004.core.types import FeedbackAuth
from erc8004.testing import InMemoryReputationRegistry

# Well-known local development keys; never funded on a real network.
OWNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
CLIENT_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
STRANGER_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

CHAIN_ID = 31337
IDENTITY_REGISTRY = "0x1111111111111111111111111111111111111111"
REPUTATION_REGISTRY = "0x2222222222222222222222222222222222222222"
VALIDATION_REGISTRY = "0x3333333333333333333333333333333333333333"
NOW = 1_700_000_000
AGENT_ID = 1


class FakeClock:
    """Settable Unix clock."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class BareSigner:
    """Signer exposing only sign_personal_message, with no address attribute."""

    def __init__(self, account) -> None:
        self._account = account

    def sign_personal_message(self, message: bytes) -> bytes:
        return LocalAccountSigner(self._account).sign_personal_message(message)


@pytest.fixture
def owner_account():
    return Account.from_key(OWNER_KEY)


@pytest.fixture
def client_account():
    return Account.from_key(CLIENT_KEY)


@pytest.fixture
def stranger_account():
    return Account.from_key(STRANGER_KEY)


@pytest.fixture
def owner_signer(owner_account):
    return LocalAccountSigner(owner_account)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(owner_account, clock):
    """In-memory registry with agent 1 owned by the owner account."""
    registry = InMemoryReputationRegistry(
        chain_id=CHAIN_ID,
        identity_registry=IDENTITY_REGISTRY,
        clock=clock,
    )
    registry.register_agent(owner_account.address, agent_id=AGENT_ID)
    return registry


@pytest.fixture
def client_registry(registry, client_account):
    """The registry as seen by the client submitting feedback."""
    return registry.connect(client_account.address)


@pytest.fixture
def authorizer(owner_signer, clock):
    return FeedbackAuthorizer(owner_signer, CHAIN_ID, IDENTITY_REGISTRY, clock=clock)


@pytest.fixture
def sample_auth(owner_account, client_account):
    return FeedbackAuth(
        agent_id=AGENT_ID,
        client_address=client_account.address,
        index_limit=1,
        expiry=NOW + 3600,
        chain_id=CHAIN_ID,
        identity_registry=IDENTITY_REGISTRY,
        signer_address=owner_account.address,
    )


@pytest.fixture
def restore_logging():
    """Undo configure_logging() so later tests see the default logger setup."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
