"""ERC8004Client - Main SDK entry point."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any

from erc8004.adapters.jsonrpc import JsonRpcAdapter
from erc8004.auth.authorizer import FeedbackAuthorizer
from erc8004.auth.signer import AdapterSigner, MessageSigner
from erc8004.auth.submission import FeedbackSubmitter
from erc8004.clients.identity import IdentityClient
from erc8004.clients.reputation import ReputationClient
from erc8004.clients.validation import ValidationClient
from erc8004.core.exceptions import ConfigurationError
from erc8004.core.logging import configure_logging, get_logger
from erc8004.core.types import ContractAddresses, FeedbackAuth, SubmissionOutcome

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from erc8004.adapters.base import BlockchainAdapter
    from erc8004.core.config import Config
    from erc8004.utils.ipfs import IPFSClient

logger = get_logger("client")


class ERC8004Client:
    """
    Main client for the ERC-8004 registries.

    Holds one client per registry, all sharing one adapter:

        client = await ERC8004Client.from_config(Config.from_env(), account=KEY)
        async with client:
            agent_id, _ = await client.identity.register_with_uri("ipfs://Qm...")
            outcome = await client.submit_authorized_feedback(
                agent_id=7, score=95, validity_window=3600, signer=owner_signer
            )
    """

    def __init__(
        self,
        adapter: BlockchainAdapter,
        addresses: ContractAddresses,
        ipfs_client: IPFSClient | None = None,
        gateway_url: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._addresses = replace(addresses)
        self._ipfs = ipfs_client

        identity_kwargs: dict[str, Any] = {"ipfs_client": ipfs_client}
        if gateway_url:
            identity_kwargs["gateway_url"] = gateway_url
        self.identity = IdentityClient(adapter, addresses.identity_registry, **identity_kwargs)
        self.reputation = ReputationClient(
            adapter, addresses.reputation_registry, addresses.identity_registry
        )
        self.validation = ValidationClient(adapter, addresses.validation_registry)

    @classmethod
    async def from_config(
        cls,
        config: Config,
        account: LocalAccount | str | bytes | None = None,
        ipfs_client: IPFSClient | None = None,
    ) -> ERC8004Client:
        """
        Build a client over a JsonRpcAdapter.

        Configures logging at config.log_level and resolves the chain ID
        from the node when the config leaves it unset.
        """
        configure_logging(level=config.log_level)
        adapter = JsonRpcAdapter.from_config(config, account=account)
        chain_id = config.chain_id or await adapter.get_chain_id()
        logger.info(
            f"Initializing ERC-8004 client (chain {chain_id}, endpoints {config.masked_rpc_urls()})"
        )
        addresses = ContractAddresses(
            identity_registry=config.identity_registry,
            reputation_registry=config.reputation_registry,
            validation_registry=config.validation_registry,
            chain_id=chain_id,
        )
        return cls(adapter, addresses, ipfs_client=ipfs_client, gateway_url=config.ipfs_gateway_url)

    @property
    def adapter(self) -> BlockchainAdapter:
        return self._adapter

    @property
    def ipfs(self) -> IPFSClient | None:
        return self._ipfs

    async def get_address(self) -> str | None:
        return await self._adapter.get_address()

    async def get_chain_id(self) -> int:
        return await self._adapter.get_chain_id()

    def get_addresses(self) -> ContractAddresses:
        """A copy of the registry addresses this client talks to."""
        return replace(self._addresses)

    # ─── feedbackAuth shortcuts ──────────────────────────────────────

    async def _authorizer(
        self, signer: MessageSigner | None, signer_address: str | None
    ) -> FeedbackAuthorizer:
        if signer is None:
            signer = await AdapterSigner.from_adapter(self._adapter)
        return FeedbackAuthorizer(
            signer,
            chain_id=self._addresses.chain_id,
            identity_registry=self._addresses.identity_registry,
            signer_address=signer_address,
        )

    async def authorize_feedback(
        self,
        agent_id: int,
        client_address: str,
        validity_window: int,
        signer: MessageSigner | None = None,
        signer_address: str | None = None,
    ) -> tuple[FeedbackAuth, bytes]:
        """
        Issue a feedbackAuth for client_address as the agent owner.

        Defaults to signing with the adapter's account. signer_address is
        needed for signers without an address attribute, or to name an
        ERC-1271 wallet the signer acts for.
        """
        authorizer = await self._authorizer(signer, signer_address)
        return await authorizer.authorize(self.reputation, agent_id, client_address, validity_window)

    async def submit_authorized_feedback(
        self,
        agent_id: int,
        score: int,
        validity_window: int,
        signer: MessageSigner | None = None,
        client_address: str | None = None,
        tag1: str | None = None,
        tag2: str | None = None,
        feedback_uri: str | None = None,
        feedback_hash: bytes | str | None = None,
        signer_address: str | None = None,
    ) -> SubmissionOutcome:
        """
        Authorize and submit feedback in one process.

        signer is the agent owner's signing capability; the transaction is
        sent from the adapter's account, which is also the default client.
        signer_address is passed to FeedbackAuthorizer as in authorize_feedback.
        """
        if client_address is None:
            client_address = await self._adapter.get_address()
            if client_address is None:
                raise ConfigurationError("A signing account is required to submit feedback")
        authorizer = await self._authorizer(signer, signer_address)
        submitter = FeedbackSubmitter(self.reputation, authorizer)
        return await submitter.submit(
            agent_id,
            client_address,
            score,
            validity_window,
            tag1=tag1,
            tag2=tag2,
            feedback_uri=feedback_uri,
            feedback_hash=feedback_hash,
        )

    async def close(self) -> None:
        await self.identity.close()
        if self._ipfs is not None:
            await self._ipfs.close()
        await self._adapter.close()

    async def __aenter__(self) -> ERC8004Client:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


__all__ = ["ERC8004Client"]
