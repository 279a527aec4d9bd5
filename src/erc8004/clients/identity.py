"""
Identity Registry client.

Agents are ERC-721 tokens: registering mints one and emits Registered with
the new agentId. tokenURI points at the off-chain registration file
(ipfs://, https:// or an inline base64 data URI).
"""

from __future__ import annotations

import base64
import json
from typing import TYPE_CHECKING, Any

import httpx

from erc8004.core.exceptions import NetworkError, ReceiptError, ValidationError
from erc8004.core.logging import get_logger
from erc8004.core.registry import IDENTITY_REGISTRY_ABI
from erc8004.core.types import AgentRegistrationFile, MetadataEntry, TransactionResult
from erc8004.core.validators import require_address, require_uint
from erc8004.utils.ipfs import DEFAULT_GATEWAY_URL

if TYPE_CHECKING:
    from erc8004.adapters.base import BlockchainAdapter
    from erc8004.utils.ipfs import IPFSClient

logger = get_logger("clients.identity")

_DATA_URI_PREFIX = "data:application/json;base64,"


class IdentityClient:
    """Register agents and manage their URI and metadata."""

    FETCH_TIMEOUT = 10.0  # seconds for registration file fetches

    def __init__(
        self,
        adapter: BlockchainAdapter,
        contract_address: str,
        ipfs_client: IPFSClient | None = None,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._adapter = adapter
        self._address = require_address(contract_address, "identity_registry")
        self._ipfs = ipfs_client
        self._gateway_url = gateway_url
        self._http_client = http_client
        self._owns_http_client = False

    @property
    def address(self) -> str:
        return self._address

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client for registration file fetches."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.FETCH_TIMEOUT)
            self._owns_http_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_http_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ─── Registration ────────────────────────────────────────────────

    async def register(self) -> tuple[int, TransactionResult]:
        """Mint an agent with no URI; returns (agent_id, result)."""
        result = await self._adapter.send(self._address, IDENTITY_REGISTRY_ABI, "register()", [])
        return self._extract_agent_id(result), result

    async def register_with_uri(self, token_uri: str) -> tuple[int, TransactionResult]:
        result = await self._adapter.send(
            self._address, IDENTITY_REGISTRY_ABI, "register(string)", [token_uri]
        )
        return self._extract_agent_id(result), result

    async def register_with_metadata(
        self,
        token_uri: str,
        metadata: list[MetadataEntry],
    ) -> tuple[int, TransactionResult]:
        """Mint an agent with a URI and initial on-chain metadata (values stored as UTF-8)."""
        entries = [(m.key, m.value.encode("utf-8")) for m in metadata]
        result = await self._adapter.send(
            self._address,
            IDENTITY_REGISTRY_ABI,
            "register(string,(string,bytes)[])",
            [token_uri, entries],
        )
        return self._extract_agent_id(result), result

    def _extract_agent_id(self, result: TransactionResult) -> int:
        event = result.find_event("Registered")
        if event is None or "agentId" not in event.args:
            raise ReceiptError(
                "Registered event not found in receipt; check the identity registry "
                "address and ABI",
                tx_hash=result.tx_hash,
            )
        agent_id = int(event.args["agentId"])
        logger.info(f"Registered agent {agent_id} (tx {result.tx_hash})")
        return agent_id

    # ─── URI and ownership ───────────────────────────────────────────

    async def get_token_uri(self, agent_id: int) -> str:
        agent_id = require_uint(agent_id, 256, "agent_id")
        return await self._adapter.call(self._address, IDENTITY_REGISTRY_ABI, "tokenURI", [agent_id])

    async def set_agent_uri(self, agent_id: int, uri: str) -> TransactionResult:
        agent_id = require_uint(agent_id, 256, "agent_id")
        return await self._adapter.send(
            self._address, IDENTITY_REGISTRY_ABI, "setAgentUri", [agent_id, uri]
        )

    async def get_owner(self, agent_id: int) -> str:
        agent_id = require_uint(agent_id, 256, "agent_id")
        return await self._adapter.call(self._address, IDENTITY_REGISTRY_ABI, "ownerOf", [agent_id])

    # ─── Metadata ────────────────────────────────────────────────────

    async def get_metadata(self, agent_id: int, key: str) -> str:
        """Read a metadata value, decoded as UTF-8."""
        agent_id = require_uint(agent_id, 256, "agent_id")
        value = await self._adapter.call(
            self._address, IDENTITY_REGISTRY_ABI, "getMetadata", [agent_id, key]
        )
        if isinstance(value, str):
            return value
        return bytes(value).decode("utf-8", errors="replace")

    async def set_metadata(self, agent_id: int, key: str, value: str) -> TransactionResult:
        agent_id = require_uint(agent_id, 256, "agent_id")
        return await self._adapter.send(
            self._address,
            IDENTITY_REGISTRY_ABI,
            "setMetadata",
            [agent_id, key, value.encode("utf-8")],
        )

    # ─── Registration file ───────────────────────────────────────────

    async def get_registration_file(self, agent_id: int) -> AgentRegistrationFile:
        """Resolve tokenURI and parse the registration file it points to."""
        uri = await self.get_token_uri(agent_id)
        data = await self._load_json(uri)
        if not isinstance(data, dict):
            raise ValidationError(f"Registration file at {uri} is not a JSON object", field="token_uri")
        return AgentRegistrationFile.from_dict(data)

    async def _load_json(self, uri: str) -> Any:
        if uri.startswith(_DATA_URI_PREFIX):
            try:
                return json.loads(base64.b64decode(uri[len(_DATA_URI_PREFIX):]))
            except ValueError as e:
                raise ValidationError(f"Malformed data URI: {e}", field="token_uri") from e

        if uri.startswith("ipfs://"):
            if self._ipfs is not None:
                return await self._ipfs.fetch_json(uri)
            url = f"{self._gateway_url}{uri[len('ipfs://'):]}"
        elif uri.startswith(("https://", "http://")):
            url = uri
        else:
            raise ValidationError(f"Unsupported URI scheme: {uri}", field="token_uri")

        client = await self._get_http_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Registration file fetch failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                url=url,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Registration file fetch failed: {e}", url=url) from e
        except ValueError as e:
            raise ValidationError(f"Registration file at {url} is not valid JSON", field="token_uri") from e


__all__ = ["IdentityClient"]
