"""
IPFS helper for registration and feedback files.

Uploads go through one of four providers:

    pinata       https://api.pinata.cloud (API key + secret)
    nftstorage   https://api.nft.storage (bearer token)
    web3storage  https://api.web3.storage (bearer token)
    ipfs         a local Kubo node (http://127.0.0.1:5001 by default)

Reads go through an HTTP gateway. Gateway fetches are idempotent, so
transient failures are retried with tenacity; uploads and pins are not.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from erc8004.core.exceptions import IPFSError, NetworkError, ValidationError
from erc8004.core.logging import get_logger

logger = get_logger("utils.ipfs")

DEFAULT_GATEWAY_URL = "https://ipfs.io/ipfs/"
DEFAULT_NODE_URL = "http://127.0.0.1:5001"
PINATA_API_URL = "https://api.pinata.cloud"
NFT_STORAGE_API_URL = "https://api.nft.storage"
WEB3_STORAGE_API_URL = "https://api.web3.storage"

PROVIDERS = ("pinata", "nftstorage", "web3storage", "ipfs")

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


# ─── CID helpers ─────────────────────────────────────────────────────

def _base58_decode(value: str) -> bytes:
    number = 0
    for char in value:
        index = _BASE58_ALPHABET.find(char)
        if index < 0:
            raise ValidationError(f"Invalid base58 character: {char!r}", field="cid")
        number = number * 58 + index
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    leading_zeros = len(value) - len(value.lstrip("1"))
    return b"\x00" * leading_zeros + body


def cid_to_bytes32(cid: str) -> str:
    """
    Convert a CIDv0 ("Qm...") to the 0x-hex of its 32-byte SHA-256 digest.

    CIDv0 is base58(0x12 0x20 <digest>). CIDv1 is not supported.
    """
    if not cid.startswith("Qm"):
        raise ValidationError("Only CIDv0 (starting with Qm) is supported", field="cid")
    raw = _base58_decode(cid)
    if len(raw) != 34:
        raise ValidationError(f"Invalid CID length: {len(raw)}, expected 34", field="cid")
    if raw[0] != 0x12 or raw[1] != 0x20:
        raise ValidationError("Invalid CID format: expected a SHA-256 multihash", field="cid")
    return "0x" + raw[2:].hex()


def _strip_ipfs_scheme(cid_or_uri: str) -> str:
    return cid_or_uri[len("ipfs://"):] if cid_or_uri.startswith("ipfs://") else cid_or_uri


def ipfs_uri_to_bytes32(uri: str) -> str:
    """cid_to_bytes32 for "ipfs://Qm..." URIs or bare CIDs."""
    return cid_to_bytes32(_strip_ipfs_scheme(uri))


# ─── Client ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class IPFSConfig:
    """IPFS provider settings."""

    provider: str
    api_key: str | None = None
    api_secret: str | None = None      # Pinata only
    gateway_url: str | None = None
    node_url: str | None = None        # local node only
    timeout: float = 30.0
    fetch_attempts: int = 3
    retry_backoff: float = 0.5

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValidationError(
                f"Unsupported IPFS provider: {self.provider}", field="provider"
            )
        if self.fetch_attempts < 1:
            raise ValidationError("fetch_attempts must be at least 1", field="fetch_attempts")


@dataclass
class IPFSUploadResult:
    cid: str
    uri: str                # ipfs://<cid>
    url: str                # gateway URL
    size: int | None = None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, NetworkError):
        return exc.status_code is None or exc.is_server_error() or exc.is_rate_limited()
    return False


class IPFSClient:
    """
    Upload, pin and fetch content on IPFS.

    Usage:
        ipfs = IPFSClient(IPFSConfig(provider="pinata", api_key=KEY, api_secret=SECRET))
        result = await ipfs.upload_json(feedback_file.to_dict(), name="feedback.json")
        feedback_hash = ipfs_uri_to_bytes32(result.uri)
    """

    def __init__(self, config: IPFSConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http_client = http_client
        self._owns_client = False

    @property
    def provider(self) -> str:
        return self._config.provider

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._config.timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> IPFSClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def get_gateway_url(self, cid: str) -> str:
        gateway = self._config.gateway_url or DEFAULT_GATEWAY_URL
        return f"{gateway}{cid}"

    def _result(self, cid: str, size: int | None = None) -> IPFSUploadResult:
        return IPFSUploadResult(cid=cid, uri=f"ipfs://{cid}", url=self.get_gateway_url(cid), size=size)

    # ─── Uploads ─────────────────────────────────────────────────────

    async def upload(
        self,
        content: str | bytes,
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> IPFSUploadResult:
        """Upload raw content and return its CID and URLs."""
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        provider = self._config.provider
        if provider == "pinata":
            result = await self._upload_to_pinata(data, name, metadata)
        elif provider == "nftstorage":
            result = await self._upload_to_nft_storage(data)
        elif provider == "web3storage":
            result = await self._upload_to_web3_storage(data, name)
        else:
            result = await self._upload_to_local_node(data, name)
        logger.info(f"Uploaded {len(data)} bytes to IPFS via {provider}: {result.cid}")
        return result

    async def upload_json(
        self,
        data: Any,
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> IPFSUploadResult:
        """Serialize data as indented JSON and upload it."""
        content = json.dumps(data, indent=2)
        return await self.upload(content, name=name or "data.json", metadata=metadata)

    async def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        provider = self._config.provider
        try:
            response = await client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise IPFSError(f"Request to {url} failed: {e}", provider=provider) from e
        if response.status_code >= 400:
            raise IPFSError(
                f"Upload failed with HTTP {response.status_code}: {response.text}",
                provider=provider,
                details={"status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            raise IPFSError(f"Unexpected response from {url}", provider=provider) from e

    async def _upload_to_pinata(
        self, data: bytes, name: str | None, metadata: dict[str, Any] | None
    ) -> IPFSUploadResult:
        if not self._config.api_key or not self._config.api_secret:
            raise IPFSError("Pinata requires both api_key and api_secret", provider="pinata")
        form: dict[str, str] = {}
        if metadata:
            form["pinataMetadata"] = json.dumps({"name": name, "keyvalues": metadata})
        body = await self._post(
            f"{PINATA_API_URL}/pinning/pinFileToIPFS",
            headers=self._pinata_headers(),
            files={"file": (name or "file", data, "application/json")},
            data=form,
        )
        return self._result(body["IpfsHash"], body.get("PinSize"))

    async def _upload_to_nft_storage(self, data: bytes) -> IPFSUploadResult:
        if not self._config.api_key:
            raise IPFSError("NFT.Storage requires an api_key", provider="nftstorage")
        body = await self._post(
            f"{NFT_STORAGE_API_URL}/upload",
            headers={"Authorization": f"Bearer {self._config.api_key}"},
            content=data,
        )
        return self._result(body["value"]["cid"])

    async def _upload_to_web3_storage(self, data: bytes, name: str | None) -> IPFSUploadResult:
        if not self._config.api_key:
            raise IPFSError("Web3.Storage requires an api_key", provider="web3storage")
        body = await self._post(
            f"{WEB3_STORAGE_API_URL}/upload",
            headers={"Authorization": f"Bearer {self._config.api_key}"},
            files={"file": (name or "file", data, "application/json")},
        )
        return self._result(body["cid"])

    async def _upload_to_local_node(self, data: bytes, name: str | None) -> IPFSUploadResult:
        node_url = self._config.node_url or DEFAULT_NODE_URL
        body = await self._post(
            f"{node_url}/api/v0/add",
            files={"file": (name or "file", data, "application/json")},
        )
        size = body.get("Size")
        return self._result(body["Hash"], int(size) if size is not None else None)

    def _pinata_headers(self) -> dict[str, str]:
        return {
            "pinata_api_key": self._config.api_key or "",
            "pinata_secret_api_key": self._config.api_secret or "",
        }

    # ─── Pinning ─────────────────────────────────────────────────────

    async def pin(self, cid: str, name: str | None = None) -> None:
        """Pin an existing CID. Only Pinata and a local node support this."""
        provider = self._config.provider
        if provider == "pinata":
            if not self._config.api_key or not self._config.api_secret:
                raise IPFSError("Pinata requires both api_key and api_secret", provider=provider)
            payload: dict[str, Any] = {"hashToPin": cid}
            if name:
                payload["pinataMetadata"] = {"name": name}
            await self._post(
                f"{PINATA_API_URL}/pinning/pinByHash",
                headers=self._pinata_headers(),
                json=payload,
            )
        elif provider == "ipfs":
            node_url = self._config.node_url or DEFAULT_NODE_URL
            await self._post(f"{node_url}/api/v0/pin/add", params={"arg": cid})
        else:
            raise IPFSError(f"Pinning not supported for provider: {provider}", provider=provider)
        logger.info(f"Pinned {cid} via {provider}")

    # ─── Fetching ────────────────────────────────────────────────────

    async def _fetch_once(self, url: str) -> str:
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise NetworkError(f"IPFS gateway request failed: {e}", url=url) from e
        if response.status_code >= 400:
            raise NetworkError(
                f"IPFS gateway returned HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )
        return response.text

    async def fetch(self, cid_or_uri: str) -> str:
        """Fetch content by CID or ipfs:// URI through the gateway."""
        url = self.get_gateway_url(_strip_ipfs_scheme(cid_or_uri))
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_transient),
                wait=wait_exponential(multiplier=self._config.retry_backoff, max=8),
                stop=stop_after_attempt(self._config.fetch_attempts),
                reraise=True,
                before_sleep=lambda state: logger.warning(
                    f"Retrying IPFS fetch of {url} (attempt {state.attempt_number})"
                ),
            ):
                with attempt:
                    return await self._fetch_once(url)
        except NetworkError as e:
            raise IPFSError(
                f"Failed to fetch {cid_or_uri}: {e.message}",
                provider="gateway",
                details={"status_code": e.status_code, "url": url},
            ) from e
        raise IPFSError(f"Failed to fetch {cid_or_uri}", provider="gateway")

    async def fetch_json(self, cid_or_uri: str) -> Any:
        content = await self.fetch(cid_or_uri)
        try:
            return json.loads(content)
        except ValueError as e:
            raise IPFSError(f"{cid_or_uri} is not valid JSON", provider="gateway") from e


def create_ipfs_client(config: IPFSConfig | dict[str, Any]) -> IPFSClient:
    """Build an IPFSClient from an IPFSConfig or a plain dict of its fields."""
    if isinstance(config, dict):
        config = IPFSConfig(**config)
    return IPFSClient(config)


__all__ = [
    "IPFSConfig",
    "IPFSClient",
    "IPFSUploadResult",
    "cid_to_bytes32",
    "ipfs_uri_to_bytes32",
    "create_ipfs_client",
]
