"""
JSON-RPC blockchain adapter.

Talks to any EVM node over plain JSON-RPC with httpx. Calldata and return
values go through eth-abi, transactions and messages are signed locally
with an eth-account key; no web3.py dependency.

Reads fail over across every configured endpoint in order:

    adapter = JsonRpcAdapter("https://alchemy.example/v2/KEY,https://infura.example/v3/KEY")

Writes (nonce, gas, raw transaction, receipt polling) stay on the first
endpoint so a transaction is never broadcast twice through different
nodes.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
from eth_account import Account
from eth_account.messages import encode_defunct

from erc8004.adapters.abi import (
    decode_logs,
    decode_result,
    decode_revert_reason,
    encode_call,
    find_function,
    function_signature,
)
from erc8004.adapters.base import BlockchainAdapter
from erc8004.core.exceptions import (
    AbiDecodingError,
    ConfigurationError,
    NetworkError,
    RegistryRejectionError,
    SigningError,
    TransactionTimeoutError,
)
from erc8004.core.logging import get_logger, mask_url
from erc8004.core.types import TransactionResult

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from erc8004.core.config import Config

logger = get_logger("adapters.jsonrpc")


def _hex_to_int(value: str | int | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def _revert_data(error: dict[str, Any]) -> bytes | None:
    data = error.get("data")
    if isinstance(data, dict):
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return bytes.fromhex(data[2:])
        except ValueError:
            return None
    return None


def _is_revert(error: dict[str, Any]) -> bool:
    # Geth and Anvil use code 3 for reverts with data; Hardhat only says so in the message
    message = str(error.get("message", "")).lower()
    return error.get("code") == 3 or "revert" in message


class JsonRpcAdapter(BlockchainAdapter):
    """
    BlockchainAdapter over raw JSON-RPC.

    Args:
        rpc_url: Endpoint URL, or several comma-separated for read failover.
        account: eth-account LocalAccount or private key; None for read-only.
        chain_id: Expected chain ID; fetched with eth_chainId when omitted.
        http_client: Shared httpx client (for connection pooling).
        request_timeout: Per-request timeout in seconds.
        poll_interval: Seconds between receipt polls.
        poll_timeout: Seconds to wait for a receipt before giving up.
        gas_limit_multiplier: Headroom applied to eth_estimateGas.
    """

    def __init__(
        self,
        rpc_url: str | list[str],
        account: LocalAccount | str | bytes | None = None,
        chain_id: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        request_timeout: float = 30.0,
        poll_interval: float = 2.0,
        poll_timeout: float = 120.0,
        gas_limit_multiplier: float = 1.2,
    ) -> None:
        raw_urls = rpc_url if isinstance(rpc_url, list) else (rpc_url or "").split(",")
        self._rpc_urls: list[str] = [u.strip() for u in raw_urls if u and u.strip()]
        if not self._rpc_urls:
            raise ConfigurationError("At least one RPC URL is required")

        if isinstance(account, (str, bytes)):
            account = Account.from_key(account)
        self._account = account
        self._chain_id = chain_id
        self._http_client = http_client
        self._owns_client = False
        self._request_timeout = request_timeout
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._gas_limit_multiplier = gas_limit_multiplier
        self._request_id = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        account: LocalAccount | str | bytes | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> JsonRpcAdapter:
        return cls(
            rpc_url=config.rpc_urls,
            account=account,
            chain_id=config.chain_id,
            http_client=http_client,
            request_timeout=config.request_timeout,
            poll_interval=config.transaction_poll_interval,
            poll_timeout=config.transaction_poll_timeout,
            gas_limit_multiplier=config.gas_limit_multiplier,
        )

    @property
    def rpc_urls(self) -> list[str]:
        return list(self._rpc_urls)

    @property
    def is_read_only(self) -> bool:
        return self._account is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._request_timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> JsonRpcAdapter:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # ─── JSON-RPC transport ──────────────────────────────────────────

    async def _rpc(
        self,
        method: str,
        params: list[Any],
        failover: bool = True,
        function: str | None = None,
    ) -> Any:
        """
        Send one JSON-RPC request.

        With failover, transport errors and non-revert RPC errors move on to
        the next endpoint. A revert is an answer, not an outage, so it is
        raised immediately as RegistryRejectionError.
        """
        client = await self._get_client()
        urls = self._rpc_urls if failover else self._rpc_urls[:1]
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}

        last_error: NetworkError | None = None
        for i, url in enumerate(urls):
            position = f"{i + 1}/{len(urls)} ({mask_url(url)})"
            try:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.TimeoutException:
                logger.warning(f"{method}: timeout from RPC provider {position}")
                last_error = NetworkError(f"{method} timed out", url=url)
                continue
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"{method}: HTTP {e.response.status_code} from RPC provider {position}"
                )
                last_error = NetworkError(
                    f"{method} failed with HTTP {e.response.status_code}",
                    status_code=e.response.status_code,
                    url=url,
                )
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"{method}: {type(e).__name__} from RPC provider {position}: {e}")
                last_error = NetworkError(f"{method} failed: {e}", url=url)
                continue

            error = body.get("error")
            if error:
                if _is_revert(error):
                    reason = decode_revert_reason(_revert_data(error)) or error.get("message")
                    raise RegistryRejectionError(
                        f"Execution reverted: {reason}",
                        reason=reason,
                        function=function or method,
                        details={"code": error.get("code")},
                    )
                logger.debug(f"{method}: RPC error from provider {position}: {error}")
                last_error = NetworkError(
                    f"{method} returned RPC error: {error.get('message')}",
                    url=url,
                    details={"code": error.get("code")},
                )
                continue

            return body.get("result")

        if last_error is None:
            raise NetworkError(f"{method}: no RPC endpoint to send to")
        if len(urls) > 1:
            logger.error(f"{method}: all {len(urls)} RPC providers failed")
        raise last_error

    # ─── BlockchainAdapter ───────────────────────────────────────────

    async def call(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> Any:
        entry = find_function(abi, function_name, args)
        signature = function_signature(entry)
        data = encode_call(entry, args)

        result = await self._rpc(
            "eth_call",
            [{"to": contract_address, "data": "0x" + data.hex()}, "latest"],
            function=signature,
        )
        raw = bytes.fromhex((result or "0x")[2:])
        try:
            return decode_result(entry, raw)
        except Exception as exc:
            raise AbiDecodingError(
                f"Could not decode {signature} result from {contract_address}: {exc}",
                function=signature,
                details={"length": len(raw)},
            ) from exc

    async def send(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> TransactionResult:
        if self._account is None:
            raise ConfigurationError("A signing account is required for write operations")

        entry = find_function(abi, function_name, args)
        signature = function_signature(entry)
        data = "0x" + encode_call(entry, args).hex()
        sender = self._account.address
        chain_id = await self.get_chain_id()

        nonce = _hex_to_int(
            await self._rpc("eth_getTransactionCount", [sender, "pending"], failover=False)
        )
        call_tx = {"from": sender, "to": contract_address, "data": data}
        estimated = _hex_to_int(
            await self._rpc("eth_estimateGas", [call_tx], failover=False, function=signature)
        )
        gas_price = _hex_to_int(await self._rpc("eth_gasPrice", [], failover=False))

        tx = {
            "to": contract_address,
            "data": data,
            "value": 0,
            "gas": int(estimated * self._gas_limit_multiplier),
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
        }
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._rpc(
            "eth_sendRawTransaction",
            ["0x" + bytes(signed.raw_transaction).hex()],
            failover=False,
            function=signature,
        )
        logger.info(f"Sent {signature} to {contract_address}: {tx_hash}")

        receipt = await self._wait_for_receipt(tx_hash)
        if _hex_to_int(receipt.get("status")) == 0:
            raise RegistryRejectionError(
                f"Transaction {tx_hash} reverted",
                function=signature,
                tx_hash=tx_hash,
            )

        block_number = receipt.get("blockNumber")
        return TransactionResult(
            tx_hash=tx_hash,
            block_number=_hex_to_int(block_number) if block_number is not None else None,
            events=decode_logs(abi, receipt.get("logs", [])),
            receipt=receipt,
        )

    async def _wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._poll_timeout
        while True:
            receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash], failover=False)
            if receipt:
                return receipt
            if loop.time() >= deadline:
                raise TransactionTimeoutError(
                    f"Transaction {tx_hash} not mined within {self._poll_timeout}s",
                    tx_hash=tx_hash,
                    timeout_seconds=self._poll_timeout,
                )
            await asyncio.sleep(self._poll_interval)

    async def get_address(self) -> str | None:
        return self._account.address if self._account is not None else None

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = _hex_to_int(await self._rpc("eth_chainId", []))
            logger.debug(f"Connected to chain {self._chain_id}")
        return self._chain_id

    async def sign_message(self, message: bytes) -> bytes:
        if self._account is None:
            raise SigningError("No signing account configured (read-only mode)")
        signed = self._account.sign_message(encode_defunct(primitive=message))
        return bytes(signed.signature)

    def __repr__(self) -> str:
        mode = "read-only" if self._account is None else self._account.address
        return f"JsonRpcAdapter(endpoints={len(self._rpc_urls)}, account={mode})"


__all__ = ["JsonRpcAdapter"]
