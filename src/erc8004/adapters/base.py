"""
Blockchain adapter interface.

Registry clients only talk to the chain through this boundary, so any
transport (raw JSON-RPC, a wallet bridge, an in-memory fake) can sit
underneath.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from erc8004.core.types import TransactionResult


class BlockchainAdapter(ABC):
    """
    Abstract adapter for contract reads, writes and message signing.

    function_name may be a bare name ("register") or a full signature
    ("register(string)") to pick one overload.
    """

    @abstractmethod
    async def call(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> Any:
        """
        Call a read-only contract function.

        Returns the single output for one-output functions, otherwise a
        dict keyed by output name (positional keys for unnamed outputs).
        """
        ...

    @abstractmethod
    async def send(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> TransactionResult:
        """Send a transaction and wait for its receipt."""
        ...

    @abstractmethod
    async def get_address(self) -> str | None:
        """Signing account address, or None in read-only mode."""
        ...

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Chain ID of the connected network."""
        ...

    @abstractmethod
    async def sign_message(self, message: bytes) -> bytes:
        """EIP-191 personal_sign over message; returns 65 bytes r||s||v."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
