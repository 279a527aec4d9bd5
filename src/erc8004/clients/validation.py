"""
Validation Registry client.

Agents ask validators to check their work (validationRequest); validators
answer with a 0-100 response (validationResponse).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from erc8004.core.exceptions import AbiDecodingError
from erc8004.core.logging import get_logger
from erc8004.core.registry import (
    LEGACY_VALIDATION_STATUS_ABI,
    VALIDATION_REGISTRY_ABI,
    hash_or_zero,
    tag_to_bytes32,
)
from erc8004.core.types import Summary, TransactionResult, ValidationStatus
from erc8004.core.validators import require_address, require_bytes32, require_score, require_uint

if TYPE_CHECKING:
    from erc8004.adapters.base import BlockchainAdapter

logger = get_logger("clients.validation")


class ValidationClient:
    """Client for the ERC-8004 Validation Registry."""

    def __init__(self, adapter: BlockchainAdapter, contract_address: str) -> None:
        self._adapter = adapter
        self._address = require_address(contract_address, "validation_registry")

    @property
    def address(self) -> str:
        return self._address

    async def validation_request(
        self,
        validator_address: str,
        agent_id: int,
        request_uri: str,
        request_hash: bytes | str,
    ) -> TransactionResult:
        """Ask validator_address to validate the work described at request_uri."""
        return await self._adapter.send(
            self._address,
            VALIDATION_REGISTRY_ABI,
            "validationRequest",
            [
                require_address(validator_address, "validator_address"),
                require_uint(agent_id, 256, "agent_id"),
                request_uri,
                require_bytes32(request_hash, "request_hash"),
            ],
        )

    async def validation_response(
        self,
        request_hash: bytes | str,
        response: int,
        response_uri: str | None = None,
        response_hash: bytes | str | None = None,
        tag: str | None = None,
    ) -> TransactionResult:
        """Answer a validation request; response must be within [0, 100]."""
        response = require_score(response, "response")
        return await self._adapter.send(
            self._address,
            VALIDATION_REGISTRY_ABI,
            "validationResponse",
            [
                require_bytes32(request_hash, "request_hash"),
                response,
                response_uri or "",
                hash_or_zero(response_hash, "response_hash"),
                tag_to_bytes32(tag),
            ],
        )

    async def get_identity_registry(self) -> str:
        return await self._adapter.call(
            self._address, VALIDATION_REGISTRY_ABI, "getIdentityRegistry", []
        )

    async def get_validation_status(self, request_hash: bytes | str) -> ValidationStatus:
        """
        Read the status of one request.

        Contracts deployed before responseHash existed return five fields;
        those are read with the legacy layout and response_hash is None.
        """
        request_hash = require_bytes32(request_hash, "request_hash")
        try:
            result = await self._adapter.call(
                self._address, VALIDATION_REGISTRY_ABI, "getValidationStatus", [request_hash]
            )
        except AbiDecodingError:
            logger.debug("getValidationStatus: six-field layout failed, trying legacy layout")
            result = await self._adapter.call(
                self._address, LEGACY_VALIDATION_STATUS_ABI, "getValidationStatus", [request_hash]
            )

        return ValidationStatus(
            validator_address=result["validatorAddress"],
            agent_id=int(result["agentId"]),
            response=int(result["response"]),
            tag=result["tag"],
            last_update=int(result["lastUpdate"]),
            response_hash=result.get("responseHash"),
        )

    async def get_summary(
        self,
        agent_id: int,
        validator_addresses: list[str] | None = None,
        tag: str | None = None,
    ) -> Summary:
        result = await self._adapter.call(
            self._address,
            VALIDATION_REGISTRY_ABI,
            "getSummary",
            [
                require_uint(agent_id, 256, "agent_id"),
                [require_address(a, "validator_address") for a in validator_addresses or []],
                tag_to_bytes32(tag),
            ],
        )
        return Summary(count=int(result["count"]), average=int(result["avgResponse"]))

    async def get_agent_validations(self, agent_id: int) -> list[str]:
        """Request hashes (0x-hex) filed for agent_id."""
        return list(
            await self._adapter.call(
                self._address,
                VALIDATION_REGISTRY_ABI,
                "getAgentValidations",
                [require_uint(agent_id, 256, "agent_id")],
            )
        )

    async def get_validator_requests(self, validator_address: str) -> list[str]:
        return list(
            await self._adapter.call(
                self._address,
                VALIDATION_REGISTRY_ABI,
                "getValidatorRequests",
                [require_address(validator_address, "validator_address")],
            )
        )


__all__ = ["ValidationClient"]
