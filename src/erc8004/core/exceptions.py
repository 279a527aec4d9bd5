"""
Exception hierarchy for the ERC-8004 client.

All SDK-specific exceptions inherit from ERC8004Error for easy catching.
"""

from __future__ import annotations

from typing import Any


class ERC8004Error(Exception):
    """
    Base exception for all ERC-8004 client errors.

    Catch this to handle any SDK-related exception.

    Example:
        >>> try:
        ...     await client.reputation.give_feedback(...)
        ... except ERC8004Error as e:
        ...     print(f"ERC-8004 error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ERC8004Error):
    """
    Configuration is missing or invalid.

    Raised when:
    - No RPC endpoint is configured
    - A registry address is missing or malformed
    - A write operation is attempted without a signing account
    """

    pass


class ValidationError(ERC8004Error):
    """
    Local input validation failed before any network interaction.

    Raised when:
    - A score or validation response is outside [0, 100]
    - An address or bytes32 value has the wrong shape
    - An integer does not fit its on-chain width
    - A validity window is not positive
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field


class SigningError(ERC8004Error):
    """
    The signing capability is missing, failed, or returned garbage.

    Fatal to the current authorization attempt: the caller must supply a
    working signer and start over.
    """

    def __init__(
        self,
        message: str,
        signer_address: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.signer_address = signer_address


class NetworkError(ERC8004Error):
    """
    Network or RPC communication error.

    Raised when:
    - HTTP request fails (timeout, connection error)
    - The JSON-RPC endpoint returns an error that is not a revert
    - All configured RPC endpoints failed

    Never retried internally for index reads or submissions: the caller
    restarts from a fresh index read.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_rate_limited(self) -> bool:
        """Check if this is a rate limit error."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class TransactionTimeoutError(NetworkError):
    """
    A submitted transaction was not mined within the polling timeout.

    The transaction may still confirm later; the caller must check the
    registry state before issuing a new authorization.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str,
        timeout_seconds: float,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


class RegistryRejectionError(ERC8004Error):
    """
    A registry refused the call.

    Raised when:
    - The feedbackAuth signature does not recover to signerAddress
    - The authorization expired, or targets another chain or registry
    - indexLimit does not match the next unused index
    - The signer is not the agent owner or an approved operator
    - Any other on-chain revert

    The envelope that produced this error must not be resubmitted.
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        function: str | None = None,
        tx_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.reason = reason
        self.function = function
        self.tx_hash = tx_hash

    def __str__(self) -> str:
        if self.function:
            return f"[{self.function}] {self.message}"
        return self.message


class ReceiptError(ERC8004Error):
    """
    A confirmed transaction receipt is missing an expected event.

    Usually means the contract is not deployed at the configured address or
    the ABI does not match the deployed contract.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.tx_hash = tx_hash


class IPFSError(ERC8004Error):
    """
    IPFS upload, pin or fetch failed.
    """

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.provider = provider

    def __str__(self) -> str:
        return f"[ipfs:{self.provider}] {self.message}"


class AbiDecodingError(ERC8004Error):
    """
    Contract return data does not match the expected ABI layout.

    Usually means the deployed contract is an older revision, or there is
    no contract at the configured address.
    """

    def __init__(
        self,
        message: str,
        function: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.function = function
