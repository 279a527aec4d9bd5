"""
Configuration management for the ERC-8004 client.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from eth_utils import is_address

from erc8004.core.exceptions import ConfigurationError
from erc8004.core.logging import mask_url


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {name} is not set")
    return value


def _get_float_env(name: str, default: float) -> float:
    raw = _get_env_var(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} is not a number: {raw!r}") from exc


@dataclass(frozen=True)
class Config:
    """SDK configuration."""

    rpc_url: str
    identity_registry: str
    reputation_registry: str
    validation_registry: str
    # None means "ask the node via eth_chainId"
    chain_id: int | None = None

    # Timeouts (seconds)
    request_timeout: float = 30.0
    transaction_poll_interval: float = 2.0
    transaction_poll_timeout: float = 120.0

    # Gas estimate headroom
    gas_limit_multiplier: float = 1.2

    ipfs_gateway_url: str = "https://ipfs.io/ipfs/"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.rpc_urls:
            raise ConfigurationError("rpc_url is required")
        for name in ("identity_registry", "reputation_registry", "validation_registry"):
            value = getattr(self, name)
            if not value:
                raise ConfigurationError(f"{name} is required")
            if not is_address(value):
                raise ConfigurationError(
                    f"{name} is not a valid address", details={"value": value}
                )
        if self.chain_id is not None and self.chain_id <= 0:
            raise ConfigurationError("chain_id must be positive")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.transaction_poll_interval <= 0 or self.transaction_poll_timeout <= 0:
            raise ConfigurationError("transaction polling interval and timeout must be positive")

    @property
    def rpc_urls(self) -> list[str]:
        """RPC endpoints in failover order (comma-separated in rpc_url)."""
        return [u.strip() for u in (self.rpc_url or "").split(",") if u.strip()]

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        rpc_url = overrides.get("rpc_url") or _get_env_var("ERC8004_RPC_URL", required=True)
        identity_registry = overrides.get("identity_registry") or _get_env_var(
            "ERC8004_IDENTITY_REGISTRY", required=True
        )
        reputation_registry = overrides.get("reputation_registry") or _get_env_var(
            "ERC8004_REPUTATION_REGISTRY", required=True
        )
        validation_registry = overrides.get("validation_registry") or _get_env_var(
            "ERC8004_VALIDATION_REGISTRY", required=True
        )

        chain_id = overrides.get("chain_id")
        if chain_id is None:
            raw_chain_id = _get_env_var("ERC8004_CHAIN_ID")
            if raw_chain_id:
                try:
                    chain_id = int(raw_chain_id, 0)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"ERC8004_CHAIN_ID is not an integer: {raw_chain_id!r}"
                    ) from exc

        request_timeout = overrides.get("request_timeout")
        if request_timeout is None:
            request_timeout = _get_float_env("ERC8004_REQUEST_TIMEOUT", cls.request_timeout)
        transaction_poll_timeout = overrides.get("transaction_poll_timeout")
        if transaction_poll_timeout is None:
            transaction_poll_timeout = _get_float_env("ERC8004_TX_TIMEOUT", cls.transaction_poll_timeout)

        ipfs_gateway_url = overrides.get("ipfs_gateway_url") or _get_env_var(
            "ERC8004_IPFS_GATEWAY", default=cls.ipfs_gateway_url
        )
        log_level = overrides.get("log_level") or _get_env_var(
            "ERC8004_LOG_LEVEL", default="INFO"
        )

        return cls(
            rpc_url=rpc_url,  # type: ignore
            identity_registry=identity_registry,  # type: ignore
            reputation_registry=reputation_registry,  # type: ignore
            validation_registry=validation_registry,  # type: ignore
            chain_id=chain_id,
            request_timeout=request_timeout,
            transaction_poll_interval=overrides.get(
                "transaction_poll_interval", cls.transaction_poll_interval
            ),
            transaction_poll_timeout=transaction_poll_timeout,
            gas_limit_multiplier=overrides.get("gas_limit_multiplier", cls.gas_limit_multiplier),
            ipfs_gateway_url=ipfs_gateway_url,  # type: ignore
            log_level=log_level,  # type: ignore
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def masked_rpc_urls(self) -> list[str]:
        """Return RPC URLs with their path (often an API key) masked for safe logging."""
        return [mask_url(url) for url in self.rpc_urls]
