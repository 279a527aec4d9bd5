"""Core types, configuration, errors and registry constants."""

from erc8004.core.config import Config
from erc8004.core.exceptions import (
    AbiDecodingError,
    ConfigurationError,
    ERC8004Error,
    IPFSError,
    NetworkError,
    ReceiptError,
    RegistryRejectionError,
    SigningError,
    TransactionTimeoutError,
    ValidationError,
)
from erc8004.core.logging import configure_logging, get_logger, mask_url

__all__ = [
    "Config",
    "ERC8004Error",
    "AbiDecodingError",
    "ConfigurationError",
    "IPFSError",
    "NetworkError",
    "ReceiptError",
    "RegistryRejectionError",
    "SigningError",
    "TransactionTimeoutError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "mask_url",
]
