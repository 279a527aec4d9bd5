"""Utilities."""

from erc8004.utils.ipfs import (
    IPFSClient,
    IPFSConfig,
    IPFSUploadResult,
    cid_to_bytes32,
    create_ipfs_client,
    ipfs_uri_to_bytes32,
)

__all__ = [
    "IPFSClient",
    "IPFSConfig",
    "IPFSUploadResult",
    "cid_to_bytes32",
    "ipfs_uri_to_bytes32",
    "create_ipfs_client",
]
