"""Chain access for the registry clients."""

from erc8004.adapters.base import BlockchainAdapter
from erc8004.adapters.jsonrpc import JsonRpcAdapter

__all__ = ["BlockchainAdapter", "JsonRpcAdapter"]
