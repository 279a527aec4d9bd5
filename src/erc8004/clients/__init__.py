"""Registry clients."""

from erc8004.clients.identity import IdentityClient
from erc8004.clients.reputation import ReputationClient
from erc8004.clients.validation import ValidationClient

__all__ = ["IdentityClient", "ReputationClient", "ValidationClient"]
