"""Test doubles that enforce the registries' rules in memory."""

from erc8004.testing.registry import InMemoryReputationRegistry

__all__ = ["InMemoryReputationRegistry"]
