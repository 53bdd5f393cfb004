"""Registry collaborator interface (on-chain NFA factory)."""

from codehash.core.registry.abc import ContractCreatedEvent, Registry
from codehash.core.registry.fake import FakeRegistry

__all__ = ["ContractCreatedEvent", "FakeRegistry", "Registry"]
