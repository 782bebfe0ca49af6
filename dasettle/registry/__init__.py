"""
Settlement Dutch Auction Registry Collaborators
"""

from dasettle.registry.base import (
    HolderRegistry,
    ProjectRegistry,
    SplitProvider,
    SplitCapability,
    SplitParty,
    RevenueSplitConfig,
)
from dasettle.registry.memory import InMemoryRegistry, RegistryProject
from dasettle.registry.remote import RemoteRegistry

__all__ = [
    # Interfaces
    "HolderRegistry",
    "ProjectRegistry",
    "SplitProvider",
    "SplitCapability",
    "SplitParty",
    "RevenueSplitConfig",
    # Implementations
    "InMemoryRegistry",
    "RegistryProject",
    "RemoteRegistry",
]
