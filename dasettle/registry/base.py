"""
Settlement Dutch Auction Collaborator Interfaces

The item registry is the authoritative source of invocation counts and
caps. The split provider returns who is paid what share of revenue.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Protocol, runtime_checkable

from dasettle.core.types import Address


@runtime_checkable
class ProjectRegistry(Protocol):
    """Authoritative invocation source and minting primitive."""

    address: Address

    def current_invocations(self, project_id: int) -> int:
        ...

    def max_invocations(self, project_id: int) -> int:
        ...

    def mint(self, project_id: int, to: Address) -> int:
        """Mint the next token of a project. Returns the token id."""
        ...


class SplitCapability(Enum):
    """
    Versioned shape of a revenue split response.

    FLAGSHIP_V1: render provider, artist, additional payee
    ENGINE_V1: render provider, platform provider, artist, additional payee
    """
    FLAGSHIP_V1 = "flagship_v1"
    ENGINE_V1 = "engine_v1"


@dataclass(frozen=True, slots=True)
class SplitParty:
    role: str
    address: Address
    percentage: int


@dataclass(frozen=True)
class RevenueSplitConfig:
    capability: SplitCapability
    parties: List[SplitParty] = field(default_factory=list)

    def roles(self) -> List[str]:
        return [party.role for party in self.parties]


@runtime_checkable
class SplitProvider(Protocol):
    def get_split_config(self, project_id: int) -> RevenueSplitConfig:
        ...


@runtime_checkable
class HolderRegistry(Protocol):
    """Registry able to report token holdings, required by holder gating."""

    def balance_of(self, owner: Address, project_id: int) -> int:
        ...
