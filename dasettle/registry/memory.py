"""
Settlement Dutch Auction In-Memory Registry

Reference registry holding projects, their invocation counts and caps,
token ownership and revenue split settings. Serves as both the
ProjectRegistry and the SplitProvider of a minter.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dasettle.constants import (
    ONE_MILLION,
    PERCENT_TOTAL,
    REGISTRY_HARD_CAP,
    ROLE_ADDITIONAL_PAYEE,
    ROLE_ARTIST,
    ROLE_PLATFORM_PROVIDER,
    ROLE_RENDER_PROVIDER,
)
from dasettle.core.types import Address
from dasettle.errors import (
    InvalidParameterError,
    MaximumInvocationsReachedError,
    UnknownProjectError,
)
from dasettle.registry.base import RevenueSplitConfig, SplitCapability, SplitParty

logger = logging.getLogger(__name__)


@dataclass
class RegistryProject:
    """Project record kept by the registry."""
    project_id: int
    artist: Address
    max_invocations: int = REGISTRY_HARD_CAP
    invocations: int = 0
    additional_payee: Optional[Address] = None
    additional_payee_percentage: int = 0    # Share of the artist's portion

    def to_dict(self) -> dict:
        return {
            "projectId": self.project_id,
            "artist": self.artist.checksum(),
            "invocations": self.invocations,
            "maxInvocations": self.max_invocations,
        }


@dataclass
class InMemoryRegistry:
    """
    Authoritative project registry kept in memory.

    Token ids are project_id * 1_000_000 + invocation index.
    """
    address: Address
    capability: SplitCapability = SplitCapability.FLAGSHIP_V1
    render_provider: Address = field(default_factory=lambda: Address.from_seed("render-provider"))
    render_provider_percentage: int = 10
    platform_provider: Address = field(default_factory=lambda: Address.from_seed("platform-provider"))
    platform_provider_percentage: int = 0

    _projects: Dict[int, RegistryProject] = field(default_factory=dict)
    _owners: Dict[int, Address] = field(default_factory=dict)
    _next_project_id: int = 0

    # Project management

    def add_project(
        self,
        artist: Address,
        max_invocations: int = REGISTRY_HARD_CAP,
        additional_payee: Optional[Address] = None,
        additional_payee_percentage: int = 0,
        project_id: Optional[int] = None
    ) -> int:
        """Register a project. Returns its id."""
        if project_id is None:
            project_id = self._next_project_id
        if project_id in self._projects:
            raise InvalidParameterError("project_id", f"project {project_id} already exists")
        if not 0 <= additional_payee_percentage <= PERCENT_TOTAL:
            raise InvalidParameterError("additional_payee_percentage", "must be 0-100")

        self._projects[project_id] = RegistryProject(
            project_id=project_id,
            artist=artist,
            max_invocations=max_invocations,
            additional_payee=additional_payee,
            additional_payee_percentage=additional_payee_percentage,
        )
        self._next_project_id = max(self._next_project_id, project_id + 1)
        logger.info(f"Registry {self.address} added project {project_id}")
        return project_id

    def get_project(self, project_id: int) -> RegistryProject:
        project = self._projects.get(project_id)
        if project is None:
            raise UnknownProjectError(project_id)
        return project

    def has_project(self, project_id: int) -> bool:
        return project_id in self._projects

    def projects(self) -> List[RegistryProject]:
        return [self._projects[pid] for pid in sorted(self._projects)]

    def tokens(self) -> Dict[int, Address]:
        """Token id to owner."""
        return dict(self._owners)

    def restore_project(self, project: RegistryProject):
        """Put back a stored project record as-is."""
        self._projects[project.project_id] = project
        self._next_project_id = max(self._next_project_id, project.project_id + 1)

    def restore_token(self, token_id: int, owner: Address):
        self._owners[token_id] = owner

    def update_project_max_invocations(self, project_id: int, max_invocations: int):
        """Lower a project's cap. Never below current invocations."""
        project = self.get_project(project_id)
        if max_invocations < project.invocations:
            raise InvalidParameterError(
                "max_invocations", "cannot be below current invocations"
            )
        if max_invocations > project.max_invocations:
            raise InvalidParameterError("max_invocations", "may only be reduced")
        project.max_invocations = max_invocations
        logger.info(f"Project {project_id} registry max invocations set to {max_invocations}")

    # ProjectRegistry

    def current_invocations(self, project_id: int) -> int:
        return self.get_project(project_id).invocations

    def max_invocations(self, project_id: int) -> int:
        return self.get_project(project_id).max_invocations

    def mint(self, project_id: int, to: Address) -> int:
        project = self.get_project(project_id)
        if project.invocations >= project.max_invocations:
            raise MaximumInvocationsReachedError(
                project_id, project.invocations, project.max_invocations
            )

        token_id = project_id * ONE_MILLION + project.invocations
        project.invocations += 1
        self._owners[token_id] = to
        logger.debug(f"Minted token {token_id} to {to}")
        return token_id

    def owner_of(self, token_id: int) -> Optional[Address]:
        return self._owners.get(token_id)

    def balance_of(self, owner: Address, project_id: Optional[int] = None) -> int:
        """Tokens held by an owner, optionally within one project."""
        return sum(
            1 for token_id, holder in self._owners.items()
            if holder == owner
            and (project_id is None or token_id // ONE_MILLION == project_id)
        )

    # SplitProvider

    def get_split_config(self, project_id: int) -> RevenueSplitConfig:
        """
        Split of primary revenue for a project.

        Providers take their percentages off the top; the additional payee
        takes its percentage of the artist's remaining portion.
        """
        project = self.get_project(project_id)

        if self.capability == SplitCapability.FLAGSHIP_V1:
            platform_percentage = 0
        else:
            platform_percentage = self.platform_provider_percentage

        artist_portion = PERCENT_TOTAL - self.render_provider_percentage - platform_percentage
        additional = artist_portion * project.additional_payee_percentage // PERCENT_TOTAL
        artist = artist_portion - additional
        additional_address = project.additional_payee or project.artist

        parties = [SplitParty(ROLE_RENDER_PROVIDER, self.render_provider, self.render_provider_percentage)]
        if self.capability == SplitCapability.ENGINE_V1:
            parties.append(SplitParty(ROLE_PLATFORM_PROVIDER, self.platform_provider, platform_percentage))
        parties.append(SplitParty(ROLE_ARTIST, project.artist, artist))
        parties.append(SplitParty(ROLE_ADDITIONAL_PAYEE, additional_address, additional))

        return RevenueSplitConfig(capability=self.capability, parties=parties)
