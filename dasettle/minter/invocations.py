"""
Settlement Dutch Auction Invocation Reconciliation

Keeps the minter-local invocation cap in step with the registry.

The effective cap for every accept/reject decision is
    min(local cap, registry cap)
so a stale local cache can never allow an oversell.
"""

from __future__ import annotations
import logging
from typing import Callable, Tuple

from dasettle.core.state import InvocationCache, MinterState
from dasettle.errors import (
    InvalidMaxInvocationsError,
    MaximumInvocationsReachedError,
    MaxInvocationsTerminalError,
    OnlyBeforePurchasesError,
)
from dasettle.registry.base import ProjectRegistry

logger = logging.getLogger(__name__)


class InvocationReconciler:
    """Reconciles the local InvocationCache against a ProjectRegistry."""

    def __init__(self, state: MinterState, registry: ProjectRegistry):
        self.state = state
        self.registry = registry

    def effective_cap(self, project_id: int) -> int:
        authoritative = self.registry.max_invocations(project_id)
        cache = self.state.get_invocation_cache(project_id)
        if not cache.initialized:
            return authoritative
        return min(cache.max_invocations, authoritative)

    def sync(self, project_id: int) -> InvocationCache:
        """Copy the registry cap into the local cache."""
        invocations = self.registry.current_invocations(project_id)
        authoritative = self.registry.max_invocations(project_id)

        cache = self.state.get_or_create_invocation_cache(project_id)
        cache.max_invocations = authoritative
        cache.max_has_been_invoked = invocations >= authoritative
        cache.initialized = True

        logger.debug(
            f"Project {project_id} invocation cache synced: "
            f"{invocations}/{authoritative}"
        )
        return cache

    def refresh(self, project_id: int) -> InvocationCache:
        """
        Resync the cache where it could be wrong in a harmful direction.

        - never synced: sync
        - local cap above registry cap: sync
        - registry invocations at or above local cap: mark invoked
        """
        cache = self.state.get_invocation_cache(project_id)
        if not cache.initialized:
            return self.sync(project_id)

        authoritative = self.registry.max_invocations(project_id)
        if cache.max_invocations > authoritative:
            logger.info(
                f"Project {project_id} local cap {cache.max_invocations} exceeds "
                f"registry cap {authoritative}, resyncing"
            )
            return self.sync(project_id)

        invocations = self.registry.current_invocations(project_id)
        if invocations >= cache.max_invocations and not cache.max_has_been_invoked:
            cache = self.state.get_or_create_invocation_cache(project_id)
            cache.max_has_been_invoked = True
            logger.info(f"Project {project_id} reached max invocations {cache.max_invocations}")
        return cache

    def is_sold_out(self, project_id: int) -> bool:
        """True when registry invocations meet the effective cap."""
        if self.state.get_invocation_cache(project_id).max_has_been_invoked:
            return True
        return self.registry.current_invocations(project_id) >= self.effective_cap(project_id)

    def check_purchase(self, project_id: int) -> Tuple[int, int]:
        """
        Refresh, then reject if the effective cap is already met.

        Returns:
            (registry invocations, effective cap)

        Raises:
            MaximumInvocationsReachedError: effective cap already met
        """
        self.refresh(project_id)
        invocations = self.registry.current_invocations(project_id)
        cap = self.effective_cap(project_id)
        if invocations >= cap:
            logger.debug(f"Project {project_id} purchase denied: {invocations}/{cap}")
            raise MaximumInvocationsReachedError(project_id, invocations, cap)
        return invocations, cap

    def check_and_record_purchase(self, project_id: int, mint: Callable[[], int]) -> int:
        """
        Gate one mint on the effective cap, then update the invoked flag.

        Args:
            project_id: Project being purchased
            mint: Performs the registry mint, returns the token id

        Raises:
            MaximumInvocationsReachedError: effective cap already met
        """
        invocations, cap = self.check_purchase(project_id)

        token_id = mint()

        if invocations + 1 >= cap:
            cache = self.state.get_or_create_invocation_cache(project_id)
            cache.max_has_been_invoked = True
            logger.info(f"Project {project_id} sold out at {invocations + 1}/{cap}")
        return token_id

    def _require_adjustable(self, project_id: int):
        cache = self.state.get_invocation_cache(project_id)
        invocations = self.registry.current_invocations(project_id)
        if cache.max_has_been_invoked or invocations >= self.effective_cap(project_id):
            raise MaxInvocationsTerminalError(project_id)
        if self.state.get_settlement(project_id).num_settleable_invocations > 0:
            raise OnlyBeforePurchasesError(project_id)

    def manually_limit(self, project_id: int, max_invocations: int):
        """
        Tighten the local cap.

        Raises:
            MaxInvocationsTerminalError: effective cap already reached
            OnlyBeforePurchasesError: settleable purchases exist
            InvalidMaxInvocationsError: value outside [invocations, registry cap]
        """
        self.refresh(project_id)
        self._require_adjustable(project_id)

        invocations = self.registry.current_invocations(project_id)
        authoritative = self.registry.max_invocations(project_id)
        if not invocations <= max_invocations <= authoritative:
            raise InvalidMaxInvocationsError(max_invocations, invocations, authoritative)

        cache = self.state.get_or_create_invocation_cache(project_id)
        cache.max_invocations = max_invocations
        cache.max_has_been_invoked = invocations >= max_invocations
        cache.initialized = True
        logger.info(f"Project {project_id} max invocations manually limited to {max_invocations}")

    def sync_to_registry(self, project_id: int) -> InvocationCache:
        """
        Pull the registry cap, discarding any manual limit.

        Raises:
            MaxInvocationsTerminalError: effective cap already reached
            OnlyBeforePurchasesError: settleable purchases exist
        """
        self.refresh(project_id)
        self._require_adjustable(project_id)
        return self.sync(project_id)
