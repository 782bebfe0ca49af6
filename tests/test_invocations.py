"""
Tests for invocation reconciliation
"""

import pytest

from dasettle.core.types import Address
from dasettle.errors import (
    InvalidMaxInvocationsError,
    MaximumInvocationsReachedError,
    MaxInvocationsTerminalError,
    OnlyBeforePurchasesError,
)
from dasettle.minter.invocations import InvocationReconciler


@pytest.fixture
def reconciler(state, registry, project_id):
    return InvocationReconciler(state, registry)


def mint_one(reconciler, registry, project_id, to=None):
    to = to or Address.from_seed("collector")
    return reconciler.check_and_record_purchase(project_id, lambda: registry.mint(project_id, to))


class TestSync:
    """Test cache synchronisation."""

    def test_refresh_syncs_uninitialized(self, reconciler, state, project_id):
        """First refresh copies the registry cap."""
        cache = reconciler.refresh(project_id)
        assert cache.initialized
        assert cache.max_invocations == 10
        assert not cache.max_has_been_invoked
        assert state.get_invocation_cache(project_id).max_invocations == 10

    def test_local_cap_above_registry_resyncs(self, reconciler, registry, project_id):
        """A registry cap reduction wins over the local cap."""
        reconciler.refresh(project_id)
        registry.update_project_max_invocations(project_id, 3)
        cache = reconciler.refresh(project_id)
        assert cache.max_invocations == 3

    def test_effective_cap_is_minimum(self, reconciler, registry, project_id):
        """Effective cap is the smaller of local and registry caps."""
        reconciler.manually_limit(project_id, 5)
        assert reconciler.effective_cap(project_id) == 5
        registry.update_project_max_invocations(project_id, 4)
        assert reconciler.effective_cap(project_id) == 4

    def test_sync_to_registry_discards_manual_limit(self, reconciler, project_id):
        """Syncing restores the registry cap."""
        reconciler.manually_limit(project_id, 5)
        cache = reconciler.sync_to_registry(project_id)
        assert cache.max_invocations == 10


class TestPurchaseGate:
    """Test accept/reject decisions."""

    def test_mints_until_cap(self, reconciler, registry, project_id):
        """Exactly cap tokens are minted."""
        reconciler.manually_limit(project_id, 3)
        for _ in range(3):
            mint_one(reconciler, registry, project_id)

        with pytest.raises(MaximumInvocationsReachedError):
            mint_one(reconciler, registry, project_id)
        assert registry.current_invocations(project_id) == 3
        assert reconciler.is_sold_out(project_id)

    def test_flag_set_on_final_mint(self, reconciler, registry, state, project_id):
        """The mint that reaches the cap sets the invoked flag."""
        reconciler.manually_limit(project_id, 1)
        assert not state.get_invocation_cache(project_id).max_has_been_invoked
        mint_one(reconciler, registry, project_id)
        assert state.get_invocation_cache(project_id).max_has_been_invoked

    def test_stale_high_local_cap(self, reconciler, registry, state, project_id):
        """A local cap above the registry cap never allows an oversell."""
        reconciler.refresh(project_id)
        registry.update_project_max_invocations(project_id, 2)
        state.get_or_create_invocation_cache(project_id).max_invocations = 10

        minted = 0
        for _ in range(5):
            try:
                mint_one(reconciler, registry, project_id)
                minted += 1
            except MaximumInvocationsReachedError:
                pass
        assert minted == 2
        assert registry.current_invocations(project_id) == 2

    def test_stale_low_flag(self, reconciler, registry, state, project_id):
        """Mints made outside this minter are noticed."""
        reconciler.manually_limit(project_id, 2)
        outsider = Address.from_seed("other-minter")
        registry.mint(project_id, outsider)
        registry.mint(project_id, outsider)
        assert not state.get_invocation_cache(project_id).max_has_been_invoked

        with pytest.raises(MaximumInvocationsReachedError):
            reconciler.check_purchase(project_id)
        assert state.get_invocation_cache(project_id).max_has_been_invoked


class TestManualLimit:
    """Test manual cap limits."""

    def test_limit_above_registry_rejected(self, reconciler, project_id):
        """Manual cap cannot exceed the registry cap."""
        with pytest.raises(InvalidMaxInvocationsError):
            reconciler.manually_limit(project_id, 11)

    def test_limit_below_invocations_rejected(self, reconciler, registry, project_id):
        """Manual cap cannot drop below minted count."""
        mint_one(reconciler, registry, project_id)
        mint_one(reconciler, registry, project_id)
        with pytest.raises(InvalidMaxInvocationsError):
            reconciler.manually_limit(project_id, 1)

    def test_limit_to_current_is_terminal(self, reconciler, registry, state, project_id):
        """Limiting to the minted count ends the project for good."""
        mint_one(reconciler, registry, project_id)
        mint_one(reconciler, registry, project_id)
        reconciler.manually_limit(project_id, 2)
        assert state.get_invocation_cache(project_id).max_has_been_invoked

        with pytest.raises(MaxInvocationsTerminalError):
            reconciler.manually_limit(project_id, 3)
        with pytest.raises(MaxInvocationsTerminalError):
            reconciler.sync_to_registry(project_id)

    def test_only_before_purchases(self, reconciler, state, project_id):
        """Manual limits are blocked once settleable purchases exist."""
        state.get_or_create_settlement(project_id).num_settleable_invocations = 1
        with pytest.raises(OnlyBeforePurchasesError):
            reconciler.manually_limit(project_id, 5)
