"""
Tests for auction flavors and the reentrancy guard
"""

import pytest

from dasettle.constants import ONE_ETHER
from dasettle.core.types import Address
from dasettle.errors import InvalidParameterError, ReentrantCallError
from dasettle.minter.flavor import DEFAULT_FLAVOR, AuctionFlavor, RegistryHolderGate
from dasettle.minter.guard import ReentrancyGuard


class TestAuctionFlavor:
    """Test amount formatting."""

    def test_whole_amount(self):
        """Whole units print without decimals."""
        assert DEFAULT_FLAVOR.format_amount(5 * ONE_ETHER) == "5 ETH"

    def test_fractional_amount(self):
        """Trailing zeros are trimmed."""
        assert DEFAULT_FLAVOR.format_amount(1_875_000_000_000_000_000) == "1.875 ETH"

    def test_custom_currency(self):
        """Other currencies use their own decimals."""
        flavor = AuctionFlavor(currency_symbol="USDC", currency_decimals=6)
        assert flavor.format_amount(2_500_000) == "2.5 USDC"


class TestHolderGate:
    """Test RegistryHolderGate."""

    def test_allowlist(self, registry, artist, buyer):
        """Holding a token of an allowlisted project grants access."""
        gated = registry.add_project(artist)
        membership = registry.add_project(artist)
        gate = RegistryHolderGate(registry)

        registry.mint(membership, buyer)
        assert not gate.is_eligible(gated, buyer)

        gate.allow(gated, membership)
        assert gate.is_eligible(gated, buyer)
        assert not gate.is_eligible(gated, Address.from_seed("stranger"))

    def test_initial_allowlist(self, registry, artist, buyer):
        """An allowlist can be given up front."""
        membership = registry.add_project(artist)
        gated = registry.add_project(artist)
        registry.mint(membership, buyer)
        gate = RegistryHolderGate(registry, {gated: [membership]})
        assert gate.is_eligible(gated, buyer)

    def test_registry_without_balances(self):
        """Registries that cannot report holdings are refused."""

        class CountOnlyRegistry:
            address = Address.from_seed("count-only")

            def current_invocations(self, project_id):
                return 0

            def max_invocations(self, project_id):
                return 10

        with pytest.raises(InvalidParameterError):
            RegistryHolderGate(CountOnlyRegistry())


class TestReentrancyGuard:
    """Test ReentrancyGuard."""

    def test_nested_entry_rejected(self):
        """A busy key cannot be entered again."""
        guard = ReentrancyGuard()
        with guard.enter(1):
            assert guard.is_busy(1)
            with pytest.raises(ReentrantCallError):
                with guard.enter(1):
                    pass
            with guard.enter(2):
                assert guard.is_busy(2)
        assert not guard.is_busy(1)
        assert not guard.is_busy(2)

    def test_partial_entry_released(self):
        """Keys taken before a conflict are released."""
        guard = ReentrancyGuard()
        with guard.enter(2):
            with pytest.raises(ReentrantCallError):
                with guard.enter(1, 2):
                    pass
            assert not guard.is_busy(1)
