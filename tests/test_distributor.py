"""
Tests for revenue distribution
"""

import pytest

from dasettle.constants import (
    ONE_ETHER,
    ROLE_ADDITIONAL_PAYEE,
    ROLE_ARTIST,
    ROLE_PLATFORM_PROVIDER,
    ROLE_RENDER_PROVIDER,
)
from dasettle.core.types import Address
from dasettle.errors import InvalidSplitConfigError, PaymentFailedError
from dasettle.registry.base import RevenueSplitConfig, SplitCapability, SplitParty
from dasettle.registry.memory import InMemoryRegistry
from dasettle.settlement.distributor import (
    RevenueDistributor,
    compute_split,
    validate_split_config,
)
from dasettle.state.accounts import AccountManager


RENDER = Address.from_seed("render")
PLATFORM = Address.from_seed("platform")
ARTIST = Address.from_seed("artist")
PAYEE = Address.from_seed("payee")
TREASURY = Address.from_seed("treasury")


class StaticSplitProvider:
    def __init__(self, config):
        self.config = config

    def get_split_config(self, project_id):
        return self.config


def flagship(render=10, artist=72, payee=18):
    return RevenueSplitConfig(SplitCapability.FLAGSHIP_V1, [
        SplitParty(ROLE_ARTIST, ARTIST, artist),
        SplitParty(ROLE_ADDITIONAL_PAYEE, PAYEE, payee),
        SplitParty(ROLE_RENDER_PROVIDER, RENDER, render),
    ])


def engine(render=10, platform=5, artist=70, payee=15):
    return RevenueSplitConfig(SplitCapability.ENGINE_V1, [
        SplitParty(ROLE_RENDER_PROVIDER, RENDER, render),
        SplitParty(ROLE_PLATFORM_PROVIDER, PLATFORM, platform),
        SplitParty(ROLE_ARTIST, ARTIST, artist),
        SplitParty(ROLE_ADDITIONAL_PAYEE, PAYEE, payee),
    ])


class TestValidateSplit:
    """Test split config validation."""

    def test_payout_order(self):
        """Parties come back in fixed payout order."""
        parties = validate_split_config(0, flagship())
        assert [p.role for p in parties] == [ROLE_RENDER_PROVIDER, ROLE_ARTIST, ROLE_ADDITIONAL_PAYEE]

    def test_engine_roles(self):
        """Engine splits include the platform provider."""
        parties = validate_split_config(0, engine())
        assert [p.role for p in parties] == [
            ROLE_RENDER_PROVIDER, ROLE_PLATFORM_PROVIDER, ROLE_ARTIST, ROLE_ADDITIONAL_PAYEE,
        ]

    def test_flagship_rejects_platform(self):
        """Role sets must match the capability."""
        config = RevenueSplitConfig(SplitCapability.FLAGSHIP_V1, engine().parties)
        with pytest.raises(InvalidSplitConfigError):
            validate_split_config(0, config)

    def test_missing_role(self):
        """Every role of the capability is required."""
        config = RevenueSplitConfig(SplitCapability.FLAGSHIP_V1, flagship().parties[:2])
        with pytest.raises(InvalidSplitConfigError):
            validate_split_config(0, config)

    def test_duplicate_role(self):
        """Roles appear once."""
        parties = flagship().parties + [SplitParty(ROLE_ARTIST, ARTIST, 0)]
        with pytest.raises(InvalidSplitConfigError):
            validate_split_config(0, RevenueSplitConfig(SplitCapability.FLAGSHIP_V1, parties))

    def test_percentages_sum(self):
        """Percentages must sum to 100."""
        with pytest.raises(InvalidSplitConfigError):
            validate_split_config(0, flagship(render=11))

    def test_negative_percentage(self):
        """Negative shares are rejected."""
        with pytest.raises(InvalidSplitConfigError):
            validate_split_config(0, flagship(render=-10, artist=92, payee=18))


class TestComputeSplit:
    """Test split arithmetic."""

    def test_exact_split(self):
        """Shares follow percentages."""
        payouts = compute_split(0, flagship(), 100 * ONE_ETHER)
        assert [(p.role, p.amount) for p in payouts] == [
            (ROLE_RENDER_PROVIDER, 10 * ONE_ETHER),
            (ROLE_ARTIST, 72 * ONE_ETHER),
            (ROLE_ADDITIONAL_PAYEE, 18 * ONE_ETHER),
        ]

    def test_rounding_dust_to_artist(self):
        """Remainders go to the artist and nothing is lost."""
        payouts = {p.role: p.amount for p in compute_split(0, flagship(), 7)}
        assert payouts == {ROLE_RENDER_PROVIDER: 0, ROLE_ARTIST: 6, ROLE_ADDITIONAL_PAYEE: 1}
        assert sum(payouts.values()) == 7

    def test_registry_split(self):
        """In-memory registry splits the artist portion with the payee."""
        registry = InMemoryRegistry(address=Address.from_seed("core"))
        pid = registry.add_project(ARTIST, additional_payee=PAYEE, additional_payee_percentage=20)
        payouts = {p.role: p.amount for p in compute_split(pid, registry.get_split_config(pid), 100)}
        assert payouts == {ROLE_RENDER_PROVIDER: 10, ROLE_ARTIST: 72, ROLE_ADDITIONAL_PAYEE: 18}

    def test_registry_engine_split(self):
        """Engine registries take the platform share off the top."""
        registry = InMemoryRegistry(
            address=Address.from_seed("core"),
            capability=SplitCapability.ENGINE_V1,
            platform_provider_percentage=10,
        )
        pid = registry.add_project(ARTIST)
        config = registry.get_split_config(pid)
        payouts = {p.role: p.amount for p in compute_split(pid, config, 100)}
        assert payouts == {
            ROLE_RENDER_PROVIDER: 10,
            ROLE_PLATFORM_PROVIDER: 10,
            ROLE_ARTIST: 80,
            ROLE_ADDITIONAL_PAYEE: 0,
        }


class TestRevenueDistributor:
    """Test paying out revenue."""

    @pytest.fixture
    def accounts(self):
        manager = AccountManager()
        manager.credit(TREASURY, 100 * ONE_ETHER)
        return manager

    def test_distribute(self, accounts):
        """Parties are paid from the treasury."""
        distributor = RevenueDistributor(accounts, StaticSplitProvider(flagship()), TREASURY)
        paid = distributor.distribute(0, 10 * ONE_ETHER)

        assert len(paid) == 3
        assert accounts.get_balance(RENDER) == ONE_ETHER
        assert accounts.get_balance(ARTIST) == 7_200_000_000_000_000_000
        assert accounts.get_balance(PAYEE) == 1_800_000_000_000_000_000
        assert accounts.get_balance(TREASURY) == 90 * ONE_ETHER

    def test_zero_share_skipped(self, accounts):
        """Zero-amount parties are never paid, even if they would refuse."""
        accounts.set_rejecting(PAYEE)
        distributor = RevenueDistributor(
            accounts, StaticSplitProvider(flagship(render=10, artist=90, payee=0)), TREASURY
        )
        paid = distributor.distribute(0, ONE_ETHER)
        assert [p.role for p in paid] == [ROLE_RENDER_PROVIDER, ROLE_ARTIST]

    def test_failed_payment_names_role(self, accounts):
        """A refused payment raises with the role label."""
        accounts.set_rejecting(ARTIST)
        distributor = RevenueDistributor(accounts, StaticSplitProvider(flagship()), TREASURY)
        with pytest.raises(PaymentFailedError) as exc_info:
            distributor.distribute(0, ONE_ETHER)
        assert exc_info.value.message == "Artist payment failed"
