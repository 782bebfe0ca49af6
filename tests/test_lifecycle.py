"""
Tests for auction lifecycle
"""

import pytest

from dasettle.constants import ONE_ETHER
from dasettle.core.state import AuctionParameters, MinterState
from dasettle.auction.lifecycle import AuctionLifecycle, AuctionState
from dasettle.errors import (
    AuctionNotConfiguredError,
    ConfigurationError,
    HalfLifeOutOfRangeError,
    InvalidHalfLifeRangeError,
    InvalidPricesError,
    MidAuctionModificationError,
    OnlyDecreasingPriceError,
    OnlyFutureAuctionsError,
    RevenuesAlreadyCollectedError,
    ZeroBasePriceError,
    ZeroHalfLifeError,
)


NOW = 1_700_000_000


def make_params(start_time=NOW + 600, half_life=60, start_price=5 * ONE_ETHER, base_price=ONE_ETHER):
    return AuctionParameters(start_time, half_life, start_price, base_price)


@pytest.fixture
def lifecycle(state):
    return AuctionLifecycle(state)


class TestConfigure:
    """Test configuring auctions."""

    def test_configure_stores_params(self, lifecycle, state):
        """Valid parameters are stored."""
        params = make_params()
        lifecycle.configure(0, params, NOW)
        assert state.get_auction(0) == params

    def test_start_must_be_future(self, lifecycle, state):
        """Start time equal to now is rejected without mutation."""
        with pytest.raises(OnlyFutureAuctionsError):
            lifecycle.configure(0, make_params(start_time=NOW), NOW)
        assert not state.get_auction(0).is_configured

    def test_half_life_bounds_inclusive(self, lifecycle):
        """Half-lives at the range ends are accepted."""
        lifecycle.configure(0, make_params(half_life=45), NOW)
        lifecycle.configure(1, make_params(half_life=3600), NOW)

    def test_half_life_out_of_range(self, lifecycle):
        """Half-lives outside the range are rejected."""
        with pytest.raises(HalfLifeOutOfRangeError):
            lifecycle.configure(0, make_params(half_life=44), NOW)
        with pytest.raises(HalfLifeOutOfRangeError):
            lifecycle.configure(0, make_params(half_life=3601), NOW)

    def test_zero_base_price(self, lifecycle):
        """Base price may not be zero."""
        with pytest.raises(ZeroBasePriceError):
            lifecycle.configure(0, make_params(base_price=0), NOW)

    def test_start_below_base_rejected(self, lifecycle, state):
        """Start price must exceed base price."""
        with pytest.raises(InvalidPricesError):
            lifecycle.configure(0, make_params(start_price=ONE_ETHER, base_price=2 * ONE_ETHER), NOW)
        with pytest.raises(InvalidPricesError):
            lifecycle.configure(0, make_params(start_price=ONE_ETHER, base_price=ONE_ETHER), NOW)
        assert not state.get_auction(0).is_configured

    def test_errors_are_configuration_errors(self, lifecycle):
        """Rejected configurations share a category."""
        with pytest.raises(ConfigurationError):
            lifecycle.configure(0, make_params(half_life=1), NOW)

    def test_reconfigure_before_start(self, lifecycle, state):
        """A configured auction can change until it starts."""
        lifecycle.configure(0, make_params(), NOW)
        updated = make_params(start_price=4 * ONE_ETHER)
        lifecycle.configure(0, updated, NOW + 599)
        assert state.get_auction(0) == updated

    def test_no_mid_auction_modification(self, lifecycle, state):
        """Once started, parameters are frozen."""
        params = make_params()
        lifecycle.configure(0, params, NOW)
        with pytest.raises(MidAuctionModificationError):
            lifecycle.configure(0, make_params(start_time=NOW + 1200), NOW + 600)
        assert state.get_auction(0) == params

    def test_only_decreasing_price_after_purchases(self, lifecycle, state):
        """A new start price may not exceed an unsettled latest price."""
        settlement = state.get_or_create_settlement(0)
        settlement.num_settleable_invocations = 2
        settlement.latest_purchase_price = 3 * ONE_ETHER

        with pytest.raises(OnlyDecreasingPriceError):
            lifecycle.configure(0, make_params(start_price=4 * ONE_ETHER), NOW)

        lifecycle.configure(0, make_params(start_price=3 * ONE_ETHER), NOW)
        assert state.get_auction(0).start_price == 3 * ONE_ETHER

    def test_no_configure_after_collection(self, lifecycle, state):
        """A settled project cannot be configured again."""
        state.get_or_create_settlement(0).revenues_collected = True
        with pytest.raises(RevenuesAlreadyCollectedError):
            lifecycle.configure(0, make_params(), NOW)


class TestReset:
    """Test resetting auctions."""

    def test_reset_clears_params_only(self, lifecycle, state):
        """Reset zeroes parameters and keeps settlement state."""
        lifecycle.configure(0, make_params(), NOW)
        settlement = state.get_or_create_settlement(0)
        settlement.num_settleable_invocations = 1
        settlement.latest_purchase_price = 4 * ONE_ETHER

        lifecycle.reset(0)

        assert not state.get_auction(0).is_configured
        assert state.get_settlement(0).num_settleable_invocations == 1
        assert state.get_settlement(0).latest_purchase_price == 4 * ONE_ETHER

    def test_reset_mid_auction_allowed(self, lifecycle, state):
        """Reset is allowed after the auction has started."""
        lifecycle.configure(0, make_params(), NOW)
        lifecycle.reset(0)
        assert lifecycle.current_state(0, NOW + 700) == AuctionState.UNCONFIGURED

    def test_reset_unconfigured(self, lifecycle):
        """Nothing to reset."""
        with pytest.raises(AuctionNotConfiguredError):
            lifecycle.reset(0)

    def test_reset_after_collection(self, lifecycle, state):
        """Settled projects cannot be reset."""
        lifecycle.configure(0, make_params(), NOW)
        state.get_or_create_settlement(0).revenues_collected = True
        with pytest.raises(RevenuesAlreadyCollectedError):
            lifecycle.reset(0)


class TestCurrentState:
    """Test lifecycle state derivation."""

    def test_state_progression(self, lifecycle, state):
        """States follow time and settlement."""
        assert lifecycle.current_state(0, NOW) == AuctionState.UNCONFIGURED

        lifecycle.configure(0, make_params(), NOW)
        assert lifecycle.current_state(0, NOW) == AuctionState.CONFIGURED
        assert lifecycle.current_state(0, NOW + 600) == AuctionState.ACTIVE
        assert lifecycle.current_state(0, NOW + 600, sold_out=True) == AuctionState.COMPLETED
        assert lifecycle.current_state(0, NOW + 744) == AuctionState.COMPLETED

        state.get_or_create_settlement(0).revenues_collected = True
        assert lifecycle.current_state(0, NOW + 744) == AuctionState.REVENUES_COLLECTED


class TestHalfLifeRange:
    """Test the allowable half-life range."""

    def test_update_range(self, lifecycle, state):
        """New range applies to later configurations."""
        lifecycle.set_allowable_half_life_range(10, 20)
        assert (state.minimum_half_life_seconds, state.maximum_half_life_seconds) == (10, 20)

        lifecycle.configure(0, make_params(half_life=15), NOW)
        with pytest.raises(HalfLifeOutOfRangeError):
            lifecycle.configure(1, make_params(half_life=60), NOW)

    def test_zero_minimum(self, lifecycle):
        """Minimum must be positive."""
        with pytest.raises(ZeroHalfLifeError):
            lifecycle.set_allowable_half_life_range(0, 10)

    def test_maximum_above_minimum(self, lifecycle, state):
        """Maximum must exceed minimum."""
        with pytest.raises(InvalidHalfLifeRangeError):
            lifecycle.set_allowable_half_life_range(100, 100)
        assert state.minimum_half_life_seconds == MinterState().minimum_half_life_seconds
