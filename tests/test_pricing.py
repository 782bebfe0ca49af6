"""
Tests for price decay
"""

import pytest

from dasettle.constants import ONE_ETHER
from dasettle.core.state import AuctionParameters
from dasettle.auction.pricing import (
    approximate_auction_end_time,
    decayed_price,
    get_price,
    half_life_seconds_from_auction_details,
    price_has_reached_base,
    price_schedule,
)
from dasettle.errors import (
    AuctionNotStartedError,
    InvalidParameterError,
    InvalidPricesError,
    OnlyConfiguredAuctionsError,
)


class TestDecayedPrice:
    """Test the halving and interpolation formula."""

    def test_start_price_at_start(self, auction_params):
        """Price equals start price at start time."""
        assert get_price(auction_params, auction_params.start_time) == 5 * ONE_ETHER

    def test_exact_halvings(self, auction_params):
        """Price halves exactly at every whole half-life."""
        start = auction_params.start_time
        assert get_price(auction_params, start + 60) == 5 * ONE_ETHER // 2
        assert get_price(auction_params, start + 120) == 5 * ONE_ETHER // 4

    def test_linear_interpolation(self, auction_params):
        """Between halvings the price moves linearly."""
        start = auction_params.start_time
        # Halfway through the first half-life: (5 + 2.5) / 2
        assert get_price(auction_params, start + 30) == 3_750_000_000_000_000_000
        # Halfway through the second half-life: (2.5 + 1.25) / 2
        assert get_price(auction_params, start + 90) == 1_875_000_000_000_000_000

    def test_exact_intermediate_price(self, auction_params):
        """48 seconds in, the price is exactly 3 ETH."""
        assert get_price(auction_params, auction_params.start_time + 48) == 3 * ONE_ETHER

    def test_floor_at_base_price(self, auction_params):
        """Price never drops below the base price."""
        start = auction_params.start_time
        assert get_price(auction_params, start + 600) == ONE_ETHER
        assert get_price(auction_params, start + 10**9) == ONE_ETHER

    def test_integer_rounding(self):
        """Interpolation truncates each division in order."""
        # 1000 - (1000 * 3 // 7) // 2 = 1000 - 428 // 2
        assert decayed_price(0, 7, 1000, 1, 3) == 786

    def test_monotonic_non_increasing(self, auction_params):
        """Price never increases with time."""
        start = auction_params.start_time
        prices = [get_price(auction_params, start + t) for t in range(0, 700, 7)]
        assert all(a >= b for a, b in zip(prices, prices[1:]))
        assert all(p >= ONE_ETHER for p in prices)

    def test_before_start_rejected(self, auction_params):
        """Pricing before start raises AuctionNotStartedError."""
        with pytest.raises(AuctionNotStartedError):
            get_price(auction_params, auction_params.start_time - 1)

    def test_not_started_is_configuration_rejection(self, auction_params):
        """AuctionNotStartedError is an OnlyConfiguredAuctionsError."""
        with pytest.raises(OnlyConfiguredAuctionsError):
            get_price(auction_params, auction_params.start_time - 1)

    def test_zero_half_life_rejected(self):
        """A zero half-life cannot be priced."""
        with pytest.raises(InvalidParameterError):
            decayed_price(0, 0, 5 * ONE_ETHER, ONE_ETHER, 10)


class TestBaseAndSchedule:
    """Test base-price detection and schedules."""

    def test_reached_base(self, auction_params):
        """Base is reached 144 seconds into the standard auction."""
        start = auction_params.start_time
        assert not price_has_reached_base(auction_params, start + 143)
        assert price_has_reached_base(auction_params, start + 144)

    def test_not_reached_before_start(self, auction_params):
        """Nothing has been reached before the auction starts."""
        assert not price_has_reached_base(auction_params, auction_params.start_time - 10)

    def test_approximate_end_time(self, auction_params):
        """End time is the first second at the base price."""
        end = approximate_auction_end_time(auction_params)
        assert end == auction_params.start_time + 144
        assert get_price(auction_params, end) == ONE_ETHER
        assert get_price(auction_params, end - 1) > ONE_ETHER

    def test_end_time_on_exact_halving(self):
        """A base price reached at a whole half-life ends there."""
        params = AuctionParameters(1000, 60, 4 * ONE_ETHER, ONE_ETHER)
        assert approximate_auction_end_time(params) == 1000 + 120

    def test_schedule(self, auction_params):
        """Schedule pairs each timestamp with its price."""
        start = auction_params.start_time
        schedule = price_schedule(auction_params, [start, start + 60])
        assert schedule == [(start, 5 * ONE_ETHER), (start + 60, 5 * ONE_ETHER // 2)]


class TestHalfLifeFromDetails:
    """Test the half-life helper."""

    def test_standard_auction(self):
        """5 ETH to 1 ETH in 144 seconds is a 60 second half-life."""
        assert half_life_seconds_from_auction_details(5 * ONE_ETHER, ONE_ETHER, 0, 144) == 60

    def test_power_of_two_ratio(self):
        """4 ETH to 1 ETH in two minutes is exactly two halvings."""
        assert half_life_seconds_from_auction_details(4 * ONE_ETHER, ONE_ETHER, 0, 120) == 60

    def test_offset_start_time(self):
        """Only the duration matters."""
        assert half_life_seconds_from_auction_details(
            5 * ONE_ETHER, ONE_ETHER, 1_000_000, 1_000_144
        ) == 60

    def test_invalid_prices(self):
        """Start price must exceed base price."""
        with pytest.raises(InvalidPricesError):
            half_life_seconds_from_auction_details(ONE_ETHER, 5 * ONE_ETHER, 0, 100)

    def test_invalid_window(self):
        """End time must follow start time."""
        with pytest.raises(InvalidParameterError):
            half_life_seconds_from_auction_details(5 * ONE_ETHER, ONE_ETHER, 100, 100)
