"""
Settlement Dutch Auction Pricing and Lifecycle
"""

from dasettle.auction.pricing import (
    decayed_price,
    get_price,
    price_has_reached_base,
    price_schedule,
    approximate_auction_end_time,
    half_life_seconds_from_auction_details,
)
from dasettle.auction.lifecycle import AuctionState, AuctionLifecycle

__all__ = [
    # Pricing
    "decayed_price",
    "get_price",
    "price_has_reached_base",
    "price_schedule",
    "approximate_auction_end_time",
    "half_life_seconds_from_auction_details",
    # Lifecycle
    "AuctionState",
    "AuctionLifecycle",
]
