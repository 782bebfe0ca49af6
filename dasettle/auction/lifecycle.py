"""
Settlement Dutch Auction Lifecycle

Per-project state machine governing when auction parameters may be set,
reset or frozen.

States:
    UNCONFIGURED -> CONFIGURED -> ACTIVE -> COMPLETED -> REVENUES_COLLECTED

COMPLETED is a predicate (sold out, or price at base), never stored.
Reset returns to UNCONFIGURED from any state except REVENUES_COLLECTED.
"""

from __future__ import annotations
import logging
from enum import Enum

from dasettle.core.state import AuctionParameters, MinterState
from dasettle.auction.pricing import price_has_reached_base
from dasettle.errors import (
    AuctionNotConfiguredError,
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

logger = logging.getLogger(__name__)


class AuctionState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    ACTIVE = "active"
    COMPLETED = "completed"
    REVENUES_COLLECTED = "revenues_collected"


class AuctionLifecycle:
    """
    Validates and applies auction configuration changes.

    All checks run before the store is touched.
    """

    def __init__(self, state: MinterState):
        self.state = state

    def current_state(self, project_id: int, now: int, sold_out: bool = False) -> AuctionState:
        """
        Lifecycle state at time `now`.

        sold_out is supplied by the caller from the invocation reconciler.
        """
        settlement = self.state.get_settlement(project_id)
        if settlement.revenues_collected:
            return AuctionState.REVENUES_COLLECTED

        params = self.state.get_auction(project_id)
        if not params.is_configured:
            return AuctionState.UNCONFIGURED
        if now < params.start_time:
            return AuctionState.CONFIGURED
        if sold_out or price_has_reached_base(params, now):
            return AuctionState.COMPLETED
        return AuctionState.ACTIVE

    def validate_configure(self, project_id: int, params: AuctionParameters, now: int):
        """
        Check a configure request against the current state.

        Raises:
            RevenuesAlreadyCollectedError: epoch already settled
            MidAuctionModificationError: current auction has started
            OnlyFutureAuctionsError: start_time not in the future
            HalfLifeOutOfRangeError: half-life outside allowable range
            ZeroBasePriceError: base_price is zero
            InvalidPricesError: start_price <= base_price
            OnlyDecreasingPriceError: start above unsettled latest price
        """
        settlement = self.state.get_settlement(project_id)
        if settlement.revenues_collected:
            raise RevenuesAlreadyCollectedError(project_id)

        current = self.state.get_auction(project_id)
        if current.is_configured and now >= current.start_time:
            raise MidAuctionModificationError(project_id)

        if params.start_time <= now:
            raise OnlyFutureAuctionsError(params.start_time, now)

        minimum = self.state.minimum_half_life_seconds
        maximum = self.state.maximum_half_life_seconds
        half_life = params.price_decay_half_life_seconds
        if not minimum <= half_life <= maximum:
            raise HalfLifeOutOfRangeError(half_life, minimum, maximum)

        if params.base_price == 0:
            raise ZeroBasePriceError()
        if params.start_price <= params.base_price:
            raise InvalidPricesError(params.start_price, params.base_price)

        if (
            settlement.num_settleable_invocations > 0
            and params.start_price > settlement.latest_purchase_price
        ):
            raise OnlyDecreasingPriceError(params.start_price, settlement.latest_purchase_price)

    def configure(self, project_id: int, params: AuctionParameters, now: int):
        """Validate then store new auction parameters."""
        self.validate_configure(project_id, params, now)
        self.state.set_auction(project_id, params)
        logger.info(
            f"Project {project_id} auction configured: start={params.start_time} "
            f"half_life={params.price_decay_half_life_seconds}s "
            f"start_price={params.start_price} base_price={params.base_price}"
        )

    def reset(self, project_id: int):
        """
        Zero the auction parameters. Settlement state survives.

        Raises:
            AuctionNotConfiguredError: nothing to reset
            RevenuesAlreadyCollectedError: epoch already settled
        """
        if not self.state.get_auction(project_id).is_configured:
            raise AuctionNotConfiguredError(project_id)
        if self.state.get_settlement(project_id).revenues_collected:
            raise RevenuesAlreadyCollectedError(project_id)

        self.state.clear_auction(project_id)
        logger.info(f"Project {project_id} auction reset")

    def set_allowable_half_life_range(self, minimum: int, maximum: int):
        """
        Update the global half-life bounds.

        Raises:
            ZeroHalfLifeError: minimum is zero
            InvalidHalfLifeRangeError: maximum <= minimum
        """
        if minimum <= 0:
            raise ZeroHalfLifeError()
        if maximum <= minimum:
            raise InvalidHalfLifeRangeError(minimum, maximum)

        self.state.minimum_half_life_seconds = minimum
        self.state.maximum_half_life_seconds = maximum
        logger.info(f"Allowable half-life range set to [{minimum}, {maximum}]s")
