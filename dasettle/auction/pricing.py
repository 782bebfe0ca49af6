"""
Settlement Dutch Auction Price Decay

Pseudo-exponential decay: the price halves exactly once per half-life
and is linearly interpolated between halvings. All arithmetic is integer
so results are bit-compatible with historical on-chain pricing.

Formula:
    elapsed = now - start_time
    price = start_price >> (elapsed // half_life)
    price -= price * (elapsed % half_life) // half_life // 2
    price = max(price, base_price)
"""

from __future__ import annotations
import math
import logging
from typing import Iterable, List, Tuple

from dasettle.constants import MAX_PRICE_HALVINGS
from dasettle.core.state import AuctionParameters
from dasettle.errors import AuctionNotStartedError, InvalidParameterError, InvalidPricesError

logger = logging.getLogger(__name__)


def decayed_price(
    start_time: int,
    half_life_seconds: int,
    start_price: int,
    base_price: int,
    now: int
) -> int:
    """
    Price at time `now`.

    Raises:
        AuctionNotStartedError: now is before start_time
    """
    if now < start_time:
        raise AuctionNotStartedError(start_time, now)
    if half_life_seconds <= 0:
        raise InvalidParameterError("half_life_seconds", "must be positive")

    elapsed = now - start_time
    full_half_lives = elapsed // half_life_seconds
    price = start_price >> full_half_lives

    # Linear interpolation toward the next halving
    price -= (price * (elapsed % half_life_seconds)) // half_life_seconds // 2

    return max(price, base_price)


def get_price(params: AuctionParameters, now: int) -> int:
    """Price of a configured auction at time `now`."""
    return decayed_price(
        params.start_time,
        params.price_decay_half_life_seconds,
        params.start_price,
        params.base_price,
        now,
    )


def price_has_reached_base(params: AuctionParameters, now: int) -> bool:
    """True once the decayed price has hit the floor. False before start."""
    if now < params.start_time:
        return False
    return get_price(params, now) <= params.base_price


def price_schedule(params: AuctionParameters, times: Iterable[int]) -> List[Tuple[int, int]]:
    """(timestamp, price) points for the given timestamps."""
    return [(t, get_price(params, t)) for t in times]


def approximate_auction_end_time(params: AuctionParameters) -> int:
    """
    First timestamp at which the price reaches base_price.

    Walks whole half-lives and solves the linear segment in which the
    floor is crossed.
    """
    half_life = params.price_decay_half_life_seconds
    if half_life <= 0:
        raise InvalidParameterError("price_decay_half_life_seconds", "must be positive")
    if params.start_price <= params.base_price:
        return params.start_time

    for k in range(MAX_PRICE_HALVINGS + 1):
        level = params.start_price >> k
        if level <= params.base_price:
            return params.start_time + k * half_life

        # price(r) = level - level*r//hl//2, reaches base once
        # level*r//hl//2 >= level - base
        need = level - params.base_price
        remainder = -(-2 * need * half_life // level)
        while remainder > 0 and (level * (remainder - 1)) // half_life // 2 >= need:
            remainder -= 1
        while (level * remainder) // half_life // 2 < need:
            remainder += 1
        if remainder < half_life:
            return params.start_time + k * half_life + remainder

    return params.start_time + (MAX_PRICE_HALVINGS + 1) * half_life


def half_life_seconds_from_auction_details(
    start_price: int,
    base_price: int,
    start_time: int,
    end_time: int
) -> int:
    """
    Half-life that makes the curve reach base_price at end_time.

    The halving count hc is the last whole halving above the base price;
    z is the fraction of the following linear segment needed to reach it.
    """
    if base_price <= 0 or start_price <= base_price:
        raise InvalidPricesError(start_price, base_price)
    if end_time <= start_time:
        raise InvalidParameterError("end_time", "must be after start_time")

    halving_count = math.floor(math.log2(start_price / base_price))
    y1 = start_price / (2 ** halving_count)
    y2 = y1 / 2
    z = (base_price - y1) / (y2 - y1)
    half_lives = (halving_count + 1) * z + halving_count * (1 - z)
    half_life = round((end_time - start_time) / half_lives)

    logger.debug(
        f"Half-life for {start_price}->{base_price} over "
        f"{end_time - start_time}s: {half_life}s"
    )
    return half_life
