"""
Settlement Dutch Auction Minter

Exponential Dutch auction with deferred settlement: every buyer ends up
paying the same clearing price and may reclaim what they paid above it.

price(t) = start_price / 2^k, interpolated linearly between halvings
"""

__version__ = "3.0.0"
__author__ = "dasettle"

from dasettle.constants import MINTER_TYPE, MINTER_VERSION, ONE_ETHER
from dasettle.core.types import Address, ZERO_ADDRESS
from dasettle.minter.engine import PriceInfo, SettlementMinter, create_minter

__all__ = [
    "MINTER_TYPE",
    "MINTER_VERSION",
    "ONE_ETHER",
    "Address",
    "ZERO_ADDRESS",
    "PriceInfo",
    "SettlementMinter",
    "create_minter",
    "__version__",
]
