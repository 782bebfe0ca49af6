"""
Settlement Dutch Auction Minter Engine
"""

from dasettle.minter.engine import (
    PriceInfo,
    RevenueWithdrawal,
    SettlementMinter,
    create_clock,
    create_minter,
)
from dasettle.minter.flavor import (
    AuctionFlavor,
    HolderGate,
    RegistryHolderGate,
    DEFAULT_FLAVOR,
    HOLDER_FLAVOR,
)
from dasettle.minter.guard import ReentrancyGuard
from dasettle.minter.invocations import InvocationReconciler

__all__ = [
    # Engine
    "PriceInfo",
    "RevenueWithdrawal",
    "SettlementMinter",
    "create_clock",
    "create_minter",
    # Flavors
    "AuctionFlavor",
    "HolderGate",
    "RegistryHolderGate",
    "DEFAULT_FLAVOR",
    "HOLDER_FLAVOR",
    # Components
    "ReentrancyGuard",
    "InvocationReconciler",
]
