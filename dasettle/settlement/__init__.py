"""
Settlement Dutch Auction Revenue Distribution and Reclaim
"""

from dasettle.settlement.distributor import (
    Payout,
    RevenueDistributor,
    compute_split,
    validate_split_config,
)
from dasettle.settlement.reclaim import ReclaimEngine

__all__ = [
    "Payout",
    "RevenueDistributor",
    "compute_split",
    "validate_split_config",
    "ReclaimEngine",
]
