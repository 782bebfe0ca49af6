"""
Settlement Dutch Auction Core Data Structures
"""

from dasettle.core.types import Address, ZERO_ADDRESS, keccak256, to_checksum_hex
from dasettle.core.state import (
    AuctionParameters,
    ProjectSettlementState,
    PurchaseReceipt,
    InvocationCache,
    ProjectFlows,
    MinterState,
)

__all__ = [
    # Types
    "Address",
    "ZERO_ADDRESS",
    "keccak256",
    "to_checksum_hex",
    # State
    "AuctionParameters",
    "ProjectSettlementState",
    "PurchaseReceipt",
    "InvocationCache",
    "ProjectFlows",
    "MinterState",
]
