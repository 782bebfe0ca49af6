"""
Settlement Dutch Auction State Management
"""

from dasettle.state.accounts import AccountManager, ReceiveHook
from dasettle.state.ledger import SettlementLedger
from dasettle.state.storage import LedgerStorage, SCHEMA_VERSION

__all__ = [
    "AccountManager",
    "ReceiveHook",
    "SettlementLedger",
    "LedgerStorage",
    "SCHEMA_VERSION",
]
