"""
Settlement Dutch Auction Ledger

Per-project settlement state and per-buyer purchase receipts.

A buyer's excess is what they posted beyond num_purchases times the
settlement price. The settlement price is the latest purchase price
until revenues are collected, then the locked clearing price.
"""

from __future__ import annotations
import logging
from typing import List, Tuple

from dasettle.core.state import MinterState, ProjectSettlementState, PurchaseReceipt
from dasettle.core.types import Address
from dasettle.errors import InternalError, NoPurchasesMadeError, RevenuesAlreadyCollectedError

logger = logging.getLogger(__name__)


class SettlementLedger:
    """Reads and mutates settlement records in a MinterState."""

    def __init__(self, state: MinterState):
        self.state = state

    def record_purchase(
        self,
        project_id: int,
        buyer: Address,
        price_paid: int,
        payment: int
    ) -> PurchaseReceipt:
        """
        Record one purchase.

        Counts toward settleable invocations only before revenues are
        collected. The full payment, surplus included, is posted to the
        buyer's receipt.
        """
        settlement = self.state.get_or_create_settlement(project_id)
        if not settlement.revenues_collected:
            settlement.num_settleable_invocations += 1
        settlement.latest_purchase_price = price_paid

        receipt = self.state.get_or_create_receipt(project_id, buyer)
        receipt.total_posted += payment
        receipt.num_purchases += 1

        logger.debug(
            f"Project {project_id} purchase by {buyer}: price={price_paid} "
            f"posted={payment} receipt=({receipt.num_purchases}, {receipt.total_posted})"
        )
        return receipt

    def lock_clearing_price(self, project_id: int, clearing_price: int) -> ProjectSettlementState:
        """
        Latch revenues_collected and fix the clearing price.

        Raises:
            RevenuesAlreadyCollectedError: already locked
        """
        settlement = self.state.get_or_create_settlement(project_id)
        if settlement.revenues_collected:
            raise RevenuesAlreadyCollectedError(project_id)

        settlement.revenues_collected = True
        settlement.clearing_price = clearing_price
        settlement.latest_purchase_price = clearing_price

        logger.info(
            f"Project {project_id} clearing price locked at {clearing_price} "
            f"for {settlement.num_settleable_invocations} settleable invocations"
        )
        return settlement

    def settlement_price(self, project_id: int) -> int:
        return self.state.get_settlement(project_id).settlement_price()

    def excess_settlement_funds(self, project_id: int, buyer: Address) -> int:
        """
        Reclaimable excess of a buyer.

        Raises:
            NoPurchasesMadeError: buyer has no receipt for the project
        """
        receipt = self.state.get_receipt(project_id, buyer)
        if receipt.is_empty():
            raise NoPurchasesMadeError(project_id, buyer.checksum())

        owed = receipt.num_purchases * self.settlement_price(project_id)
        excess = receipt.total_posted - owed
        if excess < 0:
            raise InternalError(
                f"Negative excess for project {project_id}",
                {"posted": receipt.total_posted, "owed": owed},
            )
        return excess

    def consume_excess(self, project_id: int, buyer: Address) -> int:
        """
        Reduce a receipt to exactly what is owed and return the excess.

        The purchase count is kept, so a repeat call returns zero until
        the settlement price moves.
        """
        excess = self.excess_settlement_funds(project_id, buyer)
        receipt = self.state.get_or_create_receipt(project_id, buyer)
        receipt.total_posted -= excess
        return excess

    def total_posted(self, project_id: int) -> int:
        return sum(receipt.total_posted for _, _, receipt in self.state.iter_receipts(project_id))

    def outstanding_excess(self, project_id: int) -> int:
        """Sum of every buyer's reclaimable excess for a project."""
        price = self.settlement_price(project_id)
        return sum(
            receipt.total_posted - receipt.num_purchases * price
            for _, _, receipt in self.state.iter_receipts(project_id)
        )

    def buyers(self, project_id: int) -> List[Tuple[Address, PurchaseReceipt]]:
        return [
            (buyer, receipt)
            for _, buyer, receipt in self.state.iter_receipts(project_id)
            if not receipt.is_empty()
        ]
