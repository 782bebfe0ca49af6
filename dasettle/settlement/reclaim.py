"""
Settlement Dutch Auction Excess Reclaim

Pays a buyer the difference between what they posted and what the
settlement price charges, across one or many projects, as a single
outbound transfer. Receipts are reduced before the transfer is issued.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence

from dasettle.core.types import Address
from dasettle.errors import (
    ArrayLengthMismatchError,
    NoClaimToZeroAddressError,
    ReclaimingFailedError,
    UnknownRegistryError,
)
from dasettle.state.accounts import AccountManager
from dasettle.state.ledger import SettlementLedger

logger = logging.getLogger(__name__)


class ReclaimEngine:
    """Computes and pays reclaimable excess from the minter treasury."""

    def __init__(
        self,
        ledger: SettlementLedger,
        accounts: AccountManager,
        treasury: Address,
        registry_address: Address
    ):
        self.ledger = ledger
        self.accounts = accounts
        self.treasury = treasury
        self.registry_address = registry_address

    def validate(
        self,
        buyer: Address,
        projects: Sequence[int],
        to: Address,
        core_contracts: Optional[Sequence[Address]] = None
    ) -> Dict[int, int]:
        """
        Check a reclaim request without mutating anything.

        Returns:
            Excess per project (duplicates counted once)

        Raises:
            NoClaimToZeroAddressError: destination is the zero address
            ArrayLengthMismatchError: projects and core_contracts differ in length
            UnknownRegistryError: a core contract is not this minter's registry
            NoPurchasesMadeError: buyer has no purchases on a project
        """
        if to.is_zero():
            raise NoClaimToZeroAddressError()

        if core_contracts is not None:
            if len(core_contracts) != len(projects):
                raise ArrayLengthMismatchError(len(projects), len(core_contracts))
            for core_contract in core_contracts:
                if core_contract != self.registry_address:
                    raise UnknownRegistryError(core_contract.checksum())

        excess: Dict[int, int] = {}
        for project_id in projects:
            if project_id not in excess:
                excess[project_id] = self.ledger.excess_settlement_funds(project_id, buyer)
        return excess

    def reclaim(
        self,
        buyer: Address,
        projects: Sequence[int],
        to: Optional[Address] = None,
        core_contracts: Optional[Sequence[Address]] = None
    ) -> int:
        """
        Reclaim excess for `projects` into `to` (default: the buyer).

        Must run inside the caller's atomic block: on a failed transfer
        the ledger changes made here are reverted by the caller.

        Returns:
            Total amount paid

        Raises:
            ReclaimingFailedError: the outbound transfer failed
        """
        destination = to if to is not None else buyer
        self.validate(buyer, projects, destination, core_contracts)

        total = 0
        reclaimed: List[str] = []
        for project_id in projects:
            amount = self.ledger.consume_excess(project_id, buyer)
            if amount:
                flows = self.ledger.state.get_or_create_flows(project_id)
                flows.reclaimed += amount
                reclaimed.append(f"{project_id}:{amount}")
            total += amount

        if total > 0 and not self.accounts.transfer(self.treasury, destination, total):
            logger.warning(f"Reclaim of {total} by {buyer} to {destination} failed")
            raise ReclaimingFailedError(destination.checksum(), total)

        logger.info(
            f"Reclaimed {total} for {buyer} to {destination} "
            f"[{', '.join(reclaimed) or 'nothing'}]"
        )
        return total
