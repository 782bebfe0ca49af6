"""
Settlement Dutch Auction Value Accounts

In-memory value balances and the transfer primitive used for payment
collection, revenue payouts and reclaims. A transfer signals failure by
returning False.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from dasettle.core.types import Address

logger = logging.getLogger(__name__)

# Called as hook(sender, amount) after value lands on the receiver.
# Raising makes the transfer fail.
ReceiveHook = Callable[[Address, int], None]


@dataclass
class AccountManager:
    """
    Manages value balances keyed by address.

    Receivers may register a hook that runs on every incoming transfer,
    or be marked as rejecting all incoming value.
    """
    _balances: Dict[Address, int] = field(default_factory=dict)
    _hooks: Dict[Address, ReceiveHook] = field(default_factory=dict)
    _rejecting: Set[Address] = field(default_factory=set)
    _total_balance: int = 0

    def get_balance(self, address: Address) -> int:
        """Get balance for address."""
        return self._balances.get(address, 0)

    def exists(self, address: Address) -> bool:
        return address in self._balances

    def credit(self, address: Address, amount: int) -> None:
        """Credit amount to account (creates if needed)."""
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        self._balances[address] = self.get_balance(address) + amount
        self._total_balance += amount

    def debit(self, address: Address, amount: int) -> bool:
        """
        Debit amount from account.

        Returns:
            True if debit succeeded
        """
        balance = self.get_balance(address)
        if amount < 0 or balance < amount:
            return False
        self._balances[address] = balance - amount
        self._total_balance -= amount
        return True

    def set_receive_hook(self, address: Address, hook: Optional[ReceiveHook]) -> None:
        """Install (or remove with None) a hook run on incoming transfers."""
        if hook is None:
            self._hooks.pop(address, None)
        else:
            self._hooks[address] = hook

    def set_rejecting(self, address: Address, rejecting: bool = True) -> None:
        """Mark an address as refusing all incoming value."""
        if rejecting:
            self._rejecting.add(address)
        else:
            self._rejecting.discard(address)

    def transfer(
        self,
        sender: Address,
        receiver: Address,
        amount: int
    ) -> bool:
        """
        Transfer balance between accounts.

        Args:
            sender: Sender address
            receiver: Receiver address
            amount: Amount to transfer

        Returns:
            True if transfer succeeded
        """
        if amount < 0:
            logger.debug(f"Transfer failed: negative amount {amount}")
            return False

        if self.get_balance(sender) < amount:
            logger.debug(f"Transfer failed: insufficient balance for {sender}")
            return False

        if receiver in self._rejecting:
            logger.debug(f"Transfer failed: {receiver} rejects value")
            return False

        self._move(sender, receiver, amount)

        hook = self._hooks.get(receiver)
        if hook is not None:
            try:
                hook(sender, amount)
            except Exception as e:
                self._move(receiver, sender, amount)
                logger.debug(f"Transfer failed: receive hook of {receiver} raised {e!r}")
                return False

        return True

    def _move(self, sender: Address, receiver: Address, amount: int) -> None:
        self._balances[sender] = self.get_balance(sender) - amount
        self._balances[receiver] = self.get_balance(receiver) + amount

    def get_all_addresses(self) -> List[Address]:
        return list(self._balances.keys())

    def get_rich_list(self, limit: int = 100) -> List[Tuple[Address, int]]:
        """
        Get top accounts by balance.

        Returns:
            List of (address, balance) tuples
        """
        rich = [(address, balance) for address, balance in self._balances.items() if balance > 0]
        rich.sort(key=lambda x: x[1], reverse=True)
        return rich[:limit]

    def count(self) -> int:
        """Get total number of accounts."""
        return len(self._balances)

    def total_balance(self) -> int:
        """Get total balance across all accounts."""
        return self._total_balance

    def copy(self) -> AccountManager:
        """Create a copy of the balances. Hooks and rejections are shared settings."""
        new_manager = AccountManager()
        new_manager._balances = dict(self._balances)
        new_manager._hooks = dict(self._hooks)
        new_manager._rejecting = set(self._rejecting)
        new_manager._total_balance = self._total_balance
        return new_manager

    def restore(self, snapshot: AccountManager) -> None:
        """Reset balances in place to those of a snapshot."""
        self._balances = dict(snapshot._balances)
        self._total_balance = snapshot._total_balance

    def to_dict(self) -> Dict[str, int]:
        """Export balances as dictionary."""
        return {address.checksum(): balance for address, balance in self._balances.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> AccountManager:
        """Import balances from dictionary."""
        manager = cls()
        for address_hex, balance in data.items():
            manager.credit(Address.from_hex(address_hex), int(balance))
        return manager
