"""
Settlement Dutch Auction Flavors

One engine serves every minter variant; a flavor selects the currency
label and whether purchases are gated on holding a token.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable

from dasettle.core.types import Address
from dasettle.errors import InvalidParameterError
from dasettle.registry.base import HolderRegistry


@runtime_checkable
class HolderGate(Protocol):
    def is_eligible(self, project_id: int, buyer: Address) -> bool:
        ...


@dataclass(frozen=True)
class AuctionFlavor:
    name: str = "settlement-exp"
    currency_symbol: str = "ETH"
    currency_decimals: int = 18
    holder_gated: bool = False

    def format_amount(self, amount: int) -> str:
        whole, frac = divmod(amount, 10 ** self.currency_decimals)
        frac_text = str(frac).rjust(self.currency_decimals, "0").rstrip("0")
        if frac_text:
            return f"{whole}.{frac_text} {self.currency_symbol}"
        return f"{whole} {self.currency_symbol}"


DEFAULT_FLAVOR = AuctionFlavor()
HOLDER_FLAVOR = AuctionFlavor(name="settlement-exp-holder", holder_gated=True)


class RegistryHolderGate:
    """Eligible when the buyer holds a token of an allowlisted project."""

    def __init__(
        self,
        registry: HolderRegistry,
        allowlist: Optional[Dict[int, Iterable[int]]] = None
    ):
        if not isinstance(registry, HolderRegistry):
            raise InvalidParameterError("registry", "cannot report token balances for holder gating")
        self.registry = registry
        self._allowlist = {k: set(v) for k, v in (allowlist or {}).items()}

    def allow(self, project_id: int, holder_project_id: int):
        self._allowlist.setdefault(project_id, set()).add(holder_project_id)

    def is_eligible(self, project_id: int, buyer: Address) -> bool:
        for holder_project_id in self._allowlist.get(project_id, ()):
            if self.registry.balance_of(buyer, holder_project_id) > 0:
                return True
        return False
