"""
Settlement Dutch Auction State Structures

Per-project records and the keyed store that owns them.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Dict, Iterator, Optional, Tuple

from dasettle.constants import (
    DEFAULT_MINIMUM_HALF_LIFE_SECONDS,
    DEFAULT_MAXIMUM_HALF_LIFE_SECONDS,
)
from dasettle.core.types import Address


@dataclass(frozen=True, slots=True)
class AuctionParameters:
    """
    Exponential auction parameters for one project.

    A zeroed record means the auction is unconfigured.
    Configured invariant: 0 < base_price < start_price.
    """
    start_time: int = 0                         # Unix seconds
    price_decay_half_life_seconds: int = 0
    start_price: int = 0                        # wei
    base_price: int = 0                         # wei

    @property
    def is_configured(self) -> bool:
        return self.start_price > 0

    @classmethod
    def zero(cls) -> AuctionParameters:
        return cls()

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "price_decay_half_life_seconds": self.price_decay_half_life_seconds,
            "start_price": self.start_price,
            "base_price": self.base_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AuctionParameters:
        return cls(
            start_time=int(data.get("start_time", 0)),
            price_decay_half_life_seconds=int(data.get("price_decay_half_life_seconds", 0)),
            start_price=int(data.get("start_price", 0)),
            base_price=int(data.get("base_price", 0)),
        )


@dataclass
class ProjectSettlementState:
    """
    Settlement bookkeeping for one project.

    Survives auction resets. revenues_collected is a one-way latch;
    clearing_price is 0 until it is set.
    """
    latest_purchase_price: int = 0
    num_settleable_invocations: int = 0
    revenues_collected: bool = False
    clearing_price: int = 0

    def copy(self) -> ProjectSettlementState:
        return ProjectSettlementState(
            latest_purchase_price=self.latest_purchase_price,
            num_settleable_invocations=self.num_settleable_invocations,
            revenues_collected=self.revenues_collected,
            clearing_price=self.clearing_price,
        )

    def settlement_price(self) -> int:
        """Price charged per purchase when computing reclaimable excess."""
        if self.revenues_collected:
            return self.clearing_price
        return self.latest_purchase_price

    def to_dict(self) -> dict:
        return {
            "latest_purchase_price": self.latest_purchase_price,
            "num_settleable_invocations": self.num_settleable_invocations,
            "revenues_collected": self.revenues_collected,
            "clearing_price": self.clearing_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProjectSettlementState:
        return cls(
            latest_purchase_price=int(data.get("latest_purchase_price", 0)),
            num_settleable_invocations=int(data.get("num_settleable_invocations", 0)),
            revenues_collected=bool(data.get("revenues_collected", False)),
            clearing_price=int(data.get("clearing_price", 0)),
        )


@dataclass
class PurchaseReceipt:
    """Amount a buyer posted for a project and how many tokens it bought."""
    total_posted: int = 0
    num_purchases: int = 0

    def copy(self) -> PurchaseReceipt:
        return PurchaseReceipt(
            total_posted=self.total_posted,
            num_purchases=self.num_purchases,
        )

    def is_empty(self) -> bool:
        return self.num_purchases == 0

    def to_dict(self) -> dict:
        return {
            "total_posted": self.total_posted,
            "num_purchases": self.num_purchases,
        }


@dataclass
class InvocationCache:
    """
    Minter-local copy of the registry invocation cap.

    May be stale in either direction. Never trusted when it would
    permit a sale the registry rejects.
    """
    max_invocations: int = 0
    max_has_been_invoked: bool = False
    initialized: bool = False

    def copy(self) -> InvocationCache:
        return InvocationCache(
            max_invocations=self.max_invocations,
            max_has_been_invoked=self.max_has_been_invoked,
            initialized=self.initialized,
        )

    def to_dict(self) -> dict:
        return {
            "max_invocations": self.max_invocations,
            "max_has_been_invoked": self.max_has_been_invoked,
            "initialized": self.initialized,
        }

    @classmethod
    def from_dict(cls, data: dict) -> InvocationCache:
        return cls(
            max_invocations=int(data.get("max_invocations", 0)),
            max_has_been_invoked=bool(data.get("max_has_been_invoked", False)),
            initialized=bool(data.get("initialized", False)),
        )


@dataclass
class ProjectFlows:
    """Value moved through the minter treasury on behalf of a project."""
    collected: int = 0
    distributed: int = 0
    reclaimed: int = 0

    def balance(self) -> int:
        return self.collected - self.distributed - self.reclaimed

    def copy(self) -> ProjectFlows:
        return ProjectFlows(
            collected=self.collected,
            distributed=self.distributed,
            reclaimed=self.reclaimed,
        )

    def to_dict(self) -> dict:
        return {
            "collected": self.collected,
            "distributed": self.distributed,
            "reclaimed": self.reclaimed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProjectFlows:
        return cls(
            collected=int(data.get("collected", 0)),
            distributed=int(data.get("distributed", 0)),
            reclaimed=int(data.get("reclaimed", 0)),
        )


def _restore_records(live: dict, snapshot: dict):
    for key in list(live):
        if key not in snapshot:
            del live[key]
    for key, record in snapshot.items():
        current = live.get(key)
        if current is None:
            live[key] = record.copy()
        else:
            for f in fields(record):
                setattr(current, f.name, getattr(record, f.name))


@dataclass
class MinterState:
    """
    Keyed store of all minter state.

    Owned by one SettlementMinter and passed by reference to each
    component. copy() and restore() give operations all-or-nothing
    semantics.
    """
    minimum_half_life_seconds: int = DEFAULT_MINIMUM_HALF_LIFE_SECONDS
    maximum_half_life_seconds: int = DEFAULT_MAXIMUM_HALF_LIFE_SECONDS

    _auctions: Dict[int, AuctionParameters] = field(default_factory=dict)
    _settlements: Dict[int, ProjectSettlementState] = field(default_factory=dict)
    _receipts: Dict[Tuple[int, Address], PurchaseReceipt] = field(default_factory=dict)
    _invocations: Dict[int, InvocationCache] = field(default_factory=dict)
    _flows: Dict[int, ProjectFlows] = field(default_factory=dict)

    # Auction parameters

    def get_auction(self, project_id: int) -> AuctionParameters:
        """Auction parameters, zeroed when unconfigured."""
        return self._auctions.get(project_id, AuctionParameters.zero())

    def set_auction(self, project_id: int, params: AuctionParameters):
        self._auctions[project_id] = params

    def clear_auction(self, project_id: int):
        self._auctions.pop(project_id, None)

    # Settlement state

    def get_settlement(self, project_id: int) -> ProjectSettlementState:
        """Settlement state for reading. Not stored if absent."""
        settlement = self._settlements.get(project_id)
        if settlement is None:
            return ProjectSettlementState()
        return settlement

    def get_or_create_settlement(self, project_id: int) -> ProjectSettlementState:
        if project_id not in self._settlements:
            self._settlements[project_id] = ProjectSettlementState()
        return self._settlements[project_id]

    def set_settlement(self, project_id: int, settlement: ProjectSettlementState):
        self._settlements[project_id] = settlement

    # Receipts

    def get_receipt(self, project_id: int, buyer: Address) -> PurchaseReceipt:
        """Receipt for reading. Not stored if absent."""
        receipt = self._receipts.get((project_id, buyer))
        if receipt is None:
            return PurchaseReceipt()
        return receipt

    def get_or_create_receipt(self, project_id: int, buyer: Address) -> PurchaseReceipt:
        key = (project_id, buyer)
        if key not in self._receipts:
            self._receipts[key] = PurchaseReceipt()
        return self._receipts[key]

    def set_receipt(self, project_id: int, buyer: Address, receipt: PurchaseReceipt):
        self._receipts[(project_id, buyer)] = receipt

    def iter_receipts(
        self, project_id: Optional[int] = None
    ) -> Iterator[Tuple[int, Address, PurchaseReceipt]]:
        """Iterate (project, buyer, receipt), optionally for one project."""
        for (pid, buyer), receipt in self._receipts.items():
            if project_id is None or pid == project_id:
                yield pid, buyer, receipt

    # Invocation cache

    def get_invocation_cache(self, project_id: int) -> InvocationCache:
        cache = self._invocations.get(project_id)
        if cache is None:
            return InvocationCache()
        return cache

    def get_or_create_invocation_cache(self, project_id: int) -> InvocationCache:
        if project_id not in self._invocations:
            self._invocations[project_id] = InvocationCache()
        return self._invocations[project_id]

    def set_invocation_cache(self, project_id: int, cache: InvocationCache):
        self._invocations[project_id] = cache

    # Treasury flows

    def get_flows(self, project_id: int) -> ProjectFlows:
        flows = self._flows.get(project_id)
        if flows is None:
            return ProjectFlows()
        return flows

    def get_or_create_flows(self, project_id: int) -> ProjectFlows:
        if project_id not in self._flows:
            self._flows[project_id] = ProjectFlows()
        return self._flows[project_id]

    def set_flows(self, project_id: int, flows: ProjectFlows):
        self._flows[project_id] = flows

    def project_ids(self) -> list:
        ids = set(self._auctions) | set(self._settlements) | set(self._invocations)
        ids |= {pid for pid, _ in self._receipts}
        return sorted(ids)

    # Snapshots

    def copy(self) -> MinterState:
        """Create a deep copy of the store."""
        return MinterState(
            minimum_half_life_seconds=self.minimum_half_life_seconds,
            maximum_half_life_seconds=self.maximum_half_life_seconds,
            _auctions=dict(self._auctions),
            _settlements={k: v.copy() for k, v in self._settlements.items()},
            _receipts={k: v.copy() for k, v in self._receipts.items()},
            _invocations={k: v.copy() for k, v in self._invocations.items()},
            _flows={k: v.copy() for k, v in self._flows.items()},
        )

    def restore(self, snapshot: MinterState):
        """
        Reset contents in place to those of a snapshot.

        Records present in both are overwritten field by field, so a
        record fetched before a nested operation rolled back is still
        the live one afterwards.
        """
        self.minimum_half_life_seconds = snapshot.minimum_half_life_seconds
        self.maximum_half_life_seconds = snapshot.maximum_half_life_seconds
        self._auctions.clear()
        self._auctions.update(snapshot._auctions)
        _restore_records(self._settlements, snapshot._settlements)
        _restore_records(self._receipts, snapshot._receipts)
        _restore_records(self._invocations, snapshot._invocations)
        _restore_records(self._flows, snapshot._flows)

    def to_dict(self) -> dict:
        return {
            "minimum_half_life_seconds": self.minimum_half_life_seconds,
            "maximum_half_life_seconds": self.maximum_half_life_seconds,
            "auctions": {str(k): v.to_dict() for k, v in self._auctions.items()},
            "settlements": {str(k): v.to_dict() for k, v in self._settlements.items()},
            "receipts": [
                {"project_id": pid, "buyer": buyer.checksum(), **receipt.to_dict()}
                for (pid, buyer), receipt in self._receipts.items()
            ],
            "invocations": {str(k): v.to_dict() for k, v in self._invocations.items()},
            "flows": {str(k): v.to_dict() for k, v in self._flows.items()},
        }
