"""
Settlement Dutch Auction Minter

Single entry point tying pricing, lifecycle, invocation reconciliation,
the settlement ledger, revenue distribution and reclaims together.

Every mutating operation runs in an atomic block: the minter state and
the value accounts are snapshotted first and restored if anything
raises. Payment-issuing entry points also hold a per-project reentrancy
guard for their whole duration.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from dasettle.constants import MINTER_TYPE
from dasettle.core.state import AuctionParameters, InvocationCache, MinterState, PurchaseReceipt
from dasettle.core.types import Address
from dasettle.auction.lifecycle import AuctionLifecycle, AuctionState
from dasettle.auction.pricing import get_price, price_has_reached_base
from dasettle.clock import Clock, ManualClock, NtpClock, SystemClock
from dasettle.config import ClockConfig, MinterConfig
from dasettle.errors import (
    ActiveAuctionNotSoldOutError,
    AuctionNotStartedError,
    HolderRequiredError,
    InsufficientBalanceError,
    InvalidParameterError,
    NeedMoreValueError,
    OnlyConfiguredAuctionsError,
    RevenuesAlreadyCollectedError,
    ZeroAddressError,
)
from dasettle.minter.flavor import DEFAULT_FLAVOR, AuctionFlavor, HolderGate, RegistryHolderGate
from dasettle.minter.guard import ReentrancyGuard
from dasettle.minter.invocations import InvocationReconciler
from dasettle.registry.base import ProjectRegistry, SplitProvider
from dasettle.registry.memory import InMemoryRegistry
from dasettle.registry.remote import RemoteRegistry
from dasettle.settlement.distributor import Payout, RevenueDistributor
from dasettle.settlement.reclaim import ReclaimEngine
from dasettle.state.accounts import AccountManager
from dasettle.state.ledger import SettlementLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PriceInfo:
    is_configured: bool
    token_price: int
    currency_symbol: str = "ETH"


@dataclass(frozen=True)
class RevenueWithdrawal:
    """Outcome of locking the clearing price and paying out proceeds."""
    project_id: int
    clearing_price: int
    num_settleable_invocations: int
    proceeds: int
    payouts: List[Payout] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "projectId": self.project_id,
            "clearingPrice": self.clearing_price,
            "numSettleableInvocations": self.num_settleable_invocations,
            "proceeds": self.proceeds,
            "payouts": [
                {"role": p.role, "address": p.address.checksum(), "amount": p.amount}
                for p in self.payouts
            ],
        }


class SettlementMinter:
    """
    Exponential Dutch auction minter with settlement.

    Buyers pay the current decayed price (or more); once the auction
    sells out or reaches its base price the clearing price is locked and
    every buyer may reclaim what they paid above it.
    """

    def __init__(
        self,
        registry: ProjectRegistry,
        accounts: AccountManager,
        split_provider: Optional[SplitProvider] = None,
        clock: Optional[Clock] = None,
        address: Optional[Address] = None,
        flavor: AuctionFlavor = DEFAULT_FLAVOR,
        holder_gate: Optional[HolderGate] = None,
        state: Optional[MinterState] = None
    ):
        if flavor.holder_gated and holder_gate is None:
            raise InvalidParameterError("holder_gate", f"flavor {flavor.name} requires a holder gate")

        self.registry = registry
        self.accounts = accounts
        self.split_provider = split_provider if split_provider is not None else registry
        self.clock = clock if clock is not None else SystemClock()
        self.address = address if address is not None else Address.from_seed(f"minter:{MINTER_TYPE}")
        self.flavor = flavor
        self.holder_gate = holder_gate
        self.state = state if state is not None else MinterState()

        self.lifecycle = AuctionLifecycle(self.state)
        self.invocations = InvocationReconciler(self.state, registry)
        self.ledger = SettlementLedger(self.state)
        self.distributor = RevenueDistributor(accounts, self.split_provider, self.address)
        self.reclaimer = ReclaimEngine(self.ledger, accounts, self.address, registry.address)
        self._guard = ReentrancyGuard()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _now(self, now: Optional[int]) -> int:
        return now if now is not None else self.clock.now()

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        """Restore state and balances if the block raises."""
        state_snapshot = self.state.copy()
        accounts_snapshot = self.accounts.copy()
        try:
            yield
        except Exception as e:
            self.state.restore(state_snapshot)
            self.accounts.restore(accounts_snapshot)
            logger.debug(f"{operation} reverted: {e}")
            raise

    def minter_type(self) -> str:
        return MINTER_TYPE

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_auction_details(
        self,
        project_id: int,
        start_time: int,
        price_decay_half_life_seconds: int,
        start_price: int,
        base_price: int,
        now: Optional[int] = None
    ) -> AuctionParameters:
        """Configure (or reconfigure, before start) a project's auction."""
        now = self._now(now)
        params = AuctionParameters(
            start_time=start_time,
            price_decay_half_life_seconds=price_decay_half_life_seconds,
            start_price=start_price,
            base_price=base_price,
        )
        with self._atomic("set_auction_details"):
            self.lifecycle.configure(project_id, params, now)
            self.invocations.refresh(project_id)
        return params

    def reset_auction_details(self, project_id: int):
        """Zero a project's auction parameters. Settlement state survives."""
        with self._atomic("reset_auction_details"):
            self.lifecycle.reset(project_id)

    def set_allowable_half_life_range(self, minimum: int, maximum: int):
        with self._atomic("set_allowable_half_life_range"):
            self.lifecycle.set_allowable_half_life_range(minimum, maximum)

    def manually_limit_project_max_invocations(self, project_id: int, max_invocations: int):
        with self._atomic("manually_limit_project_max_invocations"):
            self.invocations.manually_limit(project_id, max_invocations)

    def sync_project_max_invocations_to_core(self, project_id: int) -> InvocationCache:
        with self._atomic("sync_project_max_invocations_to_core"):
            return self.invocations.sync_to_registry(project_id).copy()

    # =========================================================================
    # Purchase
    # =========================================================================

    def _purchase_price(self, project_id: int, buyer: Address, payment: int, now: int) -> int:
        params = self.state.get_auction(project_id)
        if not params.is_configured:
            raise OnlyConfiguredAuctionsError(project_id)
        if now < params.start_time:
            raise AuctionNotStartedError(params.start_time, now)

        if self.flavor.holder_gated and not self.holder_gate.is_eligible(project_id, buyer):
            raise HolderRequiredError(project_id, buyer.checksum())

        settlement = self.state.get_settlement(project_id)
        if settlement.revenues_collected:
            price = settlement.clearing_price
        else:
            price = get_price(params, now)

        if payment < price:
            raise NeedMoreValueError(payment, price)
        return price

    def purchase(
        self,
        project_id: int,
        buyer: Address,
        payment: int,
        now: Optional[int] = None,
        to: Optional[Address] = None
    ) -> int:
        """
        Buy one token at the current price.

        `payment` moves from the buyer to the minter treasury in full;
        anything above the eventual clearing price is reclaimable later.

        Returns:
            Minted token id
        """
        now = self._now(now)
        recipient = to if to is not None else buyer

        with self._guard.enter(project_id), self._atomic("purchase"):
            price = self._purchase_price(project_id, buyer, payment, now)

            if not self.accounts.transfer(buyer, self.address, payment):
                raise InsufficientBalanceError(
                    buyer.checksum(), self.accounts.get_balance(buyer), payment
                )
            self.state.get_or_create_flows(project_id).collected += payment

            # Price is already locked: pay it out now
            if self.state.get_settlement(project_id).revenues_collected and price > 0:
                self.distributor.distribute(project_id, price)
                self.state.get_or_create_flows(project_id).distributed += price

            token_id = self.invocations.check_and_record_purchase(
                project_id, lambda: self.registry.mint(project_id, recipient)
            )
            self.ledger.record_purchase(project_id, buyer, price, payment)

        logger.info(
            f"Project {project_id} token {token_id} purchased by {buyer} "
            f"for {self.flavor.format_amount(payment)} at price {self.flavor.format_amount(price)}"
        )
        return token_id

    def purchase_to(
        self,
        project_id: int,
        buyer: Address,
        to: Address,
        payment: int,
        now: Optional[int] = None
    ) -> int:
        """Buy one token for `to`; the receipt stays with the buyer."""
        return self.purchase(project_id, buyer, payment, now=now, to=to)

    # =========================================================================
    # Revenue withdrawal
    # =========================================================================

    def withdraw_artist_and_admin_revenues(
        self,
        project_id: int,
        now: Optional[int] = None
    ) -> RevenueWithdrawal:
        """
        Lock the clearing price and pay proceeds to the split parties.

        Clearing price is the latest purchase price if sold out, otherwise
        the base price once the price has decayed to it.
        """
        now = self._now(now)

        with self._guard.enter(project_id), self._atomic("withdraw_artist_and_admin_revenues"):
            params = self.state.get_auction(project_id)
            if not params.is_configured:
                raise OnlyConfiguredAuctionsError(project_id)
            if self.state.get_settlement(project_id).revenues_collected:
                raise RevenuesAlreadyCollectedError(project_id)

            self.invocations.refresh(project_id)
            settlement = self.state.get_settlement(project_id)
            if self.invocations.is_sold_out(project_id):
                clearing_price = settlement.latest_purchase_price
            elif price_has_reached_base(params, now):
                clearing_price = params.base_price
            else:
                current = get_price(params, now) if now >= params.start_time else params.start_price
                raise ActiveAuctionNotSoldOutError(project_id, current, params.base_price)

            settlement = self.ledger.lock_clearing_price(project_id, clearing_price)
            count = settlement.num_settleable_invocations
            proceeds = clearing_price * count

            payouts = []
            if proceeds > 0:
                payouts = self.distributor.distribute(project_id, proceeds)
                self.state.get_or_create_flows(project_id).distributed += proceeds

        return RevenueWithdrawal(
            project_id=project_id,
            clearing_price=clearing_price,
            num_settleable_invocations=count,
            proceeds=proceeds,
            payouts=payouts,
        )

    # =========================================================================
    # Reclaim
    # =========================================================================

    def _reclaim(
        self,
        buyer: Address,
        project_ids: Sequence[int],
        to: Optional[Address],
        core_contracts: Optional[Sequence[Address]]
    ) -> int:
        keys = list(dict.fromkeys(project_ids))
        with self._guard.enter(*keys), self._atomic("reclaim"):
            return self.reclaimer.reclaim(buyer, project_ids, to=to, core_contracts=core_contracts)

    def reclaim_project_excess_settlement_funds(self, project_id: int, buyer: Address) -> int:
        return self._reclaim(buyer, [project_id], None, None)

    def reclaim_project_excess_settlement_funds_to(
        self,
        project_id: int,
        buyer: Address,
        to: Address
    ) -> int:
        return self._reclaim(buyer, [project_id], to, None)

    def reclaim_projects_excess_settlement_funds(
        self,
        project_ids: Sequence[int],
        buyer: Address,
        core_contracts: Optional[Sequence[Address]] = None
    ) -> int:
        return self._reclaim(buyer, project_ids, None, core_contracts)

    def reclaim_projects_excess_settlement_funds_to(
        self,
        project_ids: Sequence[int],
        buyer: Address,
        to: Address,
        core_contracts: Optional[Sequence[Address]] = None
    ) -> int:
        return self._reclaim(buyer, project_ids, to, core_contracts)

    # =========================================================================
    # Views
    # =========================================================================

    def get_price_info(self, project_id: int, now: Optional[int] = None) -> PriceInfo:
        """
        Current token price.

        Order: unconfigured, revenues collected, sold out, not started,
        then the decayed price.
        """
        symbol = self.flavor.currency_symbol
        params = self.state.get_auction(project_id)
        if not params.is_configured:
            return PriceInfo(False, 0, symbol)

        settlement = self.state.get_settlement(project_id)
        if settlement.revenues_collected:
            return PriceInfo(True, settlement.clearing_price, symbol)
        if self.state.get_invocation_cache(project_id).max_has_been_invoked:
            return PriceInfo(True, settlement.latest_purchase_price, symbol)

        now = self._now(now)
        if now < params.start_time:
            return PriceInfo(True, params.start_price, symbol)
        return PriceInfo(True, get_price(params, now), symbol)

    def auction_state(self, project_id: int, now: Optional[int] = None) -> AuctionState:
        sold_out = self.state.get_invocation_cache(project_id).max_has_been_invoked
        return self.lifecycle.current_state(project_id, self._now(now), sold_out=sold_out)

    def project_auction_parameters(self, project_id: int) -> AuctionParameters:
        return self.state.get_auction(project_id)

    def get_project_latest_purchase_price(self, project_id: int) -> int:
        return self.state.get_settlement(project_id).latest_purchase_price

    def get_num_settleable_invocations(self, project_id: int) -> int:
        return self.state.get_settlement(project_id).num_settleable_invocations

    def get_project_excess_settlement_funds(self, project_id: int, buyer: Address) -> int:
        if buyer.is_zero():
            raise ZeroAddressError("buyer")
        return self.ledger.excess_settlement_funds(project_id, buyer)

    def get_receipt(self, project_id: int, buyer: Address) -> PurchaseReceipt:
        return self.state.get_receipt(project_id, buyer).copy()

    def max_invocations_project_config(self, project_id: int) -> InvocationCache:
        return self.state.get_invocation_cache(project_id).copy()

    def project_max_has_been_invoked(self, project_id: int) -> bool:
        return self.state.get_invocation_cache(project_id).max_has_been_invoked

    def allowable_half_life_range(self) -> Tuple[int, int]:
        return (self.state.minimum_half_life_seconds, self.state.maximum_half_life_seconds)

    def project_balance(self, project_id: int) -> int:
        """Treasury value held for a project: collected - distributed - reclaimed."""
        return self.state.get_flows(project_id).balance()


def create_clock(config: ClockConfig) -> Clock:
    if config.source == "ntp":
        return NtpClock(server=config.ntp_server, timeout=config.ntp_timeout_sec)
    elif config.source == "manual":
        return ManualClock(config.manual_time)
    return SystemClock()


def create_minter(
    config: MinterConfig,
    registry: Optional[ProjectRegistry] = None,
    accounts: Optional[AccountManager] = None,
    clock: Optional[Clock] = None,
    state: Optional[MinterState] = None
) -> SettlementMinter:
    """
    Build a minter from configuration.

    Without an explicit registry, config.registry.url selects a
    RemoteRegistry; otherwise an empty InMemoryRegistry is used.
    """
    errors = config.validate()
    if errors:
        raise InvalidParameterError("config", "; ".join(errors))

    registry_address = Address.from_hex(config.registry.address)
    if registry is None:
        if config.registry.url:
            registry = RemoteRegistry(
                config.registry.url, registry_address, timeout=config.registry.timeout_sec
            )
        else:
            registry = InMemoryRegistry(address=registry_address)

    flavor = AuctionFlavor(
        name="settlement-exp-holder" if config.auction.holder_gated else "settlement-exp",
        currency_symbol=config.auction.currency_symbol,
        currency_decimals=config.auction.currency_decimals,
        holder_gated=config.auction.holder_gated,
    )
    holder_gate = None
    if flavor.holder_gated:
        holder_gate = RegistryHolderGate(registry, config.auction.allowlist)

    if state is None:
        state = MinterState()
        state.minimum_half_life_seconds = config.auction.minimum_half_life_seconds
        state.maximum_half_life_seconds = config.auction.maximum_half_life_seconds

    minter = SettlementMinter(
        registry=registry,
        accounts=accounts if accounts is not None else AccountManager(),
        clock=clock if clock is not None else create_clock(config.clock),
        flavor=flavor,
        holder_gate=holder_gate,
        state=state,
    )
    logger.info(f"Created {config.name} ({MINTER_TYPE}) on registry {registry_address}")
    return minter
