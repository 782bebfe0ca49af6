"""
Settlement Dutch Auction Revenue Distribution

Splits proceeds among the parties returned by the split provider and
pays them from the minter treasury in fixed order:

    render provider, platform provider, artist, additional payee

Zero amounts are skipped. A failed transfer raises PaymentFailedError
naming the role; the caller's atomic block reverts earlier payouts.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List

from dasettle.constants import (
    PERCENT_TOTAL,
    ROLE_ADDITIONAL_PAYEE,
    ROLE_ARTIST,
    ROLE_PLATFORM_PROVIDER,
    ROLE_RENDER_PROVIDER,
    SPLIT_ROLE_LABELS,
    SPLIT_ROLE_ORDER,
)
from dasettle.core.types import Address
from dasettle.errors import InvalidSplitConfigError, PaymentFailedError
from dasettle.registry.base import RevenueSplitConfig, SplitCapability, SplitParty, SplitProvider
from dasettle.state.accounts import AccountManager

logger = logging.getLogger(__name__)


FLAGSHIP_V1_ROLES = frozenset({ROLE_RENDER_PROVIDER, ROLE_ARTIST, ROLE_ADDITIONAL_PAYEE})
ENGINE_V1_ROLES = frozenset({
    ROLE_RENDER_PROVIDER,
    ROLE_PLATFORM_PROVIDER,
    ROLE_ARTIST,
    ROLE_ADDITIONAL_PAYEE,
})


@dataclass(frozen=True, slots=True)
class Payout:
    role: str
    address: Address
    amount: int


def expected_roles(project_id: int, capability: SplitCapability) -> frozenset:
    """Role set a split response of the given capability must carry."""
    if capability == SplitCapability.FLAGSHIP_V1:
        return FLAGSHIP_V1_ROLES
    elif capability == SplitCapability.ENGINE_V1:
        return ENGINE_V1_ROLES
    else:
        raise InvalidSplitConfigError(project_id, f"unsupported capability {capability!r}")


def validate_split_config(project_id: int, config: RevenueSplitConfig) -> List[SplitParty]:
    """
    Check a split response and return its parties in payout order.

    Raises:
        InvalidSplitConfigError: wrong role set, duplicate role, negative
            percentage, or percentages not summing to 100
    """
    roles = config.roles()
    if len(roles) != len(set(roles)):
        raise InvalidSplitConfigError(project_id, f"duplicate roles in {roles}")

    expected = expected_roles(project_id, config.capability)
    if set(roles) != expected:
        raise InvalidSplitConfigError(
            project_id,
            f"{config.capability.value} requires roles {sorted(expected)}, got {sorted(roles)}",
        )

    if any(party.percentage < 0 for party in config.parties):
        raise InvalidSplitConfigError(project_id, "negative percentage")

    total = sum(party.percentage for party in config.parties)
    if total != PERCENT_TOTAL:
        raise InvalidSplitConfigError(project_id, f"percentages sum to {total}, not {PERCENT_TOTAL}")

    by_role = {party.role: party for party in config.parties}
    return [by_role[role] for role in SPLIT_ROLE_ORDER if role in by_role]


def compute_split(project_id: int, config: RevenueSplitConfig, amount: int) -> List[Payout]:
    """
    Per-party amounts for a revenue total, in payout order.

    Each share is rounded down; the remainder goes to the artist.
    """
    parties = validate_split_config(project_id, config)
    shares = {party.role: amount * party.percentage // PERCENT_TOTAL for party in parties}
    shares[ROLE_ARTIST] += amount - sum(shares.values())

    return [Payout(party.role, party.address, shares[party.role]) for party in parties]


class RevenueDistributor:
    """Pays revenue out of the minter treasury."""

    def __init__(
        self,
        accounts: AccountManager,
        split_provider: SplitProvider,
        treasury: Address
    ):
        self.accounts = accounts
        self.split_provider = split_provider
        self.treasury = treasury

    def split(self, project_id: int, amount: int) -> List[Payout]:
        config = self.split_provider.get_split_config(project_id)
        return compute_split(project_id, config, amount)

    def distribute(self, project_id: int, amount: int) -> List[Payout]:
        """
        Split and pay `amount`.

        Raises:
            PaymentFailedError: a party's transfer failed
        """
        payouts = self.split(project_id, amount)
        paid = []
        for payout in payouts:
            if payout.amount == 0:
                continue
            if not self.accounts.transfer(self.treasury, payout.address, payout.amount):
                label = SPLIT_ROLE_LABELS[payout.role]
                logger.warning(
                    f"Project {project_id} {label} payment of {payout.amount} "
                    f"to {payout.address} failed"
                )
                raise PaymentFailedError(label, payout.address.checksum(), payout.amount)
            paid.append(payout)

        logger.info(
            f"Project {project_id} distributed {amount} to "
            f"{len(paid)} of {len(payouts)} parties"
        )
        return paid
