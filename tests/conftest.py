"""
Settlement Dutch Auction Test Fixtures
"""

import pytest

from dasettle.constants import ONE_ETHER
from dasettle.core.state import AuctionParameters, MinterState
from dasettle.core.types import Address
from dasettle.clock import ManualClock
from dasettle.minter.engine import SettlementMinter
from dasettle.registry.memory import InMemoryRegistry
from dasettle.state.accounts import AccountManager


# Auction used throughout: 5 ETH decaying to 1 ETH, halving every minute
GENESIS_TIME = 1_700_000_000
HALF_LIFE = 60
START_PRICE = 5 * ONE_ETHER
BASE_PRICE = ONE_ETHER
BUYER_FUNDS = 1000 * ONE_ETHER


@pytest.fixture
def clock() -> ManualClock:
    """Clock parked ten minutes before the auction starts."""
    return ManualClock(now=GENESIS_TIME)


@pytest.fixture
def auction_start(clock) -> int:
    return clock.now() + 600


@pytest.fixture
def auction_params(auction_start) -> AuctionParameters:
    return AuctionParameters(
        start_time=auction_start,
        price_decay_half_life_seconds=HALF_LIFE,
        start_price=START_PRICE,
        base_price=BASE_PRICE,
    )


@pytest.fixture
def core_address() -> Address:
    return Address.from_seed("core-registry")


@pytest.fixture
def artist() -> Address:
    return Address.from_seed("artist")


@pytest.fixture
def additional_payee() -> Address:
    return Address.from_seed("additional-payee")


@pytest.fixture
def buyer() -> Address:
    return Address.from_seed("buyer-1")


@pytest.fixture
def buyer_2() -> Address:
    return Address.from_seed("buyer-2")


@pytest.fixture
def registry(core_address) -> InMemoryRegistry:
    """Flagship-style registry: render provider takes 10%."""
    return InMemoryRegistry(address=core_address)


@pytest.fixture
def project_id(registry, artist, additional_payee) -> int:
    """Project with 10 items; additional payee takes 20% of the artist's 90%."""
    return registry.add_project(
        artist=artist,
        max_invocations=10,
        additional_payee=additional_payee,
        additional_payee_percentage=20,
    )


@pytest.fixture
def state() -> MinterState:
    return MinterState()


@pytest.fixture
def accounts(buyer, buyer_2) -> AccountManager:
    manager = AccountManager()
    manager.credit(buyer, BUYER_FUNDS)
    manager.credit(buyer_2, BUYER_FUNDS)
    return manager


@pytest.fixture
def minter(registry, accounts, clock) -> SettlementMinter:
    return SettlementMinter(registry, accounts, clock=clock)


@pytest.fixture
def live_minter(minter, project_id, auction_params, clock) -> SettlementMinter:
    """Minter with the standard auction configured and the clock at its start."""
    minter.set_auction_details(
        project_id,
        auction_params.start_time,
        auction_params.price_decay_half_life_seconds,
        auction_params.start_price,
        auction_params.base_price,
    )
    clock.set(auction_params.start_time)
    return minter
