"""
Settlement Dutch Auction Command Line

    dasettle schedule --start-price 5e18 --base-price 1e18 --half-life 60
    dasettle half-life --start-price ... --base-price ... --duration 3600
    dasettle init-config minter.json
    dasettle add-project --artist 0x... --max-invocations 10 --config minter.json
    dasettle fund 0x... 10e18 --config minter.json
    dasettle methods
    dasettle call minter_getPriceInfo --params '{"project_id": 0}' --config minter.json

add-project and fund act on the persisted in-memory registry and
balances, so a local auction can be run end to end through call.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from dasettle.api.methods import ERROR_PARSE, RPCError, dispatch, list_methods
from dasettle.auction.pricing import (
    approximate_auction_end_time,
    half_life_seconds_from_auction_details,
    price_schedule,
)
from dasettle.clock import ManualClock
from dasettle.config import MinterConfig, setup_logging
from dasettle.constants import REGISTRY_HARD_CAP
from dasettle.core.state import AuctionParameters
from dasettle.core.types import Address
from dasettle.errors import DASettleError, InvalidParameterError
from dasettle.minter.engine import create_minter
from dasettle.minter.flavor import DEFAULT_FLAVOR
from dasettle.registry.memory import InMemoryRegistry
from dasettle.state.storage import LedgerStorage

logger = logging.getLogger(__name__)


def parse_amount(text: str) -> int:
    """Parse an integer wei amount; scientific notation like 5e18 is accepted."""
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"invalid amount: {text}") from e
    if value != value.to_integral_value() or value < 0:
        raise argparse.ArgumentTypeError(f"amount must be a non-negative integer: {text}")
    return int(value)


def parse_address(text: str) -> Address:
    try:
        return Address.from_hex(text)
    except (TypeError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"invalid address: {text}") from e


def _load_config(path: Optional[str]) -> MinterConfig:
    config = MinterConfig.load(path) if path else MinterConfig()
    setup_logging(config.log)
    return config


def _load_registry(config: MinterConfig, storage: Optional[LedgerStorage]) -> Optional[InMemoryRegistry]:
    """Stored in-memory registry, or None when a remote registry is configured."""
    if config.registry.url:
        return None
    address = Address.from_hex(config.registry.address)
    if storage is None:
        return InMemoryRegistry(address=address)
    return storage.load_registry(address)


def _require_local_storage(config: MinterConfig, command: str):
    if config.registry.url:
        raise InvalidParameterError("registry", f"{command} needs the in-memory registry")
    if not config.storage.persist:
        raise InvalidParameterError("storage", f"{command} needs storage.persist")


def cmd_schedule(args) -> int:
    params = AuctionParameters(
        start_time=args.start_time,
        price_decay_half_life_seconds=args.half_life,
        start_price=args.start_price,
        base_price=args.base_price,
    )
    end_time = approximate_auction_end_time(params)
    times = list(range(args.start_time, end_time + args.step, args.step))[:args.points]

    print(f"{'elapsed':>10}  price")
    for t, price in price_schedule(params, times):
        print(f"{t - args.start_time:>10}  {DEFAULT_FLAVOR.format_amount(price)}")
    print(f"Reaches base price after {end_time - args.start_time}s")
    return 0


def cmd_half_life(args) -> int:
    half_life = half_life_seconds_from_auction_details(
        args.start_price, args.base_price, 0, args.duration
    )
    print(half_life)
    return 0


def cmd_init_config(args) -> int:
    MinterConfig().save(args.path)
    print(f"Wrote default configuration to {args.path}")
    return 0


def cmd_add_project(args) -> int:
    config = _load_config(args.config)
    _require_local_storage(config, "add-project")

    with LedgerStorage(str(config.db_path)) as storage:
        registry = _load_registry(config, storage)
        project_id = registry.add_project(
            args.artist,
            max_invocations=args.max_invocations,
            additional_payee=args.additional_payee,
            additional_payee_percentage=args.additional_payee_percentage,
        )
        storage.save_state(storage.load_state(), storage.load_accounts(), registry)

    print(json.dumps({"result": registry.get_project(project_id).to_dict()}))
    return 0


def cmd_fund(args) -> int:
    config = _load_config(args.config)
    if not config.storage.persist:
        raise InvalidParameterError("storage", "fund needs storage.persist")

    with LedgerStorage(str(config.db_path)) as storage:
        accounts = storage.load_accounts()
        accounts.credit(args.address, args.amount)
        storage.save_state(storage.load_state(), accounts)

    print(json.dumps({"result": {
        "address": args.address.checksum(),
        "balance": accounts.get_balance(args.address),
    }}))
    return 0


def cmd_methods(args) -> int:
    for name in list_methods():
        print(name)
    return 0


def cmd_call(args) -> int:
    config = _load_config(args.config)

    try:
        params = json.loads(args.params) if args.params else {}
    except json.JSONDecodeError as e:
        print(json.dumps({"error": {"code": ERROR_PARSE, "message": f"Parse error: {e}"}}))
        return 1

    storage = LedgerStorage(str(config.db_path)) if config.storage.persist else None
    try:
        registry = _load_registry(config, storage)
        state = storage.load_state() if storage else None
        accounts = storage.load_accounts() if storage else None
        clock = ManualClock(args.now) if args.now is not None else None
        minter = create_minter(config, registry=registry, accounts=accounts, clock=clock, state=state)

        try:
            result = dispatch(minter, args.method, params)
        except RPCError as e:
            print(json.dumps({"error": e.to_dict()}))
            return 1

        if storage:
            storage.save_state(minter.state, minter.accounts, registry)
        print(json.dumps({"result": result}, default=str))
        return 0
    except DASettleError as e:
        print(json.dumps({"error": e.to_dict()}))
        return 1
    finally:
        if storage:
            storage.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dasettle",
        description="Settlement Dutch auction minter tools",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    schedule = sub.add_parser("schedule", help="Print the price decay schedule")
    schedule.add_argument("--start-price", type=parse_amount, required=True)
    schedule.add_argument("--base-price", type=parse_amount, required=True)
    schedule.add_argument("--half-life", type=int, required=True, help="Seconds")
    schedule.add_argument("--start-time", type=int, default=0)
    schedule.add_argument("--step", type=int, default=60, help="Seconds between points")
    schedule.add_argument("--points", type=int, default=50, help="Maximum points to print")
    schedule.set_defaults(func=cmd_schedule)

    half_life = sub.add_parser("half-life", help="Half-life reaching base price after a duration")
    half_life.add_argument("--start-price", type=parse_amount, required=True)
    half_life.add_argument("--base-price", type=parse_amount, required=True)
    half_life.add_argument("--duration", type=int, required=True, help="Seconds")
    half_life.set_defaults(func=cmd_half_life)

    init_config = sub.add_parser("init-config", help="Write a default configuration file")
    init_config.add_argument("path")
    init_config.set_defaults(func=cmd_init_config)

    add_project = sub.add_parser("add-project", help="Add a project to the in-memory registry")
    add_project.add_argument("--artist", type=parse_address, required=True)
    add_project.add_argument("--max-invocations", type=int, default=REGISTRY_HARD_CAP)
    add_project.add_argument("--additional-payee", type=parse_address)
    add_project.add_argument("--additional-payee-percentage", type=int, default=0)
    add_project.add_argument("--config", help="Configuration file")
    add_project.set_defaults(func=cmd_add_project)

    fund = sub.add_parser("fund", help="Credit a stored account balance")
    fund.add_argument("address", type=parse_address)
    fund.add_argument("amount", type=parse_amount)
    fund.add_argument("--config", help="Configuration file")
    fund.set_defaults(func=cmd_fund)

    methods = sub.add_parser("methods", help="List RPC methods")
    methods.set_defaults(func=cmd_methods)

    call = sub.add_parser("call", help="Call an RPC method against persisted state")
    call.add_argument("method")
    call.add_argument("--params", help="JSON object or array")
    call.add_argument("--config", help="Configuration file")
    call.add_argument("--now", type=int, help="Unix time to run the call at")
    call.set_defaults(func=cmd_call)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except DASettleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
