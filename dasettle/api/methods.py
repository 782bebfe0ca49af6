"""
Settlement Dutch Auction RPC Methods

Named external interface of the minter as a dispatch table. Handlers
take the minter plus JSON parameters and return JSON-ready values.
"""

from __future__ import annotations
import inspect
import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING, Union

from dasettle.core.types import Address
from dasettle.errors import DASettleError

if TYPE_CHECKING:
    from dasettle.minter.engine import SettlementMinter

logger = logging.getLogger(__name__)


class RPCError(Exception):
    """RPC error with code and message."""
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


# Error codes
ERROR_PARSE = -32700
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL = -32603


def _address(value: str) -> Address:
    try:
        return Address.from_hex(value)
    except (TypeError, ValueError) as e:
        raise RPCError(ERROR_INVALID_PARAMS, f"Invalid address: {value!r}") from e


def _amount(value: Union[int, str]) -> int:
    """Amounts may arrive as JSON numbers or decimal strings."""
    try:
        amount = int(value)
    except (TypeError, ValueError) as e:
        raise RPCError(ERROR_INVALID_PARAMS, f"Invalid amount: {value!r}") from e
    if amount < 0:
        raise RPCError(ERROR_INVALID_PARAMS, f"Amount cannot be negative: {amount}")
    return amount


# ==============================================================================
# Auction Methods
# ==============================================================================

def set_auction_details(
    minter: "SettlementMinter",
    project_id: int,
    start_time: int,
    half_life_seconds: int,
    start_price: Union[int, str],
    base_price: Union[int, str]
) -> dict:
    params = minter.set_auction_details(
        project_id, start_time, half_life_seconds, _amount(start_price), _amount(base_price)
    )
    return params.to_dict()


def reset_auction_details(minter: "SettlementMinter", project_id: int) -> bool:
    minter.reset_auction_details(project_id)
    return True


def set_allowable_half_life_range(minter: "SettlementMinter", minimum: int, maximum: int) -> List[int]:
    minter.set_allowable_half_life_range(minimum, maximum)
    return list(minter.allowable_half_life_range())


def manually_limit_project_max_invocations(
    minter: "SettlementMinter",
    project_id: int,
    max_invocations: int
) -> dict:
    minter.manually_limit_project_max_invocations(project_id, max_invocations)
    return minter.max_invocations_project_config(project_id).to_dict()


# ==============================================================================
# Purchase Methods
# ==============================================================================

def purchase(
    minter: "SettlementMinter",
    project_id: int,
    buyer: str,
    payment: Union[int, str]
) -> dict:
    """
    Purchase one token.

    Returns:
        Token id and the price charged
    """
    token_id = minter.purchase(project_id, _address(buyer), _amount(payment))
    return {
        "tokenId": token_id,
        "latestPurchasePrice": minter.get_project_latest_purchase_price(project_id),
    }


def purchase_to(
    minter: "SettlementMinter",
    project_id: int,
    buyer: str,
    to: str,
    payment: Union[int, str]
) -> dict:
    token_id = minter.purchase_to(project_id, _address(buyer), _address(to), _amount(payment))
    return {
        "tokenId": token_id,
        "latestPurchasePrice": minter.get_project_latest_purchase_price(project_id),
    }


# ==============================================================================
# Settlement Methods
# ==============================================================================

def withdraw_artist_and_admin_revenues(minter: "SettlementMinter", project_id: int) -> dict:
    return minter.withdraw_artist_and_admin_revenues(project_id).to_dict()


def reclaim_project_excess_settlement_funds(
    minter: "SettlementMinter",
    project_id: int,
    buyer: str,
    to: Optional[str] = None
) -> dict:
    if to is None:
        amount = minter.reclaim_project_excess_settlement_funds(project_id, _address(buyer))
    else:
        amount = minter.reclaim_project_excess_settlement_funds_to(
            project_id, _address(buyer), _address(to)
        )
    return {"reclaimed": amount}


def reclaim_projects_excess_settlement_funds(
    minter: "SettlementMinter",
    project_ids: List[int],
    buyer: str,
    to: Optional[str] = None,
    core_contracts: Optional[List[str]] = None
) -> dict:
    contracts = None
    if core_contracts is not None:
        contracts = [_address(c) for c in core_contracts]

    if to is None:
        amount = minter.reclaim_projects_excess_settlement_funds(
            project_ids, _address(buyer), core_contracts=contracts
        )
    else:
        amount = minter.reclaim_projects_excess_settlement_funds_to(
            project_ids, _address(buyer), _address(to), core_contracts=contracts
        )
    return {"reclaimed": amount}


# ==============================================================================
# View Methods
# ==============================================================================

def get_price_info(minter: "SettlementMinter", project_id: int) -> dict:
    info = minter.get_price_info(project_id)
    return {
        "isConfigured": info.is_configured,
        "tokenPrice": info.token_price,
        "currencySymbol": info.currency_symbol,
    }


def project_auction_parameters(minter: "SettlementMinter", project_id: int) -> dict:
    return minter.project_auction_parameters(project_id).to_dict()


def get_project_latest_purchase_price(minter: "SettlementMinter", project_id: int) -> int:
    return minter.get_project_latest_purchase_price(project_id)


def get_num_settleable_invocations(minter: "SettlementMinter", project_id: int) -> int:
    return minter.get_num_settleable_invocations(project_id)


def get_project_excess_settlement_funds(
    minter: "SettlementMinter",
    project_id: int,
    buyer: str
) -> int:
    return minter.get_project_excess_settlement_funds(project_id, _address(buyer))


def get_receipt(minter: "SettlementMinter", project_id: int, buyer: str) -> dict:
    return minter.get_receipt(project_id, _address(buyer)).to_dict()


def max_invocations_project_config(minter: "SettlementMinter", project_id: int) -> dict:
    return minter.max_invocations_project_config(project_id).to_dict()


def allowable_half_life_range(minter: "SettlementMinter") -> List[int]:
    return list(minter.allowable_half_life_range())


def minter_type(minter: "SettlementMinter") -> str:
    return minter.minter_type()


# ==============================================================================
# Method Registry
# ==============================================================================

METHOD_REGISTRY = {
    # Auction
    "minter_setAuctionDetails": set_auction_details,
    "minter_resetAuctionDetails": reset_auction_details,
    "minter_setAllowablePriceDecayHalfLifeRangeSeconds": set_allowable_half_life_range,
    "minter_manuallyLimitProjectMaxInvocations": manually_limit_project_max_invocations,

    # Purchase
    "minter_purchase": purchase,
    "minter_purchaseTo": purchase_to,

    # Settlement
    "minter_withdrawArtistAndAdminRevenues": withdraw_artist_and_admin_revenues,
    "minter_reclaimProjectExcessSettlementFunds": reclaim_project_excess_settlement_funds,
    "minter_reclaimProjectsExcessSettlementFunds": reclaim_projects_excess_settlement_funds,

    # Views
    "minter_getPriceInfo": get_price_info,
    "minter_projectAuctionParameters": project_auction_parameters,
    "minter_getProjectLatestPurchasePrice": get_project_latest_purchase_price,
    "minter_getNumSettleableInvocations": get_num_settleable_invocations,
    "minter_getProjectExcessSettlementFunds": get_project_excess_settlement_funds,
    "minter_getReceipt": get_receipt,
    "minter_maxInvocationsProjectConfig": max_invocations_project_config,
    "minter_allowablePriceDecayHalfLifeRangeSeconds": allowable_half_life_range,
    "minter_minterType": minter_type,
}


def get_method(name: str):
    """Get method by name."""
    return METHOD_REGISTRY.get(name)


def list_methods() -> List[str]:
    """List all available methods."""
    return list(METHOD_REGISTRY.keys())


def dispatch(
    minter: "SettlementMinter",
    name: str,
    params: Optional[Union[Dict[str, Any], List[Any]]] = None
) -> Any:
    """
    Call a method by name.

    Raises:
        RPCError: unknown method, bad parameters, or a minter error
            (code is the minter ErrorCode value, data its to_dict())
    """
    method = get_method(name)
    if method is None:
        raise RPCError(ERROR_METHOD_NOT_FOUND, f"Method not found: {name}")

    params = params if params is not None else {}
    try:
        if isinstance(params, dict):
            bound = inspect.signature(method).bind(minter, **params)
        else:
            bound = inspect.signature(method).bind(minter, *params)
    except TypeError as e:
        raise RPCError(ERROR_INVALID_PARAMS, f"Invalid params for {name}: {e}") from e

    try:
        return method(*bound.args, **bound.kwargs)
    except DASettleError as e:
        logger.debug(f"{name} failed: {e}")
        raise RPCError(int(e.code), e.message, e.to_dict()) from e
