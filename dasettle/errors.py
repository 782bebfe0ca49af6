"""
Settlement Dutch Auction Error Handling

All error codes and exception classes.
"""

from enum import IntEnum
from typing import Optional, Any


class ErrorCode(IntEnum):
    """Minter error codes."""

    # 1xxx - General errors
    UNKNOWN_ERROR = 1000
    INVALID_PARAMETER = 1001
    INTERNAL_ERROR = 1002

    # 2xxx - Configuration errors
    HALF_LIFE_OUT_OF_RANGE = 2001
    ONLY_FUTURE_AUCTIONS = 2002
    INVALID_PRICES = 2003
    ZERO_BASE_PRICE = 2004
    ONLY_DECREASING_PRICE = 2005
    INVALID_HALF_LIFE_RANGE = 2006
    ZERO_HALF_LIFE = 2007

    # 3xxx - Lifecycle errors
    ONLY_CONFIGURED_AUCTIONS = 3001
    AUCTION_NOT_STARTED = 3002
    MID_AUCTION_MODIFICATION = 3003
    AUCTION_NOT_CONFIGURED = 3004
    REVENUES_ALREADY_COLLECTED = 3005
    ACTIVE_AUCTION_NOT_SOLD_OUT = 3006
    HOLDER_REQUIRED = 3007

    # 4xxx - Capacity errors
    MAXIMUM_INVOCATIONS_REACHED = 4001
    INVALID_MAX_INVOCATIONS = 4002
    MAX_INVOCATIONS_TERMINAL = 4003
    ONLY_BEFORE_PURCHASES = 4004

    # 5xxx - Payment errors
    NEED_MORE_VALUE = 5001
    PAYMENT_FAILED = 5002
    RECLAIMING_FAILED = 5003
    INSUFFICIENT_BALANCE = 5004
    INVALID_SPLIT_CONFIG = 5005

    # 6xxx - Ledger errors
    NO_PURCHASES_MADE = 6001
    NO_CLAIM_TO_ZERO_ADDRESS = 6002
    ARRAY_LENGTH_MISMATCH = 6003
    ZERO_ADDRESS = 6004
    REENTRANT_CALL = 6005

    # 7xxx - Collaborator errors
    REGISTRY_UNAVAILABLE = 7001
    UNKNOWN_PROJECT = 7002
    UNKNOWN_REGISTRY = 7003
    CLOCK_UNAVAILABLE = 7004
    STORAGE_ERROR = 7005


class DASettleError(Exception):
    """Base exception for all minter errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        result = {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


class ConfigurationError(DASettleError):
    """Rejected auction or minter configuration. Raised before any mutation."""


class LifecycleError(DASettleError):
    """Operation not allowed in the current auction state."""


class CapacityError(DASettleError):
    """Invocation cap related rejection."""


class PaymentError(DASettleError):
    """Insufficient payment or failed value transfer."""


class LedgerError(DASettleError):
    """Rejected settlement ledger operation. Raised before any mutation."""


class CollaboratorError(DASettleError):
    """Failure of an external collaborator (registry, clock, storage)."""


# ==============================================================================
# General Errors (1xxx)
# ==============================================================================

class InvalidParameterError(DASettleError):
    def __init__(self, param: str, message: str = ""):
        msg = f"Invalid parameter: {param}"
        if message:
            msg += f" - {message}"
        super().__init__(ErrorCode.INVALID_PARAMETER, msg, {"parameter": param})


class InternalError(DASettleError):
    def __init__(self, message: str = "Internal error", details: Any = None):
        super().__init__(ErrorCode.INTERNAL_ERROR, message, details)


# ==============================================================================
# Configuration Errors (2xxx)
# ==============================================================================

class HalfLifeOutOfRangeError(ConfigurationError):
    def __init__(self, half_life: int, minimum: int, maximum: int):
        super().__init__(
            ErrorCode.HALF_LIFE_OUT_OF_RANGE,
            f"Price decay half life must fall between min and max allowable values: "
            f"{half_life} not in [{minimum}, {maximum}]",
            {"half_life": half_life, "minimum": minimum, "maximum": maximum}
        )


class OnlyFutureAuctionsError(ConfigurationError):
    def __init__(self, start_time: int, now: int):
        super().__init__(
            ErrorCode.ONLY_FUTURE_AUCTIONS,
            f"Only future auctions: start {start_time} <= now {now}",
            {"start_time": start_time, "now": now}
        )


class InvalidPricesError(ConfigurationError):
    def __init__(self, start_price: int, base_price: int):
        super().__init__(
            ErrorCode.INVALID_PRICES,
            f"Auction start price must be greater than base price: "
            f"{start_price} <= {base_price}",
            {"start_price": start_price, "base_price": base_price}
        )


class ZeroBasePriceError(ConfigurationError):
    def __init__(self):
        super().__init__(ErrorCode.ZERO_BASE_PRICE, "Base price must be non-zero")


class OnlyDecreasingPriceError(ConfigurationError):
    def __init__(self, start_price: int, latest_purchase_price: int):
        super().__init__(
            ErrorCode.ONLY_DECREASING_PRICE,
            f"Start price must not exceed latest purchase price of unsettled "
            f"purchases: {start_price} > {latest_purchase_price}",
            {"start_price": start_price, "latest_purchase_price": latest_purchase_price}
        )


class InvalidHalfLifeRangeError(ConfigurationError):
    def __init__(self, minimum: int, maximum: int):
        super().__init__(
            ErrorCode.INVALID_HALF_LIFE_RANGE,
            f"Maximum half life must be greater than minimum: {maximum} <= {minimum}",
            {"minimum": minimum, "maximum": maximum}
        )


class ZeroHalfLifeError(ConfigurationError):
    def __init__(self):
        super().__init__(ErrorCode.ZERO_HALF_LIFE, "Half life of zero not allowed")


# ==============================================================================
# Lifecycle Errors (3xxx)
# ==============================================================================

class OnlyConfiguredAuctionsError(LifecycleError):
    def __init__(self, project_id: int, message: str = ""):
        super().__init__(
            ErrorCode.ONLY_CONFIGURED_AUCTIONS,
            message or f"Only configured auctions: project {project_id}",
            {"project_id": project_id}
        )


class AuctionNotStartedError(OnlyConfiguredAuctionsError):
    def __init__(self, start_time: int, now: int):
        DASettleError.__init__(
            self,
            ErrorCode.AUCTION_NOT_STARTED,
            f"Auction not yet started: now {now} < start {start_time}",
            {"start_time": start_time, "now": now}
        )


class MidAuctionModificationError(LifecycleError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.MID_AUCTION_MODIFICATION,
            f"No modifications mid-auction: project {project_id}",
            {"project_id": project_id}
        )


class AuctionNotConfiguredError(LifecycleError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.AUCTION_NOT_CONFIGURED,
            f"Auction must be configured: project {project_id}",
            {"project_id": project_id}
        )


class RevenuesAlreadyCollectedError(LifecycleError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.REVENUES_ALREADY_COLLECTED,
            f"Revenues already collected: project {project_id}",
            {"project_id": project_id}
        )


class ActiveAuctionNotSoldOutError(LifecycleError):
    def __init__(self, project_id: int, price: int, base_price: int):
        super().__init__(
            ErrorCode.ACTIVE_AUCTION_NOT_SOLD_OUT,
            f"Active auction not yet sold out: project {project_id}, "
            f"price {price} > base {base_price}",
            {"project_id": project_id, "price": price, "base_price": base_price}
        )


class HolderRequiredError(LifecycleError):
    def __init__(self, project_id: int, buyer: str):
        super().__init__(
            ErrorCode.HOLDER_REQUIRED,
            f"Only allowlisted token holders may purchase: project {project_id}",
            {"project_id": project_id, "buyer": buyer}
        )


# ==============================================================================
# Capacity Errors (4xxx)
# ==============================================================================

class MaximumInvocationsReachedError(CapacityError):
    def __init__(self, project_id: int, invocations: int, max_invocations: int):
        super().__init__(
            ErrorCode.MAXIMUM_INVOCATIONS_REACHED,
            f"Maximum invocations reached: project {project_id} "
            f"({invocations}/{max_invocations})",
            {
                "project_id": project_id,
                "invocations": invocations,
                "max_invocations": max_invocations,
            }
        )


class InvalidMaxInvocationsError(CapacityError):
    def __init__(self, value: int, invocations: int, authoritative_max: int):
        super().__init__(
            ErrorCode.INVALID_MAX_INVOCATIONS,
            f"Max invocations must be between current invocations and registry "
            f"max: {value} not in [{invocations}, {authoritative_max}]",
            {
                "value": value,
                "invocations": invocations,
                "authoritative_max": authoritative_max,
            }
        )


class MaxInvocationsTerminalError(CapacityError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.MAX_INVOCATIONS_TERMINAL,
            f"Max invocations already reached, cap can no longer change: "
            f"project {project_id}",
            {"project_id": project_id}
        )


class OnlyBeforePurchasesError(CapacityError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.ONLY_BEFORE_PURCHASES,
            f"Only before purchases: project {project_id} has settleable purchases",
            {"project_id": project_id}
        )


# ==============================================================================
# Payment Errors (5xxx)
# ==============================================================================

class NeedMoreValueError(PaymentError):
    def __init__(self, payment: int, price: int):
        super().__init__(
            ErrorCode.NEED_MORE_VALUE,
            f"Must send minimum value to mint: {payment} < {price}",
            {"payment": payment, "price": price}
        )


class PaymentFailedError(PaymentError):
    def __init__(self, role_label: str, recipient: str, amount: int):
        super().__init__(
            ErrorCode.PAYMENT_FAILED,
            f"{role_label} payment failed",
            {"role": role_label, "recipient": recipient, "amount": amount}
        )


class ReclaimingFailedError(PaymentError):
    def __init__(self, recipient: str, amount: int):
        super().__init__(
            ErrorCode.RECLAIMING_FAILED,
            "Reclaiming failed",
            {"recipient": recipient, "amount": amount}
        )


class InsufficientBalanceError(PaymentError):
    def __init__(self, account: str, balance: int, amount: int):
        super().__init__(
            ErrorCode.INSUFFICIENT_BALANCE,
            f"Insufficient balance: {balance} < {amount}",
            {"account": account, "balance": balance, "amount": amount}
        )


class InvalidSplitConfigError(PaymentError):
    def __init__(self, project_id: int, reason: str):
        super().__init__(
            ErrorCode.INVALID_SPLIT_CONFIG,
            f"Invalid revenue split configuration for project {project_id}: {reason}",
            {"project_id": project_id, "reason": reason}
        )


# ==============================================================================
# Ledger Errors (6xxx)
# ==============================================================================

class NoPurchasesMadeError(LedgerError):
    def __init__(self, project_id: int, buyer: str):
        super().__init__(
            ErrorCode.NO_PURCHASES_MADE,
            f"No purchases made by this address: project {project_id}",
            {"project_id": project_id, "buyer": buyer}
        )


class NoClaimToZeroAddressError(LedgerError):
    def __init__(self):
        super().__init__(ErrorCode.NO_CLAIM_TO_ZERO_ADDRESS, "No claiming to the zero address")


class ArrayLengthMismatchError(LedgerError):
    def __init__(self, projects: int, core_contracts: int):
        super().__init__(
            ErrorCode.ARRAY_LENGTH_MISMATCH,
            f"Array lengths must match: {projects} projects, {core_contracts} core contracts",
            {"projects": projects, "core_contracts": core_contracts}
        )


class ZeroAddressError(LedgerError):
    def __init__(self, param: str = "address"):
        super().__init__(
            ErrorCode.ZERO_ADDRESS,
            f"No zero address: {param}",
            {"parameter": param}
        )


class ReentrantCallError(LedgerError):
    def __init__(self, region: str):
        super().__init__(
            ErrorCode.REENTRANT_CALL,
            f"Reentrant call into guarded region: {region}",
            {"region": region}
        )


# ==============================================================================
# Collaborator Errors (7xxx)
# ==============================================================================

class RegistryUnavailableError(CollaboratorError):
    def __init__(self, url: str, reason: str):
        super().__init__(
            ErrorCode.REGISTRY_UNAVAILABLE,
            f"Registry unavailable at {url}: {reason}",
            {"url": url, "reason": reason}
        )


class UnknownProjectError(CollaboratorError):
    def __init__(self, project_id: int):
        super().__init__(
            ErrorCode.UNKNOWN_PROJECT,
            f"Unknown project: {project_id}",
            {"project_id": project_id}
        )


class UnknownRegistryError(CollaboratorError):
    def __init__(self, core_contract: str):
        super().__init__(
            ErrorCode.UNKNOWN_REGISTRY,
            f"Core contract is not served by this minter: {core_contract}",
            {"core_contract": core_contract}
        )


class ClockUnavailableError(CollaboratorError):
    def __init__(self, server: str, reason: str):
        super().__init__(
            ErrorCode.CLOCK_UNAVAILABLE,
            f"Time source {server} unavailable: {reason}",
            {"server": server, "reason": reason}
        )


class StorageError(CollaboratorError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.STORAGE_ERROR, message, details)
