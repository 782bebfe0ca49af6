"""
Settlement Dutch Auction Constants

All minter constants defined here for single source of truth.
"""

from typing import Final, List

# ==============================================================================
# MINTER IDENTITY
# ==============================================================================

MINTER_TYPE: Final[str] = "MinterDAExpSettlementV3"
MINTER_VERSION: Final[str] = "v3.0.0"

# ==============================================================================
# UNITS
# ==============================================================================

ONE_ETHER: Final[int] = 10**18                  # Smallest units per ether (wei)
ONE_GWEI: Final[int] = 10**9
ONE_MINUTE: Final[int] = 60
ONE_HOUR: Final[int] = 3600
ONE_DAY: Final[int] = 86400

# ==============================================================================
# AUCTION CONSTANTS
# ==============================================================================

# Allowable price decay half-life range (seconds)
DEFAULT_MINIMUM_HALF_LIFE_SECONDS: Final[int] = 45
DEFAULT_MAXIMUM_HALF_LIFE_SECONDS: Final[int] = 3600

# Upper bound on halvings before the shifted price is always zero
MAX_PRICE_HALVINGS: Final[int] = 256

# ==============================================================================
# REGISTRY CONSTANTS
# ==============================================================================

# Token ids are project * ONE_MILLION + invocation
ONE_MILLION: Final[int] = 1_000_000
REGISTRY_HARD_CAP: Final[int] = ONE_MILLION     # Items per project, never exceeded

ADDRESS_SIZE: Final[int] = 20                   # Bytes

# ==============================================================================
# REVENUE SPLIT CONSTANTS
# ==============================================================================

PERCENT_TOTAL: Final[int] = 100

ROLE_RENDER_PROVIDER: Final[str] = "render_provider"
ROLE_PLATFORM_PROVIDER: Final[str] = "platform_provider"
ROLE_ARTIST: Final[str] = "artist"
ROLE_ADDITIONAL_PAYEE: Final[str] = "additional_payee"

# Payout order is fixed
SPLIT_ROLE_ORDER: Final[List[str]] = [
    ROLE_RENDER_PROVIDER,
    ROLE_PLATFORM_PROVIDER,
    ROLE_ARTIST,
    ROLE_ADDITIONAL_PAYEE,
]

# Human-readable names used in payment failure messages
SPLIT_ROLE_LABELS: Final[dict] = {
    ROLE_RENDER_PROVIDER: "Render Provider",
    ROLE_PLATFORM_PROVIDER: "Platform Provider",
    ROLE_ARTIST: "Artist",
    ROLE_ADDITIONAL_PAYEE: "Additional Payee",
}

# ==============================================================================
# NETWORK / TIME CONSTANTS
# ==============================================================================

DEFAULT_NTP_SERVER: Final[str] = "time.nist.gov"
NTP_QUERY_TIMEOUT_SEC: Final[float] = 2.0
REGISTRY_HTTP_TIMEOUT_SEC: Final[float] = 5.0

# ==============================================================================
# STORAGE CONSTANTS
# ==============================================================================

DEFAULT_DATA_DIR: Final[str] = "./data"
DEFAULT_DB_NAME: Final[str] = "dasettle_state.db"
