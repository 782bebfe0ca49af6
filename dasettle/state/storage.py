"""
Settlement Dutch Auction State Storage

SQLite persistence for minter state and treasury balances.

Monetary amounts are stored as decimal TEXT: wei values overflow
SQLite's 64-bit INTEGER above ~9.2 ether.
"""

from __future__ import annotations
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dasettle.core.state import (
    AuctionParameters,
    InvocationCache,
    MinterState,
    ProjectFlows,
    ProjectSettlementState,
    PurchaseReceipt,
)
from dasettle.core.types import Address
from dasettle.errors import StorageError
from dasettle.registry.memory import InMemoryRegistry, RegistryProject
from dasettle.state.accounts import AccountManager

logger = logging.getLogger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 2


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Global minter settings
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    minimum_half_life_seconds INTEGER NOT NULL,
    maximum_half_life_seconds INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

-- Auction parameters
CREATE TABLE IF NOT EXISTS auctions (
    project_id INTEGER PRIMARY KEY,
    start_time INTEGER NOT NULL,
    half_life_seconds INTEGER NOT NULL,
    start_price TEXT NOT NULL,
    base_price TEXT NOT NULL
);

-- Settlement state
CREATE TABLE IF NOT EXISTS settlements (
    project_id INTEGER PRIMARY KEY,
    latest_purchase_price TEXT NOT NULL,
    num_settleable_invocations INTEGER NOT NULL DEFAULT 0,
    revenues_collected INTEGER NOT NULL DEFAULT 0,
    clearing_price TEXT NOT NULL
);

-- Purchase receipts
CREATE TABLE IF NOT EXISTS receipts (
    project_id INTEGER NOT NULL,
    buyer BLOB NOT NULL,
    total_posted TEXT NOT NULL,
    num_purchases INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (project_id, buyer)
);

-- Invocation caches
CREATE TABLE IF NOT EXISTS invocation_caches (
    project_id INTEGER PRIMARY KEY,
    max_invocations INTEGER NOT NULL,
    max_has_been_invoked INTEGER NOT NULL DEFAULT 0,
    initialized INTEGER NOT NULL DEFAULT 0
);

-- Treasury flows
CREATE TABLE IF NOT EXISTS flows (
    project_id INTEGER PRIMARY KEY,
    collected TEXT NOT NULL,
    distributed TEXT NOT NULL,
    reclaimed TEXT NOT NULL
);

-- Value balances
CREATE TABLE IF NOT EXISTS balances (
    address BLOB PRIMARY KEY,
    balance TEXT NOT NULL
);

-- In-memory registry projects
CREATE TABLE IF NOT EXISTS registry_projects (
    project_id INTEGER PRIMARY KEY,
    artist BLOB NOT NULL,
    max_invocations INTEGER NOT NULL,
    invocations INTEGER NOT NULL DEFAULT 0,
    additional_payee BLOB,
    additional_payee_percentage INTEGER NOT NULL DEFAULT 0
);

-- In-memory registry token owners
CREATE TABLE IF NOT EXISTS registry_tokens (
    token_id INTEGER PRIMARY KEY,
    owner BLOB NOT NULL
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_receipts_buyer ON receipts(buyer);
"""

STATE_TABLES = ("auctions", "settlements", "receipts", "invocation_caches", "flows")
REGISTRY_TABLES = ("registry_projects", "registry_tokens")


@dataclass
class LedgerStorage:
    """
    SQLite-based minter storage.

    Provides persistent storage for:
    - Settings and auction parameters
    - Settlement state and receipts
    - Invocation caches and treasury flows
    - Value balances
    - Projects and tokens of an in-memory registry
    """
    db_path: str
    _conn: Optional[sqlite3.Connection] = None

    def __post_init__(self):
        self._conn = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        if self._conn is not None:
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(self.db_path, isolation_level=None)
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._init_schema()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open storage at {self.db_path}: {e}") from e

        logger.info(f"Connected to ledger storage: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self._conn.executescript(CREATE_TABLES_SQL)

        row = self._conn.execute(
            "SELECT value FROM schema_info WHERE key = 'version'"
        ).fetchone()

        if row is None:
            self._conn.execute(
                "INSERT INTO schema_info (key, value) VALUES ('version', ?)",
                (str(SCHEMA_VERSION),)
            )
        elif int(row[0]) != SCHEMA_VERSION:
            raise StorageError(
                f"Unsupported schema version {row[0]}, expected {SCHEMA_VERSION}"
            )

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Closed ledger storage")

    def __enter__(self) -> LedgerStorage:
        self.connect()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _ensure_connected(self) -> None:
        if self._conn is None:
            self.connect()

    # =========================================================================
    # Minter State
    # =========================================================================

    def save_state(
        self,
        state: MinterState,
        accounts: Optional[AccountManager] = None,
        registry: Optional[InMemoryRegistry] = None
    ) -> None:
        """Replace stored state (and balances and registry, if given) in one transaction."""
        self._ensure_connected()
        data = state.to_dict()

        try:
            self._conn.execute("BEGIN")
            for table in STATE_TABLES:
                self._conn.execute(f"DELETE FROM {table}")

            self._conn.execute(
                """INSERT INTO settings
                   (id, minimum_half_life_seconds, maximum_half_life_seconds, updated_at)
                   VALUES (1, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                    minimum_half_life_seconds = excluded.minimum_half_life_seconds,
                    maximum_half_life_seconds = excluded.maximum_half_life_seconds,
                    updated_at = excluded.updated_at""",
                (
                    state.minimum_half_life_seconds,
                    state.maximum_half_life_seconds,
                    int(time.time() * 1000),
                )
            )

            for pid, auction in data["auctions"].items():
                self._conn.execute(
                    "INSERT INTO auctions VALUES (?, ?, ?, ?, ?)",
                    (
                        int(pid),
                        auction["start_time"],
                        auction["price_decay_half_life_seconds"],
                        str(auction["start_price"]),
                        str(auction["base_price"]),
                    )
                )

            for pid, settlement in data["settlements"].items():
                self._conn.execute(
                    "INSERT INTO settlements VALUES (?, ?, ?, ?, ?)",
                    (
                        int(pid),
                        str(settlement["latest_purchase_price"]),
                        settlement["num_settleable_invocations"],
                        int(settlement["revenues_collected"]),
                        str(settlement["clearing_price"]),
                    )
                )

            for project_id, buyer, receipt in state.iter_receipts():
                self._conn.execute(
                    "INSERT INTO receipts VALUES (?, ?, ?, ?)",
                    (
                        project_id,
                        buyer.data,
                        str(receipt.total_posted),
                        receipt.num_purchases,
                    )
                )

            for pid, cache in data["invocations"].items():
                self._conn.execute(
                    "INSERT INTO invocation_caches VALUES (?, ?, ?, ?)",
                    (
                        int(pid),
                        cache["max_invocations"],
                        int(cache["max_has_been_invoked"]),
                        int(cache["initialized"]),
                    )
                )

            for pid, flows in data["flows"].items():
                self._conn.execute(
                    "INSERT INTO flows VALUES (?, ?, ?, ?)",
                    (
                        int(pid),
                        str(flows["collected"]),
                        str(flows["distributed"]),
                        str(flows["reclaimed"]),
                    )
                )

            if accounts is not None:
                self._save_balances(accounts)
            if registry is not None:
                self._save_registry(registry)

            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._conn.execute("ROLLBACK")
            raise StorageError(f"Failed to save state: {e}") from e

        logger.debug(f"Saved state for {len(state.project_ids())} projects")

    def load_state(self) -> MinterState:
        """Load minter state from database."""
        self._ensure_connected()
        state = MinterState()

        row = self._conn.execute(
            """SELECT minimum_half_life_seconds, maximum_half_life_seconds
               FROM settings WHERE id = 1"""
        ).fetchone()
        if row is not None:
            state.minimum_half_life_seconds = row[0]
            state.maximum_half_life_seconds = row[1]

        for row in self._conn.execute("SELECT * FROM auctions"):
            state.set_auction(row[0], AuctionParameters(
                start_time=row[1],
                price_decay_half_life_seconds=row[2],
                start_price=int(row[3]),
                base_price=int(row[4]),
            ))

        for row in self._conn.execute("SELECT * FROM settlements"):
            state.set_settlement(row[0], ProjectSettlementState(
                latest_purchase_price=int(row[1]),
                num_settleable_invocations=row[2],
                revenues_collected=bool(row[3]),
                clearing_price=int(row[4]),
            ))

        for row in self._conn.execute("SELECT * FROM receipts"):
            state.set_receipt(row[0], Address(bytes(row[1])), PurchaseReceipt(
                total_posted=int(row[2]),
                num_purchases=row[3],
            ))

        for row in self._conn.execute("SELECT * FROM invocation_caches"):
            state.set_invocation_cache(row[0], InvocationCache(
                max_invocations=row[1],
                max_has_been_invoked=bool(row[2]),
                initialized=bool(row[3]),
            ))

        for row in self._conn.execute("SELECT * FROM flows"):
            state.set_flows(row[0], ProjectFlows(
                collected=int(row[1]),
                distributed=int(row[2]),
                reclaimed=int(row[3]),
            ))

        return state

    # =========================================================================
    # Balances
    # =========================================================================

    def _save_balances(self, accounts: AccountManager) -> None:
        self._conn.execute("DELETE FROM balances")
        for address in accounts.get_all_addresses():
            self._conn.execute(
                "INSERT INTO balances VALUES (?, ?)",
                (address.data, str(accounts.get_balance(address)))
            )

    def load_accounts(self) -> AccountManager:
        """Load value balances into a fresh AccountManager."""
        self._ensure_connected()
        accounts = AccountManager()
        for row in self._conn.execute("SELECT address, balance FROM balances"):
            accounts.credit(Address(bytes(row[0])), int(row[1]))
        return accounts

    # =========================================================================
    # In-Memory Registry
    # =========================================================================

    def _save_registry(self, registry: InMemoryRegistry) -> None:
        for table in REGISTRY_TABLES:
            self._conn.execute(f"DELETE FROM {table}")

        for project in registry.projects():
            payee = project.additional_payee
            self._conn.execute(
                "INSERT INTO registry_projects VALUES (?, ?, ?, ?, ?, ?)",
                (
                    project.project_id,
                    project.artist.data,
                    project.max_invocations,
                    project.invocations,
                    payee.data if payee is not None else None,
                    project.additional_payee_percentage,
                )
            )

        for token_id, owner in registry.tokens().items():
            self._conn.execute(
                "INSERT INTO registry_tokens VALUES (?, ?)",
                (token_id, owner.data)
            )

    def load_registry(self, address: Address) -> InMemoryRegistry:
        """Load stored projects and tokens into a fresh InMemoryRegistry."""
        self._ensure_connected()
        registry = InMemoryRegistry(address=address)

        for row in self._conn.execute("SELECT * FROM registry_projects ORDER BY project_id"):
            registry.restore_project(RegistryProject(
                project_id=row[0],
                artist=Address(bytes(row[1])),
                max_invocations=row[2],
                invocations=row[3],
                additional_payee=Address(bytes(row[4])) if row[4] is not None else None,
                additional_payee_percentage=row[5],
            ))

        for row in self._conn.execute("SELECT token_id, owner FROM registry_tokens"):
            registry.restore_token(row[0], Address(bytes(row[1])))

        logger.debug(f"Loaded registry with {len(registry.projects())} projects")
        return registry

    # =========================================================================
    # Utility Operations
    # =========================================================================

    def get_schema_version(self) -> int:
        self._ensure_connected()
        row = self._conn.execute(
            "SELECT value FROM schema_info WHERE key = 'version'"
        ).fetchone()
        return int(row[0])

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics."""
        self._ensure_connected()
        stats = {}
        for table in STATE_TABLES + ("balances",) + REGISTRY_TABLES:
            stats[f"{table}_count"] = self._conn.execute(
                f"SELECT COUNT(*) FROM {table}"
            ).fetchone()[0]
        return stats
