"""
Settlement Dutch Auction Minter Configuration
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional

from dasettle.constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_DB_NAME,
    DEFAULT_MAXIMUM_HALF_LIFE_SECONDS,
    DEFAULT_MINIMUM_HALF_LIFE_SECONDS,
    DEFAULT_NTP_SERVER,
    NTP_QUERY_TIMEOUT_SEC,
    REGISTRY_HTTP_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)

CLOCK_SOURCES = ("system", "ntp", "manual")


@dataclass
class AuctionConfig:
    """Allowable auction settings."""
    minimum_half_life_seconds: int = DEFAULT_MINIMUM_HALF_LIFE_SECONDS
    maximum_half_life_seconds: int = DEFAULT_MAXIMUM_HALF_LIFE_SECONDS
    currency_symbol: str = "ETH"
    currency_decimals: int = 18
    holder_gated: bool = False
    # Gated project id -> project ids whose holders may buy
    allowlist: Dict[int, List[int]] = field(default_factory=dict)


@dataclass
class RegistryConfig:
    """Registry collaborator configuration."""
    url: Optional[str] = None                   # None: in-memory registry
    address: str = "0x" + "00" * 19 + "01"
    timeout_sec: float = REGISTRY_HTTP_TIMEOUT_SEC


@dataclass
class ClockConfig:
    """Time source configuration."""
    source: str = "system"
    ntp_server: str = DEFAULT_NTP_SERVER
    ntp_timeout_sec: float = NTP_QUERY_TIMEOUT_SEC
    manual_time: int = 0                        # Start of a manual clock


@dataclass
class StorageConfig:
    """Storage configuration."""
    data_dir: str = DEFAULT_DATA_DIR
    db_name: str = DEFAULT_DB_NAME
    persist: bool = True


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class MinterConfig:
    """
    Complete minter configuration.

    All settings for running a settlement minter.
    """
    name: str = "dasettle-minter"

    # Sub-configurations
    auction: AuctionConfig = field(default_factory=AuctionConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    clock: ClockConfig = field(default_factory=ClockConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def data_path(self) -> Path:
        """Get data directory path."""
        return Path(self.storage.data_dir)

    @property
    def db_path(self) -> Path:
        """Get database file path."""
        return self.data_path / self.storage.db_name

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Auction validation
        if self.auction.minimum_half_life_seconds <= 0:
            errors.append("minimum_half_life_seconds must be positive")
        if self.auction.maximum_half_life_seconds <= self.auction.minimum_half_life_seconds:
            errors.append("maximum_half_life_seconds must be greater than minimum")
        if self.auction.currency_decimals < 0:
            errors.append("currency_decimals cannot be negative")
        if self.auction.holder_gated and not self.auction.allowlist:
            errors.append("holder_gated requires an allowlist")

        # Registry validation
        if self.registry.url is not None and not self.registry.url.startswith(("http://", "https://")):
            errors.append(f"Invalid registry URL: {self.registry.url}")
        if self.registry.timeout_sec <= 0:
            errors.append("registry timeout_sec must be positive")

        # Clock validation
        if self.clock.source not in CLOCK_SOURCES:
            errors.append(f"Invalid clock source: {self.clock.source}")
        if self.clock.manual_time < 0:
            errors.append("manual_time cannot be negative")

        # Storage validation
        if self.storage.persist and not self.storage.data_dir:
            errors.append("data_dir cannot be empty")

        # Log validation
        if self.log.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Invalid log level: {self.log.level}")

        return errors

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> MinterConfig:
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(name=data.get("name", "dasettle-minter"))

        if "auction" in data:
            auction = dict(data["auction"])
            # JSON object keys are strings
            auction["allowlist"] = {
                int(k): [int(p) for p in v] for k, v in auction.get("allowlist", {}).items()
            }
            config.auction = AuctionConfig(**auction)

        if "registry" in data:
            config.registry = RegistryConfig(**data["registry"])

        if "clock" in data:
            config.clock = ClockConfig(**data["clock"])

        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            "name": self.name,
            "auction": asdict(self.auction),
            "registry": asdict(self.registry),
            "clock": asdict(self.clock),
            "storage": asdict(self.storage),
            "log": asdict(self.log),
        }


def setup_logging(config: LogConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )
