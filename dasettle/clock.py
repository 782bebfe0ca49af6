"""
Settlement Dutch Auction Time Sources

Auction pricing is driven by Unix-second timestamps supplied by a
clock. ManualClock is used in tests and simulations.
"""

from __future__ import annotations
import logging
import time
from typing import Optional, Protocol, runtime_checkable

import ntplib

from dasettle.constants import DEFAULT_NTP_SERVER, NTP_QUERY_TIMEOUT_SEC
from dasettle.errors import ClockUnavailableError, InvalidParameterError

logger = logging.getLogger(__name__)


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current Unix time in whole seconds."""
        ...


class SystemClock:
    """Local wall clock."""

    def now(self) -> int:
        return int(time.time())


class NtpClock:
    """
    Wall clock corrected by the offset reported by an NTP server.

    The offset is measured on first use and again after resync().
    """

    def __init__(
        self,
        server: str = DEFAULT_NTP_SERVER,
        timeout: float = NTP_QUERY_TIMEOUT_SEC,
        client: Optional[ntplib.NTPClient] = None
    ):
        self.server = server
        self.timeout = timeout
        self._client = client or ntplib.NTPClient()
        self._offset: Optional[float] = None

    @property
    def offset(self) -> Optional[float]:
        return self._offset

    def resync(self) -> float:
        """
        Query the server and store its clock offset.

        Raises:
            ClockUnavailableError: server unreachable or bad response
        """
        try:
            response = self._client.request(self.server, version=4, timeout=self.timeout)
        except (ntplib.NTPException, OSError) as e:
            logger.warning(f"NTP query to {self.server} failed: {e}")
            raise ClockUnavailableError(self.server, str(e)) from e

        self._offset = response.offset
        logger.debug(f"NTP offset from {self.server}: {self._offset:.3f}s")
        return self._offset

    def now(self) -> int:
        if self._offset is None:
            self.resync()
        return int(time.time() + self._offset)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: int = 0):
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int):
        if timestamp < self._now:
            raise InvalidParameterError("timestamp", "clock cannot move backwards")
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise InvalidParameterError("seconds", "must be non-negative")
        self._now += seconds
        return self._now
