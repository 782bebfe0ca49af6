"""
Tests for time sources
"""

import time

import ntplib
import pytest

from dasettle.clock import Clock, ManualClock, NtpClock, SystemClock
from dasettle.errors import ClockUnavailableError, InvalidParameterError


class FakeNtpResponse:
    def __init__(self, offset):
        self.offset = offset


class FakeNtpClient:
    def __init__(self, offset=0.0, error=None):
        self.offset = offset
        self.error = error
        self.calls = 0

    def request(self, host, version=4, timeout=5):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return FakeNtpResponse(self.offset)


class TestManualClock:
    """Test ManualClock."""

    def test_advance_and_set(self):
        """Manual time only moves forward."""
        clock = ManualClock(now=100)
        assert clock.advance(50) == 150
        clock.set(200)
        assert clock.now() == 200

    def test_no_backwards(self):
        """Time cannot go backwards."""
        clock = ManualClock(now=100)
        with pytest.raises(InvalidParameterError):
            clock.set(99)
        with pytest.raises(InvalidParameterError):
            clock.advance(-1)

    def test_is_clock(self):
        """Clocks satisfy the protocol."""
        assert isinstance(ManualClock(), Clock)
        assert isinstance(SystemClock(), Clock)


class TestSystemClock:
    """Test SystemClock."""

    def test_wall_time(self):
        """System clock follows time.time()."""
        assert abs(SystemClock().now() - time.time()) < 5


class TestNtpClock:
    """Test NtpClock."""

    def test_offset_applied(self):
        """Reported offset is added to wall time."""
        client = FakeNtpClient(offset=3600.0)
        clock = NtpClock(server="ntp.test", client=client)
        assert clock.offset is None
        assert abs(clock.now() - (time.time() + 3600)) < 5
        assert clock.offset == 3600.0

    def test_lazy_single_sync(self):
        """The server is queried once until resync."""
        client = FakeNtpClient(offset=1.0)
        clock = NtpClock(server="ntp.test", client=client)
        clock.now()
        clock.now()
        assert client.calls == 1
        clock.resync()
        assert client.calls == 2

    def test_ntp_failure(self):
        """NTP errors map to ClockUnavailableError."""
        clock = NtpClock(server="ntp.test", client=FakeNtpClient(error=ntplib.NTPException("no response")))
        with pytest.raises(ClockUnavailableError):
            clock.now()

    def test_socket_failure(self):
        """Network errors map to ClockUnavailableError."""
        clock = NtpClock(server="ntp.test", client=FakeNtpClient(error=OSError("unreachable")))
        with pytest.raises(ClockUnavailableError):
            clock.resync()
