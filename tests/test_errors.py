"""
Tests for error handling
"""

from dasettle.errors import (
    AuctionNotStartedError,
    CapacityError,
    DASettleError,
    ErrorCode,
    LifecycleError,
    MaximumInvocationsReachedError,
    NeedMoreValueError,
    OnlyConfiguredAuctionsError,
    PaymentError,
    PaymentFailedError,
    ZeroBasePriceError,
)


class TestErrors:
    """Test error codes and serialization."""

    def test_to_dict(self):
        """Errors serialize with code, name, message and details."""
        error = NeedMoreValueError(1, 2)
        data = error.to_dict()
        assert data["code"] == 5001
        assert data["name"] == "NEED_MORE_VALUE"
        assert data["details"] == {"payment": 1, "price": 2}
        assert "1 < 2" in data["message"]

    def test_no_details(self):
        """Errors without details omit the key."""
        assert "details" not in ZeroBasePriceError().to_dict()

    def test_str_includes_code(self):
        """String form leads with the code."""
        assert str(ZeroBasePriceError()).startswith("[2004]")

    def test_categories(self):
        """Errors group by category."""
        assert isinstance(MaximumInvocationsReachedError(0, 1, 1), CapacityError)
        assert isinstance(PaymentFailedError("Artist", "0x", 1), PaymentError)
        assert isinstance(OnlyConfiguredAuctionsError(0), LifecycleError)
        assert isinstance(ZeroBasePriceError(), DASettleError)

    def test_not_started_code(self):
        """Not-started keeps its own code under the configured-auction type."""
        error = AuctionNotStartedError(100, 50)
        assert isinstance(error, OnlyConfiguredAuctionsError)
        assert error.code == ErrorCode.AUCTION_NOT_STARTED
        assert error.details == {"start_time": 100, "now": 50}

    def test_payment_failure_names_role(self):
        """Payment failures name the role in the message."""
        assert PaymentFailedError("Render Provider", "0x", 1).message == "Render Provider payment failed"

    def test_codes_unique(self):
        """Every error code value is distinct."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))
