"""
Tests for the error taxonomy.
"""

from yieldpilot.core.errors import (
    AllServicesUnavailableError,
    EncodeInvariantViolation,
    ErrorCategory,
    InsufficientBalanceError,
    NoRouteFoundError,
    RecoverableError,
    SubmissionError,
    UnrecoverableError,
    UpstreamTimeoutError,
    VenueUnavailableError,
    classify_error,
)


# =============================================================================
# Error Classification Tests
# =============================================================================

class TestErrorClassification:
    """Tests for error classification."""

    def test_insufficient_balance_carries_shortfall(self):
        error = InsufficientBalanceError(required="50", available="40", shortfall="10", asset="USDC", chain="base")

        assert error.category == ErrorCategory.INSUFFICIENT_FUNDS
        assert error.context.recoverable is True
        assert error.context.details["shortfall"] == "10"
        assert "short 10" in error.message

    def test_venue_unavailable(self):
        error = VenueUnavailableError("polygon", "morpho-v1", asset="USDC")

        assert error.code == "venue_unavailable"
        assert error.context.chain == "polygon"
        assert error.context.provider == "morpho-v1"

    def test_quote_errors_have_distinct_codes(self):
        assert NoRouteFoundError("x").code == "no_route_found"
        assert AllServicesUnavailableError("x").code == "all_services_unavailable"
        assert isinstance(NoRouteFoundError("x"), RecoverableError)

    def test_submission_error_is_unrecoverable(self):
        error = SubmissionError("nonce too low", action="supply", chain="base", venue="aave-v3")

        assert isinstance(error, UnrecoverableError)
        assert error.category == ErrorCategory.SUBMISSION
        assert error.context.details["venue"] == "aave-v3"

    def test_encode_violation_is_unrecoverable(self):
        error = EncodeInvariantViolation("bad length", selector="0x617ba037")
        assert error.context.recoverable is False
        assert error.context.category == ErrorCategory.ENCODING

    def test_context_to_dict(self):
        data = UpstreamTimeoutError("lifi quote", provider="lifi").context.to_dict()
        assert data["category"] == "timeout"
        assert data["code"] == "upstream_timeout"
        assert data["provider"] == "lifi"

    def test_classify_known_error(self):
        error = VenueUnavailableError("base", "aave-v3")
        assert classify_error(error) is error.context

    def test_classify_network_message(self):
        context = classify_error(Exception("Connection refused"))
        assert context.category == ErrorCategory.NETWORK
        assert context.recoverable is True

    def test_classify_timeout_message(self):
        context = classify_error(Exception("request timed out"))
        assert context.category == ErrorCategory.TIMEOUT

    def test_classify_unknown(self):
        context = classify_error(ValueError("boom"))
        assert context.category == ErrorCategory.UNKNOWN
        assert context.recoverable is False
