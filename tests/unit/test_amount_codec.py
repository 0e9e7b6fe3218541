"""
Tests for the amount codec.

Covers:
- Scaling decimal strings by token decimals
- Truncation of excess fractional digits
- Distinct error kinds for empty, negative, non-numeric and non-finite input
- Withdraw-all sentinels
- Exact formatting back to decimal strings
"""

import pytest

from yieldpilot.core.amounts import format_raw_amount, is_withdraw_all, to_raw_amount
from yieldpilot.core.errors import (
    AmountError,
    EmptyAmountError,
    NegativeAmountError,
    NonFiniteAmountError,
    NotANumberError,
    RecoverableError,
)


# =============================================================================
# Parsing
# =============================================================================

class TestToRawAmount:
    """Tests for to_raw_amount."""

    def test_whole_usdc_amount(self):
        assert to_raw_amount("100", 6) == 100_000_000

    def test_whole_eighteen_decimal_amount(self):
        assert to_raw_amount("500", 18) == 500 * 10**18

    def test_fractional_amount(self):
        assert to_raw_amount("0.5", 6) == 500_000
        assert to_raw_amount("1.000001", 6) == 1_000_001

    def test_excess_digits_truncate(self):
        """Digits past the token's precision are dropped, never rounded up."""
        assert to_raw_amount("1.23456789", 6) == 1_234_567
        assert to_raw_amount("0.0000009", 6) == 0

    def test_leading_and_trailing_dot(self):
        assert to_raw_amount(".5", 6) == 500_000
        assert to_raw_amount("5.", 6) == 5_000_000

    def test_surrounding_whitespace_is_ignored(self):
        assert to_raw_amount("  42 ", 6) == 42_000_000

    def test_zero_is_accepted(self):
        assert to_raw_amount("0", 6) == 0
        assert to_raw_amount("0.000", 18) == 0

    def test_zero_decimals(self):
        assert to_raw_amount("7", 0) == 7
        assert to_raw_amount("7.9", 0) == 7

    def test_large_amount_is_exact(self):
        """No float rounding on amounts past 2**53."""
        assert to_raw_amount("123456789012345678.123456789012345678", 18) == 123456789012345678123456789012345678


class TestAmountErrors:
    """Each malformed input yields its own error kind."""

    def test_empty(self):
        with pytest.raises(EmptyAmountError) as exc_info:
            to_raw_amount("", 6)
        assert exc_info.value.code == "empty_amount"

    def test_blank(self):
        with pytest.raises(EmptyAmountError):
            to_raw_amount("   ", 6)

    def test_negative(self):
        with pytest.raises(NegativeAmountError) as exc_info:
            to_raw_amount("-100", 6)
        assert exc_info.value.code == "negative"

    def test_not_a_number(self):
        with pytest.raises(NotANumberError) as exc_info:
            to_raw_amount("abc", 6)
        assert exc_info.value.code == "not_a_number"

    @pytest.mark.parametrize("text", ["1e6", "1,000", "1.2.3", ".", "0x10", "١٢"])
    def test_other_non_decimal_forms(self, text):
        with pytest.raises(NotANumberError):
            to_raw_amount(text, 6)

    @pytest.mark.parametrize("text", ["inf", "Infinity", "NaN", "-inf", "+inf"])
    def test_non_finite(self, text):
        with pytest.raises(NonFiniteAmountError) as exc_info:
            to_raw_amount(text, 6)
        assert exc_info.value.code == "non_finite"

    def test_error_kinds_are_distinct(self):
        codes = set()
        for text in ("", "-100", "abc", "inf"):
            with pytest.raises(AmountError) as exc_info:
                to_raw_amount(text, 6)
            codes.add(exc_info.value.code)
        assert codes == {"empty_amount", "negative", "not_a_number", "non_finite"}

    def test_amount_errors_are_recoverable(self):
        with pytest.raises(RecoverableError) as exc_info:
            to_raw_amount("abc", 6)
        assert exc_info.value.context.recoverable is True
        assert exc_info.value.context.suggested_action

    def test_invalid_decimals(self):
        with pytest.raises(ValueError):
            to_raw_amount("1", -1)
        with pytest.raises(ValueError):
            to_raw_amount("1", 256)


# =============================================================================
# Sentinels and formatting
# =============================================================================

class TestWithdrawAll:

    @pytest.mark.parametrize("text", ["max", "MAX", "all", " All "])
    def test_sentinels(self, text):
        assert is_withdraw_all(text) is True

    @pytest.mark.parametrize("text", ["100", "", "maximum", None])
    def test_non_sentinels(self, text):
        assert is_withdraw_all(text) is False


class TestFormatRawAmount:

    def test_whole(self):
        assert format_raw_amount(10_000_000, 6) == "10"

    def test_fraction_strips_trailing_zeros(self):
        assert format_raw_amount(1_500_000, 6) == "1.5"

    def test_small_fraction(self):
        assert format_raw_amount(1, 18) == "0.000000000000000001"

    def test_zero(self):
        assert format_raw_amount(0, 6) == "0"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            format_raw_amount(-1, 6)

    def test_parse_of_formatted_value_is_stable(self):
        assert to_raw_amount(format_raw_amount(123_456_789, 6), 6) == 123_456_789
