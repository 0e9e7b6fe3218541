"""
Amount codec.

Turns human decimal strings into raw token integers and back. Everything is
done on decimal digits and Python ints; floats never touch an amount.
"""

from __future__ import annotations

import re

from .errors import (
    EmptyAmountError,
    NegativeAmountError,
    NonFiniteAmountError,
    NotANumberError,
)

__all__ = [
    "WITHDRAW_ALL_SENTINELS",
    "format_raw_amount",
    "is_withdraw_all",
    "to_raw_amount",
]

WITHDRAW_ALL_SENTINELS = frozenset({"max", "all"})

_DECIMAL_RE = re.compile(r"^([0-9]*)(?:\.([0-9]*))?$")
_NON_FINITE = frozenset({"inf", "+inf", "infinity", "+infinity", "nan", "+nan"})
_MAX_DECIMALS = 255


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise ValueError(f"decimals must be an int, got {type(decimals).__name__}")
    if not 0 <= decimals <= _MAX_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {_MAX_DECIMALS}, got {decimals}")


def to_raw_amount(amount: str, decimals: int) -> int:
    """Parse a human amount into the token's smallest unit.

    The fractional part is padded to ``decimals`` digits, and digits past
    ``decimals`` are dropped (truncated, never rounded).

    >>> to_raw_amount("100", 6)
    100000000
    >>> to_raw_amount("1.23456789", 6)
    1234567

    Raises:
        EmptyAmountError: blank input
        NegativeAmountError: leading ``-``
        NonFiniteAmountError: ``inf`` / ``nan`` spellings
        NotANumberError: anything else that is not a plain decimal
    """
    _check_decimals(decimals)
    if amount is None:
        raise EmptyAmountError("")

    text = str(amount).strip()
    if not text:
        raise EmptyAmountError(str(amount))
    if text.startswith("-"):
        if text[1:].strip().lower() in _NON_FINITE:
            raise NonFiniteAmountError(text)
        raise NegativeAmountError(text)
    if text.lower() in _NON_FINITE:
        raise NonFiniteAmountError(text)

    match = _DECIMAL_RE.match(text)
    if match is None:
        raise NotANumberError(text)
    whole, fraction = match.group(1), match.group(2) or ""
    if not whole and not fraction:
        raise NotANumberError(text)

    fraction = fraction.ljust(decimals, "0")[:decimals]
    digits = (whole + fraction).lstrip("0")
    return int(digits) if digits else 0


def is_withdraw_all(amount: str) -> bool:
    """True when ``amount`` is the withdraw-everything sentinel (max/all)."""
    if amount is None:
        return False
    return str(amount).strip().lower() in WITHDRAW_ALL_SENTINELS


def format_raw_amount(raw: int, decimals: int) -> str:
    """Render a raw integer as an exact decimal string.

    >>> format_raw_amount(10_000_000, 6)
    '10'
    >>> format_raw_amount(1_500_000, 6)
    '1.5'
    """
    _check_decimals(decimals)
    if raw < 0:
        raise ValueError("raw amount must be non-negative")
    if decimals == 0:
        return str(raw)
    whole, fraction = divmod(raw, 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_text}" if fraction_text else str(whole)
