"""
ABI word encoding for the fixed-shape calls used across venues.

Every call built here is a 4-byte selector followed by static 32-byte words,
so calldata length is always ``2 + 8 + 64 * n`` hex characters.
"""

from __future__ import annotations

import re

from eth_utils import keccak

from .errors import EncodeInvariantViolation

MAX_UINT256 = 2**256 - 1

# ERC-20
ERC20_APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
ERC20_BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ERC20_DECIMALS_SELECTOR = "0x313ce567"  # decimals()

_ADDRESS_RE = re.compile(r"^[0-9a-f]{40}$")
_HEX_RE = re.compile(r"^[0-9a-f]*$")


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def encode_address(address: str) -> str:
    """Encode an address as a 32-byte word (lower-case, no 0x prefix)."""
    addr = _strip_0x(address).lower()
    if not _ADDRESS_RE.match(addr):
        raise ValueError(f"Invalid address: {address}")
    return addr.rjust(64, "0")


def encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte big-endian word (no 0x prefix)."""
    if value < 0:
        raise ValueError("Value must be non-negative")
    if value > MAX_UINT256:
        raise ValueError("Value exceeds uint256")
    return format(value, "064x")


def selector_for(signature: str) -> str:
    """First four bytes of keccak256(signature), 0x-prefixed."""
    return "0x" + keccak(text=signature)[:4].hex()


def build_calldata(selector: str, *words: str) -> str:
    """Concatenate a selector with pre-encoded words."""
    return selector.lower() + "".join(words)


def check_calldata(data: str, selector: str, word_count: int) -> str:
    """Verify calldata starts with ``selector`` and carries exactly ``word_count`` words.

    Returns the calldata unchanged so callers can use it inline.

    Raises:
        EncodeInvariantViolation: on any mismatch
    """
    expected_length = 10 + 64 * word_count
    if not data.startswith("0x"):
        raise EncodeInvariantViolation("Calldata is missing its 0x prefix", selector=selector, data=data)
    if not _HEX_RE.match(data[2:]):
        raise EncodeInvariantViolation("Calldata contains non-hex or upper-case characters", selector=selector, data=data)
    if data[:10] != selector.lower():
        raise EncodeInvariantViolation(
            f"Calldata selector {data[:10]} does not match {selector}", selector=selector, data=data
        )
    if len(data) != expected_length:
        raise EncodeInvariantViolation(
            f"Calldata length {len(data)} does not match {word_count} words ({expected_length})",
            selector=selector,
            data=data,
        )
    return data


def calldata_words(data: str) -> list[str]:
    """Split calldata into its parameter words (selector excluded)."""
    body = _strip_0x(data)[8:]
    return [body[i:i + 64] for i in range(0, len(body), 64)]


def encode_approve(spender: str, amount: int) -> str:
    data = build_calldata(ERC20_APPROVE_SELECTOR, encode_address(spender), encode_uint256(amount))
    return check_calldata(data, ERC20_APPROVE_SELECTOR, 2)


def encode_allowance(owner: str, spender: str) -> str:
    return build_calldata(ERC20_ALLOWANCE_SELECTOR, encode_address(owner), encode_address(spender))


def encode_balance_of(owner: str) -> str:
    return build_calldata(ERC20_BALANCE_OF_SELECTOR, encode_address(owner))
