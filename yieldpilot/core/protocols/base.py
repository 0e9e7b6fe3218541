"""Value objects and the adapter interface shared by every lending venue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable

from ..amounts import is_withdraw_all, to_raw_amount
from ..encoding import MAX_UINT256, check_calldata
from ..tokens import KNOWN_TOKENS


@dataclass(frozen=True)
class SupplyRequest:
    """Deposit ``amount`` of ``asset`` for ``on_behalf_of`` on ``chain``.

    ``pool_symbol`` optionally names a specific market or vault (e.g. a
    Compound market symbol or a Morpho vault symbol).
    """

    asset: str
    amount: str
    decimals: int
    on_behalf_of: str
    chain: str
    pool_symbol: Optional[str] = None


@dataclass(frozen=True)
class WithdrawRequest:
    """Withdraw ``amount`` (or ``"max"``/``"all"``) of ``asset`` to ``recipient``."""

    asset: str
    amount: str
    decimals: int
    recipient: str
    chain: str
    pool_symbol: Optional[str] = None

    @property
    def is_max(self) -> bool:
        return is_withdraw_all(self.amount)


@dataclass(frozen=True)
class EncodedCall:
    """Destination, calldata and the raw amount that was encoded into it."""

    to: str
    data: str
    amount_raw: int
    function: str = ""
    expected_selector: str = ""
    word_count: int = 0

    @property
    def selector(self) -> str:
        return self.data[:10]

    @property
    def is_max(self) -> bool:
        return self.amount_raw == MAX_UINT256

    def verify(self) -> "EncodedCall":
        """Re-run the selector and length self-check; raises EncodeInvariantViolation."""
        check_calldata(self.data, self.expected_selector, self.word_count)
        return self

    def to_dict(self) -> dict:
        return {
            "to": self.to,
            "data": self.data,
            "amount_raw": str(self.amount_raw),
            "function": self.function,
        }


@runtime_checkable
class ProtocolAdapter(Protocol):
    """Capability set every venue implements."""

    protocol_id: str
    display_name: str

    @property
    def supported_chains(self) -> Tuple[str, ...]: ...

    def resolve_pool(self, chain: str, symbol: Optional[str] = None) -> Optional[str]: ...

    def resolve_receipt_token(self, asset: str, chain: str) -> Optional[str]: ...

    def encode_supply(self, req: SupplyRequest) -> EncodedCall: ...

    def encode_withdraw(self, req: WithdrawRequest) -> EncodedCall: ...

    def encode_position_query(
        self,
        asset: str,
        chain: str,
        owner: str,
        pool_symbol: Optional[str] = None,
    ) -> EncodedCall: ...


def supply_amount(req: SupplyRequest) -> int:
    return to_raw_amount(req.amount, req.decimals)


def withdraw_amount(req: WithdrawRequest) -> int:
    """Raw withdraw amount; the max sentinel maps to ``MAX_UINT256``."""
    if req.is_max:
        return MAX_UINT256
    return to_raw_amount(req.amount, req.decimals)


def symbol_for_address(address: str, chain: str) -> Optional[str]:
    """Reverse-lookup a token symbol from the known-token table."""
    lowered = address.lower()
    for symbol, (_decimals, addresses) in KNOWN_TOKENS.items():
        if addresses.get(chain) == lowered:
            return symbol
    return None


def asset_symbol(asset: str, chain: str) -> Optional[str]:
    """Accept either a symbol or an address and return the upper-case symbol."""
    if asset.startswith("0x"):
        return symbol_for_address(asset, chain)
    return asset.upper()


def finish(to: str, data: str, selector: str, word_count: int, amount_raw: int, function: str) -> EncodedCall:
    """Self-check calldata and wrap it in an :class:`EncodedCall`."""
    return EncodedCall(
        to=to,
        data=check_calldata(data, selector, word_count),
        amount_raw=amount_raw,
        function=function,
        expected_selector=selector,
        word_count=word_count,
    )
