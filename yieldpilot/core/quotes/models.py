"""Normalized quote records shared by every routing service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..amounts import format_raw_amount
from ..tokens import Asset


@dataclass(frozen=True)
class QuoteRequest:
    """Everything a routing service needs to price one swap or bridge."""

    from_asset: Asset
    to_asset: Asset
    amount_raw: int
    taker: str
    slippage_bps: int = 50

    @property
    def from_chain(self) -> str:
        return self.from_asset.chain

    @property
    def to_chain(self) -> str:
        return self.to_asset.chain

    @property
    def is_cross_chain(self) -> bool:
        return self.from_chain != self.to_chain

    @property
    def amount(self) -> str:
        return format_raw_amount(self.amount_raw, self.from_asset.decimals)


@dataclass(frozen=True)
class QuoteToken:
    address: str
    symbol: str
    decimals: int
    price_usd: Optional[float] = None


@dataclass(frozen=True)
class QuoteTransaction:
    """Router call returned by the service; ``value`` is in wei."""

    to: str
    data: str
    value: int = 0
    gas_limit: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "data": self.data,
            "value": str(self.value),
            "gas_limit": self.gas_limit,
        }


@dataclass(frozen=True)
class Quote:
    """Normalized route priced against the exact requested amount."""

    source: str
    from_chain: str
    to_chain: str
    from_token: QuoteToken
    to_token: QuoteToken

    # Amounts in smallest units
    from_amount_raw: int
    to_amount_raw: int
    to_amount_min_raw: int

    # Pricing
    from_amount_usd: Optional[float] = None
    to_amount_usd: Optional[float] = None
    price_impact_pct: float = 0.0
    estimated_gas_usd: Optional[float] = None

    # Approval
    approval_required: bool = False
    approval_address: Optional[str] = None

    # Execution data
    transaction: Optional[QuoteTransaction] = None
    tool: Optional[str] = None
    estimated_duration_s: Optional[int] = None
    quote_id: Optional[str] = None

    @property
    def from_amount(self) -> str:
        return format_raw_amount(self.from_amount_raw, self.from_token.decimals)

    @property
    def to_amount(self) -> str:
        return format_raw_amount(self.to_amount_raw, self.to_token.decimals)

    @property
    def to_amount_min(self) -> str:
        return format_raw_amount(self.to_amount_min_raw, self.to_token.decimals)

    @property
    def is_cross_chain(self) -> bool:
        return self.from_chain != self.to_chain

    def ranking_key(self) -> tuple:
        """Higher net receivable first, then cheaper gas."""
        gas = self.estimated_gas_usd if self.estimated_gas_usd is not None else float("inf")
        return (-self.to_amount_min_raw, gas)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "from_chain": self.from_chain,
            "to_chain": self.to_chain,
            "from_token": self.from_token.symbol,
            "to_token": self.to_token.symbol,
            "from_amount": self.from_amount,
            "to_amount": self.to_amount,
            "to_amount_min": self.to_amount_min,
            "from_amount_usd": self.from_amount_usd,
            "to_amount_usd": self.to_amount_usd,
            "price_impact_pct": self.price_impact_pct,
            "estimated_gas_usd": self.estimated_gas_usd,
            "approval_required": self.approval_required,
            "approval_address": self.approval_address,
            "tool": self.tool,
            "estimated_duration_s": self.estimated_duration_s,
            "quote_id": self.quote_id,
            "transaction": self.transaction.to_dict() if self.transaction else None,
        }


class QuoteSource(Protocol):
    """A routing service the aggregator can ask for a quote.

    ``fetch`` returns ``None`` when the service has no route for the request
    and raises ``UpstreamTimeoutError`` / ``UpstreamUnavailableError`` when it
    cannot be reached.
    """

    name: str
    supports_cross_chain: bool

    async def fetch(self, request: QuoteRequest) -> Optional[Quote]: ...
