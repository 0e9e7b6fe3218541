"""Typed models used by the earn (yield) subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class YieldOpportunity:
    """One lending pool or vault as reported by the yield-data service."""

    pool_id: str
    protocol: str
    chain: str
    symbol: str
    apy: float
    tvl_usd: float
    apy_base: Optional[float] = None
    apy_reward: Optional[float] = None
    stablecoin: bool = False
    underlying_tokens: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "protocol": self.protocol,
            "chain": self.chain,
            "symbol": self.symbol,
            "apy": round(self.apy, 4),
            "apy_base": self.apy_base,
            "apy_reward": self.apy_reward,
            "tvl_usd": self.tvl_usd,
            "stablecoin": self.stablecoin,
        }


@dataclass(frozen=True)
class ChainBalance:
    """Result of one per-chain balance read; ``error`` set when the read failed."""

    chain: str
    raw: Optional[int] = None
    decimals: int = 18
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.raw is not None


@dataclass
class DepositPlan:
    """Chosen venue for a deposit plus everything needed to explain the choice."""

    opportunity: YieldOpportunity
    better_elsewhere: Optional[YieldOpportunity] = None
