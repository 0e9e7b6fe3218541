"""DefiLlama yields client: lending opportunities ranked by APY."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import settings
from ..core.earn.models import YieldOpportunity
from ..core.errors import UpstreamUnavailableError
from .http import request, to_float

logger = logging.getLogger(__name__)


class YieldDataProvider:
    """Wraps ``GET /pools`` on yields.llama.fi."""

    name = "defillama"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_urls: List[str] = [(base_url or settings.defillama_yields_url).rstrip("/")]
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    async def fetch_pools(self) -> List[Dict[str, Any]]:
        try:
            resp = await request(
                "GET",
                self.base_urls,
                "/pools",
                provider=self.name,
                timeout_s=self.timeout_s,
                transport=self._transport,
            )
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                "defillama pools", provider=self.name, reason=f"HTTP {exc.response.status_code}"
            ) from exc
        data = resp.json().get("data", [])
        return [pool for pool in data if isinstance(pool, dict)]

    async def get_opportunities(
        self,
        asset: str,
        chains: Iterable[str],
        protocols: Iterable[str],
        min_tvl_usd: Optional[float] = None,
    ) -> List[YieldOpportunity]:
        """Return matching pools sorted by total APY, highest first."""
        chains = list(chains)
        pools = await self.fetch_pools()
        ranked = rank_opportunities(
            pools,
            asset=asset,
            chains=chains,
            protocols=protocols,
            min_tvl_usd=settings.min_pool_tvl_usd if min_tvl_usd is None else min_tvl_usd,
        )
        logger.info("Found %d %s opportunities across %s", len(ranked), asset, ", ".join(chains))
        return ranked


def rank_opportunities(
    pools: Iterable[Dict[str, Any]],
    *,
    asset: str,
    chains: Iterable[str],
    protocols: Iterable[str],
    min_tvl_usd: float,
) -> List[YieldOpportunity]:
    wanted_chains = {c.lower() for c in chains}
    wanted_protocols = {p.lower() for p in protocols}
    asset_upper = asset.upper()

    opportunities: List[YieldOpportunity] = []
    for pool in pools:
        chain = str(pool.get("chain", "")).lower()
        project = str(pool.get("project", "")).lower()
        symbol = str(pool.get("symbol", ""))
        tvl = to_float(pool.get("tvlUsd")) or 0.0
        if chain not in wanted_chains or project not in wanted_protocols:
            continue
        if asset_upper not in symbol.upper() or tvl < min_tvl_usd:
            continue

        apy_base = to_float(pool.get("apyBase"))
        apy_reward = to_float(pool.get("apyReward"))
        apy = to_float(pool.get("apy"))
        if apy is None:
            apy = (apy_base or 0.0) + (apy_reward or 0.0)

        opportunities.append(
            YieldOpportunity(
                pool_id=str(pool.get("pool", "")),
                protocol=project,
                chain=chain,
                symbol=symbol,
                apy=apy,
                tvl_usd=tvl,
                apy_base=apy_base,
                apy_reward=apy_reward,
                stablecoin=bool(pool.get("stablecoin")),
                underlying_tokens=tuple(pool.get("underlyingTokens") or ()),
            )
        )

    opportunities.sort(key=lambda o: (-o.apy, -o.tvl_usd))
    return opportunities
