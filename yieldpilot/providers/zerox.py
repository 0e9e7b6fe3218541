"""Async client for the 0x Swap API v2 (allowance-holder flow, same-chain only)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import resolve_chain
from ..core.errors import UpstreamUnavailableError
from ..core.quotes.models import Quote, QuoteRequest, QuoteToken, QuoteTransaction
from .http import request, to_int

logger = logging.getLogger(__name__)


class ZeroXQuoteSource:
    name = "0x"
    supports_cross_chain = False

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.zerox_api_key
        self.base_urls: List[str] = [(base_url or settings.zerox_base_url).rstrip("/")]
        self.timeout_s = timeout_s or settings.quote_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "0x-version": "v2",
        }
        if self.api_key:
            headers["0x-api-key"] = self.api_key
        return headers

    def build_params(self, req: QuoteRequest) -> Dict[str, Any]:
        chain = resolve_chain(req.from_chain)
        return {
            "chainId": chain.chain_id if chain else req.from_chain,
            "sellToken": req.from_asset.address,
            "buyToken": req.to_asset.address,
            "sellAmount": str(req.amount_raw),
            "taker": req.taker,
            "slippageBps": req.slippage_bps,
        }

    async def fetch(self, req: QuoteRequest) -> Optional[Quote]:
        if req.is_cross_chain:
            return None
        try:
            resp = await request(
                "GET",
                self.base_urls,
                "/swap/allowance-holder/quote",
                provider=self.name,
                timeout_s=self.timeout_s,
                headers=self._headers(),
                transport=self._transport,
                chain=req.from_chain,
                params=self.build_params(req),
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status >= 500 or status in (401, 403, 429):
                raise UpstreamUnavailableError("0x quote", provider=self.name, reason=f"HTTP {status}") from exc
            logger.info("0x returned no route (HTTP %s): %s", status, exc.response.text[:200])
            return None

        return normalize_zerox_quote(resp.json(), req)


def normalize_zerox_quote(payload: Dict[str, Any], req: QuoteRequest) -> Optional[Quote]:
    """Map a 0x v2 quote onto :class:`Quote`; ``None`` when liquidity is unavailable."""
    if payload.get("liquidityAvailable") is False or not payload.get("buyAmount"):
        return None

    tx = payload.get("transaction") or {}
    transaction = None
    if tx.get("to"):
        transaction = QuoteTransaction(
            to=tx["to"],
            data=tx.get("data") or "0x",
            value=to_int(tx.get("value")),
            gas_limit=to_int(tx.get("gas")) or None,
        )

    allowance_issue = (payload.get("issues") or {}).get("allowance") or {}
    spender = allowance_issue.get("spender")
    # In the allowance-holder flow the router itself is the spender
    approval_address = spender or (transaction.to if transaction and not req.from_asset.is_native else None)

    fills = (payload.get("route") or {}).get("fills") or []
    sources = []
    for fill in fills:
        source = fill.get("source")
        if source and source not in sources:
            sources.append(source)

    buy_amount = to_int(payload.get("buyAmount"))

    return Quote(
        source="0x",
        from_chain=req.from_chain,
        to_chain=req.to_chain,
        from_token=QuoteToken(req.from_asset.address, req.from_asset.symbol, req.from_asset.decimals),
        to_token=QuoteToken(req.to_asset.address, req.to_asset.symbol, req.to_asset.decimals),
        from_amount_raw=to_int(payload.get("sellAmount"), req.amount_raw),
        to_amount_raw=buy_amount,
        to_amount_min_raw=to_int(payload.get("minBuyAmount"), buy_amount),
        price_impact_pct=0.0,
        estimated_gas_usd=None,
        approval_required=bool(spender) and not req.from_asset.is_native,
        approval_address=approval_address,
        transaction=transaction,
        tool=", ".join(sources) if sources else "0x",
        quote_id=payload.get("zid"),
    )
