"""Async client for the LI.FI quote API (same-chain swaps and bridges)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import resolve_chain
from ..core.errors import UpstreamUnavailableError
from ..core.quotes.models import Quote, QuoteRequest, QuoteToken, QuoteTransaction
from .http import request, to_float, to_int

logger = logging.getLogger(__name__)


class LifiQuoteSource:
    """Wraps ``GET /quote`` and normalizes the step into a :class:`Quote`."""

    name = "lifi"
    supports_cross_chain = True

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        integrator: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_urls: List[str] = [(base_url or settings.lifi_base_url).rstrip("/")]
        self.integrator = integrator if integrator is not None else settings.lifi_integrator
        self.timeout_s = timeout_s or settings.quote_timeout_seconds
        self._transport = transport

    def build_params(self, req: QuoteRequest) -> Dict[str, Any]:
        from_chain = resolve_chain(req.from_chain)
        to_chain = resolve_chain(req.to_chain)
        params: Dict[str, Any] = {
            "fromChain": from_chain.chain_id if from_chain else req.from_chain,
            "toChain": to_chain.chain_id if to_chain else req.to_chain,
            "fromToken": req.from_asset.address,
            "toToken": req.to_asset.address,
            "fromAmount": str(req.amount_raw),
            "fromAddress": req.taker,
            # LI.FI takes slippage as a fraction
            "slippage": req.slippage_bps / 10_000,
        }
        if self.integrator:
            params["integrator"] = self.integrator
        return params

    async def fetch(self, req: QuoteRequest) -> Optional[Quote]:
        try:
            resp = await request(
                "GET",
                self.base_urls,
                "/quote",
                provider=self.name,
                timeout_s=self.timeout_s,
                headers={"accept": "application/json"},
                transport=self._transport,
                chain=req.from_chain,
                params=self.build_params(req),
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status >= 500 or status == 429:
                raise UpstreamUnavailableError("lifi quote", provider=self.name, reason=f"HTTP {status}") from exc
            logger.info("LI.FI returned no route (HTTP %s): %s", status, exc.response.text[:200])
            return None

        return normalize_lifi_quote(resp.json(), req)


def normalize_lifi_quote(payload: Dict[str, Any], req: QuoteRequest) -> Optional[Quote]:
    """Map a LI.FI step response onto :class:`Quote`; ``None`` when it has no output."""
    action = payload.get("action") or {}
    estimate = payload.get("estimate") or {}
    if not estimate.get("toAmount"):
        return None

    from_token = action.get("fromToken") or {}
    to_token = action.get("toToken") or {}
    from_usd = to_float(estimate.get("fromAmountUSD"))
    to_usd = to_float(estimate.get("toAmountUSD"))

    price_impact = 0.0
    if from_usd and to_usd is not None and from_usd > 0:
        price_impact = round((from_usd - to_usd) / from_usd * 100, 4)

    gas_costs = estimate.get("gasCosts") or []
    gas_usd = sum(to_float(cost.get("amountUSD")) or 0.0 for cost in gas_costs) if gas_costs else None

    tx_request = payload.get("transactionRequest") or {}
    transaction = None
    if tx_request.get("to"):
        transaction = QuoteTransaction(
            to=tx_request["to"],
            data=tx_request.get("data") or "0x",
            value=to_int(tx_request.get("value")),
            gas_limit=to_int(tx_request.get("gasLimit")) or None,
        )

    approval_address = estimate.get("approvalAddress")
    tool_details = payload.get("toolDetails") or {}
    to_amount_raw = to_int(estimate.get("toAmount"))

    return Quote(
        source="lifi",
        from_chain=req.from_chain,
        to_chain=req.to_chain,
        from_token=QuoteToken(
            address=from_token.get("address", req.from_asset.address),
            symbol=from_token.get("symbol", req.from_asset.symbol),
            decimals=int(from_token.get("decimals", req.from_asset.decimals)),
            price_usd=to_float(from_token.get("priceUSD")),
        ),
        to_token=QuoteToken(
            address=to_token.get("address", req.to_asset.address),
            symbol=to_token.get("symbol", req.to_asset.symbol),
            decimals=int(to_token.get("decimals", req.to_asset.decimals)),
            price_usd=to_float(to_token.get("priceUSD")),
        ),
        from_amount_raw=to_int(action.get("fromAmount"), req.amount_raw),
        to_amount_raw=to_amount_raw,
        to_amount_min_raw=to_int(estimate.get("toAmountMin"), to_amount_raw),
        from_amount_usd=from_usd,
        to_amount_usd=to_usd,
        price_impact_pct=price_impact,
        estimated_gas_usd=gas_usd,
        approval_required=bool(approval_address) and not req.from_asset.is_native,
        approval_address=approval_address,
        transaction=transaction,
        tool=tool_details.get("name") or payload.get("tool"),
        estimated_duration_s=to_int(estimate.get("executionDuration")) or None,
        quote_id=payload.get("id"),
    )
