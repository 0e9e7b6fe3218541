"""Routed transfer flow shared by swaps and bridges.

Both intents follow the same path once their own validation is done:
balance check, aggregated quote, then an unlimited router approval or the
router call itself.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...config import settings
from ..errors import InsufficientBalanceError, NoRouteFoundError
from ..quotes.aggregator import QuoteAggregator
from ..quotes.models import Quote, QuoteRequest
from ..tokens import Asset
from ..workflow.machine import ApprovalWorkflow, WorkflowTrace
from ..workflow.models import PreparedCall, WorkflowResult


class RoutedIntent:
    """Quote-and-settle steps for router-based intents."""

    def __init__(
        self,
        aggregator: QuoteAggregator,
        workflow: ApprovalWorkflow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.aggregator = aggregator
        self.workflow = workflow
        self._logger = logger or logging.getLogger(__name__)

    def add_impact_warnings(self, trace: WorkflowTrace, quote: Quote) -> None:
        impact = quote.price_impact_pct
        if impact > settings.price_impact_high_pct:
            trace.warn(f"High price impact: {impact:.2f}%. Consider a smaller amount")
        elif impact > settings.price_impact_warn_pct:
            trace.warn(f"Price impact is {impact:.2f}%")

    async def run(
        self,
        trace: WorkflowTrace,
        *,
        from_asset: Asset,
        to_asset: Asset,
        wallet_address: str,
        execute: bool,
        slippage_bps: int,
    ) -> WorkflowResult:
        amount_raw = int(trace.details["amount_raw"])

        try:
            await self.workflow.check_balance(trace, from_asset, wallet_address, amount_raw)
        except InsufficientBalanceError as exc:
            return trace.reject_error(exc)

        quote = await self.aggregator.get_quote(
            QuoteRequest(
                from_asset=from_asset,
                to_asset=to_asset,
                amount_raw=amount_raw,
                taker=wallet_address,
                slippage_bps=slippage_bps,
            )
        )
        trace.details["quote"] = quote.to_dict()
        trace.details["slippage_bps"] = slippage_bps
        self.add_impact_warnings(trace, quote)

        needs_approval = quote.approval_address is not None and not from_asset.is_native
        if needs_approval:
            trace.details["approval_policy"] = "unlimited"

        if not execute:
            if needs_approval:
                trace.warn(
                    f"Executing will check the {from_asset.symbol} allowance for {quote.source} router "
                    f"{quote.approval_address} and grant an unlimited approval if it is too low"
                )
            return trace.quoted()

        if quote.transaction is None:
            raise NoRouteFoundError(f"{quote.source} quote has no executable transaction")

        call = PreparedCall(
            to=quote.transaction.to,
            data=quote.transaction.data,
            value=quote.transaction.value,
            action=trace.intent,
            venue=quote.tool or quote.source,
        )
        return await self.workflow.settle(
            trace,
            asset=from_asset,
            owner=wallet_address,
            amount_raw=amount_raw,
            spender=quote.approval_address if needs_approval else None,
            call=call,
            unlimited_approval=True,
        )
