"""BridgeManager moves assets across chains through the approval workflow."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...config import settings
from ..chains import normalize_chain
from ..quotes.aggregator import QuoteAggregator
from ..swap.routing import RoutedIntent
from ..workflow.machine import (
    ApprovalWorkflow,
    WorkflowTrace,
    require_amount_format,
    require_positive_amount,
    require_wallet,
)
from ..workflow.models import WorkflowResult


class BridgeManager:
    """Validates a bridge intent, quotes it across chains and settles it.

    The destination token defaults to the source symbol, so
    ``bridge("USDC", None, "100", "base", "arbitrum")`` moves USDC to USDC.
    """

    def __init__(
        self,
        *,
        reader: Any,
        aggregator: QuoteAggregator,
        workflow: ApprovalWorkflow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self.reader = reader
        self._routed = RoutedIntent(aggregator, workflow, logger=self._logger)

    async def bridge(
        self,
        from_token: str,
        to_token: Optional[str],
        amount: str,
        from_chain: str,
        to_chain: str,
        *,
        wallet_address: str,
        execute: bool = False,
        slippage_bps: Optional[int] = None,
    ) -> WorkflowResult:
        trace = WorkflowTrace("bridge", logger=self._logger)
        slippage = settings.default_slippage_bps if slippage_bps is None else slippage_bps

        source = normalize_chain(from_chain)
        destination = normalize_chain(to_chain)
        if source is None or destination is None:
            unknown = from_chain if source is None else to_chain
            return trace.reject("unsupported_chain", f"Unsupported chain: {unknown}")
        if source == destination:
            return trace.reject(
                "same_chain",
                f"Source and destination are both {source}",
                suggested_action="Use swap instead to exchange tokens on one chain",
            )
        trace.details["from_chain"] = source
        trace.details["to_chain"] = destination

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection
        rejection = require_amount_format(trace, amount)
        if rejection:
            return rejection

        from_asset = await self.reader.resolve_asset(from_token, source)
        to_asset = await self.reader.resolve_asset(to_token or from_token, destination)
        if from_asset is None:
            return trace.reject("unknown_token", f"Unknown token {from_token} on {source}")
        if to_asset is None:
            return trace.reject(
                "unknown_token",
                f"Unknown token {to_token or from_token} on {destination}",
                suggested_action="Name the destination token explicitly",
            )
        trace.details["from_token"] = from_asset.to_dict()
        trace.details["to_token"] = to_asset.to_dict()

        rejection = require_positive_amount(trace, amount, from_asset)
        if rejection:
            return rejection

        self._logger.info(
            "Bridge %s %s from %s to %s %s (execute=%s)",
            amount,
            from_asset.symbol,
            source,
            destination,
            to_asset.symbol,
            execute,
        )
        return await self._routed.run(
            trace,
            from_asset=from_asset,
            to_asset=to_asset,
            wallet_address=wallet_address,
            execute=execute,
            slippage_bps=slippage,
        )
