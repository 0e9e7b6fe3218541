"""SwapManager runs same-chain token swaps through the approval workflow."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...config import settings
from ..chains import normalize_chain
from ..quotes.aggregator import QuoteAggregator
from ..workflow.machine import (
    ApprovalWorkflow,
    WorkflowTrace,
    require_amount_format,
    require_positive_amount,
    require_wallet,
)
from ..workflow.models import WorkflowResult
from .routing import RoutedIntent


class SwapManager:
    """Validates a swap intent, quotes it and settles it."""

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

    @staticmethod
    def _reject_same_asset(trace: WorkflowTrace, symbol: str, chain: str) -> WorkflowResult:
        return trace.reject(
            "same_asset",
            f"Cannot swap {symbol} into itself on {chain}",
            suggested_action="Pick a different output token, or use bridge to move it to another chain",
        )

    async def swap(
        self,
        from_token: str,
        to_token: str,
        amount: str,
        chain: str,
        *,
        wallet_address: str,
        execute: bool = False,
        slippage_bps: Optional[int] = None,
    ) -> WorkflowResult:
        trace = WorkflowTrace("swap", logger=self._logger)
        slippage = settings.default_slippage_bps if slippage_bps is None else slippage_bps

        chain_name = normalize_chain(chain)
        if chain_name is None:
            return trace.reject("unsupported_chain", f"Unsupported chain: {chain}")
        trace.details["chain"] = chain_name

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection
        rejection = require_amount_format(trace, amount)
        if rejection:
            return rejection

        if from_token.strip().lower() == to_token.strip().lower():
            return self._reject_same_asset(trace, from_token, chain_name)

        from_asset = await self.reader.resolve_asset(from_token, chain_name)
        to_asset = await self.reader.resolve_asset(to_token, chain_name)
        if from_asset is None or to_asset is None:
            missing = from_token if from_asset is None else to_token
            return trace.reject(
                "unknown_token",
                f"Unknown token {missing} on {chain_name}",
                suggested_action="Use a known symbol or the token's contract address",
            )
        if from_asset.address.lower() == to_asset.address.lower():
            return self._reject_same_asset(trace, from_asset.symbol, chain_name)
        trace.details["from_token"] = from_asset.to_dict()
        trace.details["to_token"] = to_asset.to_dict()

        rejection = require_positive_amount(trace, amount, from_asset)
        if rejection:
            return rejection

        self._logger.info(
            "Swap %s %s -> %s on %s (execute=%s)", amount, from_asset.symbol, to_asset.symbol, chain_name, execute
        )
        return await self._routed.run(
            trace,
            from_asset=from_asset,
            to_asset=to_asset,
            wallet_address=wallet_address,
            execute=execute,
            slippage_bps=slippage,
        )
