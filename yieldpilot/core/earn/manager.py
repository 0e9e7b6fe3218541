"""EarnManager picks a lending venue and runs deposits and withdrawals."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...config import settings
from ..amounts import format_raw_amount, is_withdraw_all, to_raw_amount
from ..chains import normalize_chain
from ..errors import (
    AmountError,
    InsufficientBalanceError,
    RecoverableError,
    VenueUnavailableError,
)
from ..protocols import (
    EncodedCall,
    SupplyRequest,
    WithdrawRequest,
    get_protocol_adapter,
    get_supported_protocols,
)
from ..tokens import Asset, resolve_asset
from ..workflow.machine import (
    BALANCE_UNVERIFIED_WARNING,
    ApprovalWorkflow,
    WorkflowTrace,
    require_positive_amount,
    require_wallet,
)
from ..workflow.models import PreparedCall, WorkflowResult, WorkflowStage
from .models import ChainBalance, DepositPlan, YieldOpportunity


class EarnManager:
    """Entry points for ``plan``, ``deposit`` and ``withdraw``.

    Deposits read balances on every candidate chain concurrently, rank venues
    by APY from the yield-data service and supply into the best venue on a
    chain where the wallet holds enough. Nothing is bridged automatically; a
    better venue on an unfunded chain is reported as a suggestion.
    """

    def __init__(
        self,
        *,
        reader: Any,
        yields: Any,
        workflow: ApprovalWorkflow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self.reader = reader
        self.yields = yields
        self.workflow = workflow

    # =========================================================================
    # Validation helpers
    # =========================================================================

    @staticmethod
    def _normalize_chains(chains: Optional[Sequence[str]]) -> Tuple[List[str], List[str]]:
        requested = list(chains) if chains else list(settings.yield_chains)
        valid: List[str] = []
        unknown: List[str] = []
        for chain in requested:
            name = normalize_chain(chain)
            if name is None:
                unknown.append(chain)
            elif name not in valid:
                valid.append(name)
        return valid, unknown

    @staticmethod
    def _protocols(protocol: Optional[str]) -> Optional[List[str]]:
        if not protocol:
            return get_supported_protocols()
        adapter = get_protocol_adapter(protocol)
        return [adapter.protocol_id] if adapter else None

    def _validate_target(
        self,
        trace: WorkflowTrace,
        asset: str,
        chains: Optional[Sequence[str]],
        protocol: Optional[str],
    ) -> Tuple[Optional[WorkflowResult], Dict[str, Asset], List[str]]:
        """Resolve chains, protocols and the per-chain asset, or reject."""
        valid, unknown = self._normalize_chains(chains)
        if unknown:
            return trace.reject("unsupported_chain", f"Unsupported chain: {', '.join(unknown)}"), {}, []

        protocols = self._protocols(protocol)
        if protocols is None:
            return (
                trace.reject(
                    "venue_unavailable",
                    f"Unsupported protocol: {protocol}",
                    suggested_action=f"Choose one of {', '.join(get_supported_protocols())}",
                ),
                {},
                [],
            )

        assets: Dict[str, Asset] = {}
        for chain in valid:
            resolved = resolve_asset(asset, chain)
            if resolved is not None:
                assets[chain] = resolved
        if not assets:
            return (
                trace.reject(
                    "venue_unavailable",
                    f"{asset} is not available on {', '.join(valid)}",
                    suggested_action="Choose a different chain or asset",
                ),
                {},
                [],
            )
        if any(a.is_native for a in assets.values()):
            return (
                trace.reject(
                    "venue_unavailable",
                    "Lending venues take wrapped tokens, not the native gas token",
                    suggested_action="Wrap it first (for example ETH to WETH) and deposit the wrapped token",
                ),
                {},
                [],
            )

        trace.details["asset"] = next(iter(assets.values())).symbol
        trace.details["chains"] = list(assets)
        trace.details["protocols"] = protocols
        return None, assets, protocols

    # =========================================================================
    # Reads
    # =========================================================================

    async def _read_balances(self, assets: Dict[str, Asset], owner: str) -> List[ChainBalance]:
        """Concurrent per-chain balance reads; a failing chain never aborts the others."""

        async def read(chain: str, asset: Asset) -> ChainBalance:
            try:
                balance = await self.reader.get_balance(asset, owner)
            except RecoverableError as exc:
                self._logger.warning("Balance read for %s on %s failed: %s", asset.symbol, chain, exc.message)
                return ChainBalance(chain, decimals=asset.decimals, error=exc.message)
            return ChainBalance(chain, raw=balance.raw, decimals=asset.decimals)

        return list(await asyncio.gather(*(read(chain, asset) for chain, asset in assets.items())))

    async def _opportunities(
        self,
        trace: WorkflowTrace,
        symbol: str,
        chains: List[str],
        protocols: List[str],
        explicit_protocol: bool,
    ) -> List[YieldOpportunity]:
        try:
            ranked = await self.yields.get_opportunities(symbol, chains, protocols)
        except RecoverableError as exc:
            if not explicit_protocol:
                raise
            # With a named protocol we can still deposit, just without an APY figure.
            self._logger.warning("Yield data unavailable, continuing with %s: %s", protocols[0], exc.message)
            trace.warn("Yield data is unavailable; APY is not shown")
            return [
                YieldOpportunity(pool_id="", protocol=protocols[0], chain=chain, symbol=symbol, apy=0.0, tvl_usd=0.0)
                for chain in chains
            ]
        if explicit_protocol and not ranked:
            return [
                YieldOpportunity(pool_id="", protocol=protocols[0], chain=chain, symbol=symbol, apy=0.0, tvl_usd=0.0)
                for chain in chains
            ]
        return ranked

    # =========================================================================
    # plan
    # =========================================================================

    async def plan(
        self,
        asset: str,
        amount: Optional[str] = None,
        chains: Optional[Sequence[str]] = None,
        protocol: Optional[str] = None,
        *,
        wallet_address: Optional[str] = None,
    ) -> WorkflowResult:
        """Rank opportunities, or preview a deposit when ``amount`` is given."""
        if amount is not None and wallet_address:
            return await self.deposit(
                asset, amount, chains, protocol, wallet_address=wallet_address, execute=False
            )

        trace = WorkflowTrace("plan", logger=self._logger)
        rejection, assets, protocols = self._validate_target(trace, asset, chains, protocol)
        if rejection:
            return rejection

        if wallet_address:
            balances = await self._read_balances(assets, wallet_address)
            trace.details["balances"] = {
                b.chain: format_raw_amount(b.raw, b.decimals) for b in balances if b.ok
            }
            for b in balances:
                if not b.ok:
                    trace.warn(f"Could not read {trace.details['asset']} balance on {b.chain}")
        else:
            trace.warn("No wallet given; balances were not checked")
        trace.advance(WorkflowStage.BALANCE_CHECKED)

        ranked = await self._opportunities(
            trace, trace.details["asset"], list(assets), protocols, explicit_protocol=bool(protocol)
        )
        trace.details["opportunities"] = [o.to_dict() for o in ranked]
        if ranked:
            best = ranked[0]
            adapter = get_protocol_adapter(best.protocol)
            trace.details["best"] = {
                **best.to_dict(),
                "protocol_name": adapter.display_name if adapter else best.protocol,
            }
        else:
            trace.warn(f"No {trace.details['asset']} opportunities found on {', '.join(assets)}")
        return trace.quoted()

    # =========================================================================
    # deposit
    # =========================================================================

    def _select(
        self,
        ranked: List[YieldOpportunity],
        candidates: List[str],
        assets: Dict[str, Asset],
        amount: str,
        owner: str,
    ) -> Tuple[Optional[DepositPlan], Optional[EncodedCall]]:
        """Best-APY opportunity on a candidate chain whose adapter can encode the deposit."""
        for opportunity in ranked:
            if opportunity.chain not in candidates:
                continue
            adapter = get_protocol_adapter(opportunity.protocol)
            if adapter is None:
                continue
            asset = assets[opportunity.chain]
            underlying = {token.lower() for token in opportunity.underlying_tokens}
            if underlying and asset.address.lower() not in underlying:
                self._logger.info(
                    "Skipping %s %s on %s: pool takes a different token",
                    opportunity.protocol, opportunity.symbol, opportunity.chain,
                )
                continue
            try:
                encoded = adapter.encode_supply(
                    SupplyRequest(
                        asset=asset.address,
                        amount=amount,
                        decimals=asset.decimals,
                        on_behalf_of=owner,
                        chain=opportunity.chain,
                        pool_symbol=opportunity.symbol or None,
                    )
                )
            except VenueUnavailableError as exc:
                self._logger.info("Skipping %s on %s: %s", opportunity.protocol, opportunity.chain, exc.message)
                continue
            better = ranked[0] if ranked[0].apy > opportunity.apy and ranked[0].chain != opportunity.chain else None
            return DepositPlan(opportunity=opportunity, better_elsewhere=better), encoded
        return None, None

    async def deposit(
        self,
        asset: str,
        amount: str,
        chains: Optional[Sequence[str]] = None,
        protocol: Optional[str] = None,
        *,
        wallet_address: str,
        execute: bool = True,
    ) -> WorkflowResult:
        trace = WorkflowTrace("deposit", logger=self._logger)

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection

        rejection, assets, protocols = self._validate_target(trace, asset, chains, protocol)
        if rejection:
            return rejection

        reference = next(iter(assets.values()))
        rejection = require_positive_amount(trace, amount, reference)
        if rejection:
            return rejection
        # The same decimal amount can scale differently per chain
        required = {chain: to_raw_amount(amount, a.decimals) for chain, a in assets.items()}

        # Balance check across every candidate chain
        balances = await self._read_balances(assets, wallet_address)
        verified = [b for b in balances if b.ok]
        unverified = [b.chain for b in balances if not b.ok]
        funded = [b.chain for b in verified if b.raw >= required[b.chain]]
        trace.details["balances"] = {b.chain: format_raw_amount(b.raw, b.decimals) for b in verified}
        for chain in unverified:
            trace.warn(f"Could not verify {reference.symbol} balance on {chain}")
        if not verified:
            trace.warn(BALANCE_UNVERIFIED_WARNING)
        trace.details["balance_verified"] = bool(verified) and not unverified
        trace.advance(WorkflowStage.BALANCE_CHECKED)
        if not funded and not unverified:
            scale = max(b.decimals for b in verified)
            richest = max(verified, key=lambda b: b.raw * 10 ** (scale - b.decimals))
            decimals = assets[richest.chain].decimals
            needed = required[richest.chain]
            return trace.reject_error(
                InsufficientBalanceError(
                    required=format_raw_amount(needed, decimals),
                    available=format_raw_amount(richest.raw, decimals),
                    shortfall=format_raw_amount(needed - richest.raw, decimals),
                    asset=reference.symbol,
                    chain=richest.chain,
                )
            )

        candidates = funded + unverified
        ranked = await self._opportunities(
            trace, reference.symbol, list(assets), protocols, explicit_protocol=bool(protocol)
        )
        plan, encoded = self._select(ranked, candidates, assets, amount, wallet_address)
        if plan is None or encoded is None:
            return trace.reject(
                "venue_unavailable",
                f"No supported venue for {reference.symbol} on {', '.join(candidates)}",
                suggested_action="Try another chain or protocol",
            )

        chosen = plan.opportunity
        adapter = get_protocol_adapter(chosen.protocol)
        target = assets[chosen.chain]
        trace.details.update({
            "chain": chosen.chain,
            "protocol": chosen.protocol,
            "protocol_name": adapter.display_name,
            "apy": chosen.apy,
            "tvl_usd": chosen.tvl_usd,
            "pool_address": encoded.to,
            "call": encoded.to_dict(),
            "approval_policy": "exact",
            "alternatives": [o.to_dict() for o in ranked[:5]],
        })
        if plan.better_elsewhere is not None:
            better = plan.better_elsewhere
            trace.details["better_yield_elsewhere"] = better.to_dict()
            trace.warn(
                f"{better.protocol} on {better.chain} pays {better.apy:.2f}% vs {chosen.apy:.2f}%; "
                f"bridge {reference.symbol} to {better.chain} first to use it"
            )
        trace.advance(WorkflowStage.QUOTED)

        self._logger.info(
            "Deposit %s %s into %s on %s (apy=%.2f, execute=%s)",
            amount, reference.symbol, chosen.protocol, chosen.chain, chosen.apy, execute,
        )
        if not execute:
            return trace.quoted()

        return await self.workflow.settle(
            trace,
            asset=target,
            owner=wallet_address,
            amount_raw=encoded.amount_raw,
            spender=encoded.to,
            call=PreparedCall(
                to=encoded.to,
                data=encoded.data,
                action=encoded.function or "supply",
                venue=chosen.protocol,
                expected_selector=encoded.expected_selector,
                word_count=encoded.word_count,
            ),
            unlimited_approval=False,
        )

    # =========================================================================
    # withdraw
    # =========================================================================

    async def withdraw(
        self,
        asset: str,
        amount: str = "all",
        chain: str = "base",
        protocol: str = "aave-v3",
        *,
        wallet_address: str,
        pool_symbol: Optional[str] = None,
        execute: bool = True,
    ) -> WorkflowResult:
        trace = WorkflowTrace("withdraw", logger=self._logger)

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection

        chain_name = normalize_chain(chain)
        if chain_name is None:
            return trace.reject("unsupported_chain", f"Unsupported chain: {chain}")
        adapter = get_protocol_adapter(protocol)
        if adapter is None:
            return trace.reject(
                "venue_unavailable",
                f"Unsupported protocol: {protocol}",
                suggested_action=f"Choose one of {', '.join(get_supported_protocols())}",
            )
        token = resolve_asset(asset, chain_name)
        if token is None or token.is_native:
            return trace.reject("venue_unavailable", f"{asset} is not available on {chain_name}")

        withdraw_all = is_withdraw_all(amount)
        if not withdraw_all:
            try:
                if to_raw_amount(amount, token.decimals) == 0:
                    return trace.reject("zero_amount", "Amount must be greater than zero")
            except AmountError as exc:
                return trace.reject_error(exc)

        try:
            encoded = adapter.encode_withdraw(
                WithdrawRequest(
                    asset=token.address,
                    amount=amount,
                    decimals=token.decimals,
                    recipient=wallet_address,
                    chain=chain_name,
                    pool_symbol=pool_symbol,
                )
            )
            query = adapter.encode_position_query(token.address, chain_name, wallet_address, pool_symbol)
        except (AmountError, VenueUnavailableError) as exc:
            return trace.reject_error(exc)

        trace.details.update({
            "asset": token.symbol,
            "chain": chain_name,
            "protocol": adapter.protocol_id,
            "protocol_name": adapter.display_name,
            "amount": "all" if withdraw_all else str(amount).strip(),
            "amount_raw": str(encoded.amount_raw),
            "pool_address": encoded.to,
            "call": encoded.to_dict(),
        })

        # Position check stands in for the balance check
        try:
            position = await self.reader.read_position(query, chain_name, token.decimals)
        except RecoverableError as exc:
            self._logger.warning("Position read on %s %s failed: %s", adapter.protocol_id, chain_name, exc.message)
            trace.details["balance_verified"] = False
            trace.warn(BALANCE_UNVERIFIED_WARNING)
            trace.advance(WorkflowStage.BALANCE_CHECKED)
        else:
            trace.details["position"] = position.formatted
            trace.details["balance_verified"] = True
            trace.advance(WorkflowStage.BALANCE_CHECKED)
            if withdraw_all and position.raw == 0:
                return trace.reject(
                    "no_position",
                    f"No {token.symbol} position in {adapter.display_name} on {chain_name}",
                    suggested_action="Check the chain and protocol where you deposited",
                )
            if not withdraw_all and encoded.amount_raw > position.raw:
                return trace.reject_error(
                    InsufficientBalanceError(
                        required=format_raw_amount(encoded.amount_raw, token.decimals),
                        available=position.formatted,
                        shortfall=format_raw_amount(encoded.amount_raw - position.raw, token.decimals),
                        asset=token.symbol,
                        chain=chain_name,
                    )
                )
        trace.advance(WorkflowStage.QUOTED)

        self._logger.info(
            "Withdraw %s %s from %s on %s (execute=%s)",
            trace.details["amount"], token.symbol, adapter.protocol_id, chain_name, execute,
        )
        if not execute:
            return trace.quoted()

        return await self.workflow.settle(
            trace,
            asset=token,
            owner=wallet_address,
            amount_raw=encoded.amount_raw,
            spender=None,
            call=PreparedCall(
                to=encoded.to,
                data=encoded.data,
                action=encoded.function or "withdraw",
                venue=adapter.protocol_id,
                expected_selector=encoded.expected_selector,
                word_count=encoded.word_count,
            ),
        )
