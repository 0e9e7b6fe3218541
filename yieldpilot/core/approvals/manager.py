"""ApprovalManager lists the allowances a wallet has granted and revokes them.

Swaps and bridges grant routers an unlimited allowance; this is where a user
reviews those grants and sets them back to zero with ``approve(spender, 0)``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_utils import is_hex_address

from ..amounts import format_raw_amount
from ..chains import normalize_chain
from ..encoding import ERC20_APPROVE_SELECTOR, encode_approve
from ..protocols import aave_v3, compound_v3, morpho
from ..tokens import Asset
from ..workflow.machine import ApprovalWorkflow, WorkflowTrace, require_wallet
from ..workflow.models import PreparedCall, WorkflowResult, WorkflowStage

# Routers that receive unlimited approvals from swap and bridge; same address on every chain
ROUTER_SPENDERS: Dict[str, str] = {
    "LI.FI": "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE",
    "0x AllowanceHolder": "0x0000000000001fF3684f28c67538d4D072C22734",
}

# Far above any real token supply; such an allowance is effectively unlimited
UNLIMITED_THRESHOLD = 2**128


def venue_spenders(asset: Asset) -> List[Tuple[str, str]]:
    """(label, address) for every lending venue that can pull ``asset`` on its chain."""
    chain = asset.chain
    spenders: List[Tuple[str, str]] = []

    if aave_v3.AaveV3Adapter().resolve_receipt_token(asset.address, chain):
        spenders.append(("Aave V3 Pool", aave_v3.POOL_ADDRESSES[chain]))

    market = compound_v3.CompoundV3Adapter().market_symbol(asset.address, chain)
    if market:
        spenders.append((f"Compound V3 {market}", compound_v3.COMET_MARKETS[chain][market]))

    underlying = asset.symbol.upper()
    for vault in morpho.VAULTS.get(chain, {}).values():
        if vault.asset == underlying:
            spenders.append((f"Morpho {vault.symbol}", vault.address))
    return spenders


class ApprovalManager:
    """Entry points for ``review`` and ``revoke``."""

    def __init__(
        self,
        *,
        reader: Any,
        workflow: ApprovalWorkflow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self.reader = reader
        self.workflow = workflow

    async def _resolve_token(
        self, trace: WorkflowTrace, token: str, chain: str
    ) -> Tuple[Optional[WorkflowResult], Optional[Asset]]:
        chain_name = normalize_chain(chain)
        if chain_name is None:
            return trace.reject("unsupported_chain", f"Unsupported chain: {chain}"), None
        asset = await self.reader.resolve_asset(token, chain_name)
        if asset is None:
            return trace.reject("unknown_token", f"Unknown token {token} on {chain_name}"), None
        if asset.is_native:
            return (
                trace.reject(
                    "native_token",
                    f"{asset.symbol} is the native gas token and has no approvals",
                    suggested_action="Name an ERC-20 token instead",
                ),
                None,
            )
        trace.details["token"] = asset.to_dict()
        trace.details["chain"] = chain_name
        return None, asset

    @staticmethod
    def _describe(label: str, spender: str, raw: int, asset: Asset) -> Dict[str, Any]:
        unlimited = raw >= UNLIMITED_THRESHOLD
        return {
            "label": label,
            "spender": spender,
            "allowance": "unlimited" if unlimited else format_raw_amount(raw, asset.decimals),
            "allowance_raw": str(raw),
            "unlimited": unlimited,
        }

    # =========================================================================
    # review
    # =========================================================================

    async def review(
        self,
        token: str,
        chain: str = "base",
        *,
        wallet_address: str,
        spenders: Optional[Sequence[str]] = None,
    ) -> WorkflowResult:
        """Read the allowance for every known router and venue plus ``spenders``.

        Only non-zero allowances are reported. Read failures propagate.
        """
        trace = WorkflowTrace("review_approvals", logger=self._logger)

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection
        invalid = [s for s in spenders or () if not is_hex_address(s)]
        if invalid:
            return trace.reject("invalid_spender", f"Invalid spender address: {invalid[0]}")

        rejection, asset = await self._resolve_token(trace, token, chain)
        if rejection:
            return rejection

        candidates = list(ROUTER_SPENDERS.items()) + venue_spenders(asset)
        known = {address.lower() for _, address in candidates}
        for spender in spenders or ():
            if spender.lower() not in known:
                candidates.append(("custom", spender))
                known.add(spender.lower())

        allowances = await asyncio.gather(
            *(self.reader.get_allowance(asset, wallet_address, address) for _, address in candidates)
        )
        trace.advance(WorkflowStage.BALANCE_CHECKED)

        active = [
            self._describe(label, address, allowance.raw, asset)
            for (label, address), allowance in zip(candidates, allowances)
            if allowance.raw > 0
        ]
        trace.details["checked"] = len(candidates)
        trace.details["approvals"] = active
        for entry in active:
            if entry["unlimited"]:
                trace.warn(f"{entry['label']} {entry['spender']} can spend any amount of your {asset.symbol}")
        self._logger.info(
            "Reviewed %d %s spenders on %s: %d active", len(candidates), asset.symbol, asset.chain, len(active)
        )
        return trace.quoted()

    # =========================================================================
    # revoke
    # =========================================================================

    async def revoke(
        self,
        token: str,
        spender: str,
        chain: str = "base",
        *,
        wallet_address: str,
        execute: bool = True,
    ) -> WorkflowResult:
        """Set ``spender``'s allowance to zero; nothing is written when it already is."""
        trace = WorkflowTrace("revoke_approval", logger=self._logger)

        rejection = require_wallet(trace, wallet_address)
        if rejection:
            return rejection
        if not spender or not is_hex_address(spender):
            return trace.reject("invalid_spender", f"Invalid spender address: {spender!r}")

        rejection, asset = await self._resolve_token(trace, token, chain)
        if rejection:
            return rejection

        # Allowance read stands in for the balance check; failures propagate
        current = await self.reader.get_allowance(asset, wallet_address, spender)
        trace.advance(WorkflowStage.BALANCE_CHECKED)
        labels = {address.lower(): label for label, address in list(ROUTER_SPENDERS.items()) + venue_spenders(asset)}
        label = labels.get(spender.lower(), "custom")
        trace.details["approval"] = self._describe(label, spender, current.raw, asset)
        if current.raw == 0:
            return trace.reject(
                "nothing_to_revoke",
                f"{spender} has no {asset.symbol} allowance on {asset.chain}",
            )
        trace.advance(WorkflowStage.QUOTED)

        self._logger.info(
            "Revoke %s allowance of %s on %s (execute=%s)", asset.symbol, spender, asset.chain, execute
        )
        if not execute:
            return trace.quoted()

        return await self.workflow.settle(
            trace,
            asset=asset,
            owner=wallet_address,
            amount_raw=0,
            spender=None,
            call=PreparedCall(
                to=asset.address,
                data=encode_approve(spender, 0),
                action="revoke",
                venue=label,
                expected_selector=ERC20_APPROVE_SELECTOR,
                word_count=2,
            ),
        )
