"""
Approval Workflow

Shared state machine behind every value-moving intent:
balance check -> quote -> allowance check -> approve or execute.

Nothing is persisted between invocations. After an approval is submitted the
caller simply invokes the intent again; the fresh allowance read then lets it
proceed straight to execution.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

import structlog
from eth_utils import is_hex_address

from ..amounts import format_raw_amount, to_raw_amount
from ..encoding import MAX_UINT256, encode_approve
from ..errors import AmountError, InsufficientBalanceError, RecoverableError
from ..tokens import Asset
from .models import (
    ApprovalState,
    InvalidTransitionError,
    PreparedCall,
    Rejection,
    WorkflowResult,
    WorkflowStage,
    WorkflowStatus,
)

BALANCE_UNVERIFIED_WARNING = "Could not verify balance; the transaction may fail if funds are short"


class WorkflowTrace:
    """
    Tracks one invocation's path through the workflow stages.

    Every transition is validated against ``TRANSITIONS``; ``Rejected`` can
    only follow ``Validating`` or ``BalanceChecked``.
    """

    TRANSITIONS: Dict[WorkflowStage, Set[WorkflowStage]] = {
        WorkflowStage.VALIDATING: {
            WorkflowStage.BALANCE_CHECKED,
            WorkflowStage.REJECTED,
        },
        WorkflowStage.BALANCE_CHECKED: {
            WorkflowStage.QUOTED,
            WorkflowStage.REJECTED,
        },
        WorkflowStage.QUOTED: {
            WorkflowStage.APPROVAL_REQUIRED,
            WorkflowStage.EXECUTED,
        },
        WorkflowStage.APPROVAL_REQUIRED: {
            WorkflowStage.APPROVAL_SUBMITTED,
        },
        WorkflowStage.APPROVAL_SUBMITTED: set(),
        WorkflowStage.EXECUTED: set(),
        WorkflowStage.REJECTED: set(),
    }

    def __init__(self, intent: str, logger: Optional[logging.Logger] = None):
        self.intent = intent
        structlog.contextvars.bind_contextvars(intent=intent)
        self.logger = logger or logging.getLogger(__name__)
        self.stages: List[WorkflowStage] = [WorkflowStage.VALIDATING]
        self.details: Dict[str, Any] = {}
        self.warnings: List[str] = []

    @property
    def stage(self) -> WorkflowStage:
        return self.stages[-1]

    def can_transition_to(self, to_stage: WorkflowStage) -> bool:
        return to_stage in self.TRANSITIONS.get(self.stage, set())

    def advance(self, to_stage: WorkflowStage) -> None:
        if not self.can_transition_to(to_stage):
            allowed = sorted(s.value for s in self.TRANSITIONS.get(self.stage, set()))
            raise InvalidTransitionError(
                from_stage=self.stage,
                to_stage=to_stage,
                message=f"Invalid transition from {self.stage.value} to {to_stage.value}. Allowed: {allowed}",
            )
        self.logger.debug("%s: %s -> %s", self.intent, self.stage.value, to_stage.value)
        self.stages.append(to_stage)

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def result(
        self,
        status: WorkflowStatus,
        *,
        approval: Optional[ApprovalState] = None,
        tx_hash: Optional[str] = None,
        rejection: Optional[Rejection] = None,
    ) -> WorkflowResult:
        return WorkflowResult(
            status=status,
            intent=self.intent,
            stages=list(self.stages),
            details=dict(self.details),
            warnings=list(self.warnings),
            approval=approval,
            tx_hash=tx_hash,
            rejection=rejection,
        )

    def quoted(self) -> WorkflowResult:
        """Stop after the preview; nothing touches the chain."""
        if self.stage != WorkflowStage.QUOTED:
            self.advance(WorkflowStage.QUOTED)
        return self.result(WorkflowStatus.QUOTED)

    def reject(
        self,
        code: str,
        message: str,
        *,
        shortfall: Optional[str] = None,
        suggested_action: Optional[str] = None,
    ) -> WorkflowResult:
        self.advance(WorkflowStage.REJECTED)
        self.logger.info("%s rejected (%s): %s", self.intent, code, message)
        return self.result(
            WorkflowStatus.REJECTED,
            rejection=Rejection(code, message, shortfall, suggested_action),
        )

    def reject_error(self, error: RecoverableError) -> WorkflowResult:
        shortfall = error.shortfall if isinstance(error, InsufficientBalanceError) else None
        if isinstance(error, InsufficientBalanceError):
            self.details["shortfall"] = shortfall
        return self.reject(
            error.code,
            error.message,
            shortfall=shortfall,
            suggested_action=error.context.suggested_action,
        )


def require_wallet(trace: WorkflowTrace, wallet_address: Optional[str]) -> Optional[WorkflowResult]:
    """Reject unless ``wallet_address`` is a 20-byte hex address."""
    if not wallet_address or not is_hex_address(wallet_address):
        return trace.reject(
            "invalid_wallet",
            f"Invalid wallet address: {wallet_address!r}",
            suggested_action="Connect a wallet or pass a 0x address",
        )
    trace.details["wallet_address"] = wallet_address
    return None


def require_amount_format(trace: WorkflowTrace, amount: str) -> Optional[WorkflowResult]:
    """Reject a malformed amount before the token (and its decimals) is known."""
    try:
        to_raw_amount(amount, 0)
    except AmountError as exc:
        return trace.reject_error(exc)
    return None


def require_positive_amount(trace: WorkflowTrace, amount: str, asset: Asset) -> Optional[WorkflowResult]:
    """Parse ``amount`` for ``asset``; reject malformed or zero amounts.

    The codec itself accepts zero, but a zero-value action is never a real
    intent, so it stops here.
    """
    try:
        amount_raw = to_raw_amount(amount, asset.decimals)
    except AmountError as exc:
        return trace.reject_error(exc)
    if amount_raw == 0:
        return trace.reject(
            "zero_amount",
            "Amount must be greater than zero",
            suggested_action="Enter a positive amount",
        )
    trace.details["amount"] = str(amount).strip()
    trace.details["amount_raw"] = str(amount_raw)
    return None


class ApprovalWorkflow:
    """
    Balance, allowance and submission steps shared by earn, swap and bridge.

    ``reader`` needs ``get_balance`` and ``get_allowance``; ``signer`` needs
    ``submit``. At most one write is issued per invocation.
    """

    def __init__(self, reader: Any, signer: Any, logger: Optional[logging.Logger] = None):
        self.reader = reader
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)

    async def check_balance(self, trace: WorkflowTrace, asset: Asset, owner: str, amount_raw: int) -> None:
        """Advance to ``BalanceChecked``.

        Raises InsufficientBalanceError with the exact shortfall once there;
        the caller turns it into a rejection. A failed read only adds a
        warning and the flow continues without the safety net.
        """
        try:
            balance = await self.reader.get_balance(asset, owner)
        except RecoverableError as exc:
            self.logger.warning("Balance read for %s on %s failed: %s", asset.symbol, asset.chain, exc.message)
            trace.details["balance_verified"] = False
            trace.warn(BALANCE_UNVERIFIED_WARNING)
            trace.advance(WorkflowStage.BALANCE_CHECKED)
            return

        trace.details["balance"] = format_raw_amount(balance.raw, asset.decimals)
        trace.details["balance_verified"] = True
        trace.advance(WorkflowStage.BALANCE_CHECKED)
        if balance.raw < amount_raw:
            raise InsufficientBalanceError(
                required=format_raw_amount(amount_raw, asset.decimals),
                available=format_raw_amount(balance.raw, asset.decimals),
                shortfall=format_raw_amount(amount_raw - balance.raw, asset.decimals),
                asset=asset.symbol,
                chain=asset.chain,
            )

    @staticmethod
    def approval_state(
        asset: Asset,
        spender: Optional[str],
        amount_raw: int,
        allowance_raw: Optional[int],
        *,
        unlimited: bool,
    ) -> ApprovalState:
        """Exact approvals for venues, unlimited for one-shot routers. Native assets never need one."""
        approve_amount = MAX_UINT256 if unlimited else amount_raw
        if asset.is_native or spender is None:
            return ApprovalState(False, spender, approve_amount, unlimited, allowance_raw)
        needed = allowance_raw is None or allowance_raw < amount_raw
        return ApprovalState(needed, spender, approve_amount, unlimited, allowance_raw)

    async def settle(
        self,
        trace: WorkflowTrace,
        *,
        asset: Asset,
        owner: str,
        amount_raw: int,
        spender: Optional[str],
        call: PreparedCall,
        unlimited_approval: bool = False,
    ) -> WorkflowResult:
        """From ``Quoted``: submit either the approval or the call, never both.

        Allowance read failures propagate; without a verified allowance there
        is no safe way to pick between the two writes.
        """
        if trace.stage != WorkflowStage.QUOTED:
            trace.advance(WorkflowStage.QUOTED)

        call.verify()

        allowance_raw: Optional[int] = None
        if spender is not None and not asset.is_native:
            allowance = await self.reader.get_allowance(asset, owner, spender)
            allowance_raw = allowance.raw

        approval = self.approval_state(
            asset, spender, amount_raw, allowance_raw, unlimited=unlimited_approval
        )

        if approval.needed:
            trace.advance(WorkflowStage.APPROVAL_REQUIRED)
            if approval.unlimited:
                trace.warn(
                    f"Granting unlimited {asset.symbol} approval to {call.venue or 'router'} {spender}; "
                    "revoke it later if you no longer use this router"
                )
            approve_call = PreparedCall(
                to=asset.address,
                data=encode_approve(spender, approval.amount_raw),
                action="approve",
                venue=call.venue,
            )
            handle = await self.signer.submit(
                chain=asset.chain,
                to=approve_call.to,
                data=approve_call.data,
                value=0,
                action=approve_call.action,
                venue=approve_call.venue,
            )
            trace.advance(WorkflowStage.APPROVAL_SUBMITTED)
            trace.details["next_step"] = f"Wait for the approval to confirm, then repeat the {trace.intent} request"
            self.logger.info(
                "%s: approval submitted for %s %s to %s (%s)",
                trace.intent,
                "unlimited" if approval.unlimited else format_raw_amount(approval.amount_raw, asset.decimals),
                asset.symbol,
                spender,
                handle.tx_hash,
            )
            return trace.result(WorkflowStatus.APPROVAL_SUBMITTED, approval=approval, tx_hash=handle.tx_hash)

        handle = await self.signer.submit(
            chain=asset.chain,
            to=call.to,
            data=call.data,
            value=call.value,
            action=call.action,
            venue=call.venue,
        )
        trace.advance(WorkflowStage.EXECUTED)
        self.logger.info("%s: %s submitted on %s to %s (%s)", trace.intent, call.action, asset.chain, call.to, handle.tx_hash)
        return trace.result(WorkflowStatus.EXECUTED, approval=approval, tx_hash=handle.tx_hash)
