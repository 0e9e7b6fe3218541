"""
Tests for the approval workflow state machine.

Covers:
- Stage transition table
- Balance check outcomes (enough, short, unreadable)
- Approval-or-execute settlement with exactly one write per invocation
- Exact vs. unlimited approvals and native assets
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from yieldpilot.core.encoding import MAX_UINT256, calldata_words, encode_uint256
from yieldpilot.core.errors import EncodeInvariantViolation, InsufficientBalanceError, UpstreamUnavailableError
from yieldpilot.core.protocols import AaveV3Adapter, SupplyRequest
from yieldpilot.core.tokens import resolve_asset
from yieldpilot.core.workflow import (
    BALANCE_UNVERIFIED_WARNING,
    ApprovalWorkflow,
    InvalidTransitionError,
    PreparedCall,
    WorkflowStage,
    WorkflowStatus,
    WorkflowTrace,
    require_positive_amount,
    require_wallet,
)
from yieldpilot.providers.rpc import TokenAmount
from yieldpilot.providers.signer import SubmissionHandle

WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f1e9A6"


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def usdc():
    return resolve_asset("USDC", "base")


@pytest.fixture
def reader():
    reader = MagicMock()
    reader.get_balance = AsyncMock(return_value=TokenAmount(100_000_000, 6))
    reader.get_allowance = AsyncMock(return_value=TokenAmount(0, 6))
    return reader


@pytest.fixture
def signer():
    signer = MagicMock()
    signer.submit = AsyncMock(return_value=SubmissionHandle(tx_hash="0xhash", chain="base"))
    return signer


@pytest.fixture
def workflow(reader, signer):
    return ApprovalWorkflow(reader, signer)


@pytest.fixture
def supply_call(usdc):
    encoded = AaveV3Adapter().encode_supply(
        SupplyRequest(asset=usdc.address, amount="50", decimals=6, on_behalf_of=WALLET, chain="base")
    )
    return encoded, PreparedCall(
        to=encoded.to,
        data=encoded.data,
        action="supply",
        venue="aave-v3",
        expected_selector=encoded.expected_selector,
        word_count=encoded.word_count,
    )


def quoted_trace(intent="deposit"):
    trace = WorkflowTrace(intent)
    trace.advance(WorkflowStage.BALANCE_CHECKED)
    trace.advance(WorkflowStage.QUOTED)
    return trace


# =============================================================================
# Transitions
# =============================================================================

class TestTransitions:

    def test_starts_validating(self):
        assert WorkflowTrace("swap").stage == WorkflowStage.VALIDATING

    def test_happy_path(self):
        trace = WorkflowTrace("deposit")
        for stage in (
            WorkflowStage.BALANCE_CHECKED,
            WorkflowStage.QUOTED,
            WorkflowStage.APPROVAL_REQUIRED,
            WorkflowStage.APPROVAL_SUBMITTED,
        ):
            trace.advance(stage)
        assert trace.stages[-1] == WorkflowStage.APPROVAL_SUBMITTED

    def test_reject_only_before_quote(self):
        trace = quoted_trace()
        with pytest.raises(InvalidTransitionError):
            trace.advance(WorkflowStage.REJECTED)

    def test_cannot_skip_balance_check(self):
        with pytest.raises(InvalidTransitionError):
            WorkflowTrace("swap").advance(WorkflowStage.QUOTED)

    @pytest.mark.parametrize(
        "terminal",
        [WorkflowStage.EXECUTED, WorkflowStage.APPROVAL_SUBMITTED, WorkflowStage.REJECTED],
    )
    def test_terminal_stages(self, terminal):
        assert WorkflowTrace.TRANSITIONS[terminal] == set()

    def test_reject_result(self):
        result = WorkflowTrace("swap").reject("same_asset", "nope", suggested_action="pick another")
        assert result.status == WorkflowStatus.REJECTED
        assert result.is_rejected
        assert result.rejection.code == "same_asset"
        assert result.to_dict()["stages"] == ["validating", "rejected"]

    def test_warnings_are_deduplicated(self):
        trace = WorkflowTrace("swap")
        trace.warn("a")
        trace.warn("a")
        assert trace.warnings == ["a"]


class TestValidationHelpers:

    def test_invalid_wallet(self):
        result = require_wallet(WorkflowTrace("swap"), "0x1234")
        assert result.rejection.code == "invalid_wallet"

    def test_valid_wallet(self):
        trace = WorkflowTrace("swap")
        assert require_wallet(trace, WALLET) is None
        assert trace.details["wallet_address"] == WALLET

    def test_zero_amount(self, usdc):
        result = require_positive_amount(WorkflowTrace("swap"), "0.0", usdc)
        assert result.rejection.code == "zero_amount"

    def test_malformed_amount(self, usdc):
        result = require_positive_amount(WorkflowTrace("swap"), "-5", usdc)
        assert result.rejection.code == "negative"

    def test_amount_recorded(self, usdc):
        trace = WorkflowTrace("swap")
        assert require_positive_amount(trace, " 12.5 ", usdc) is None
        assert trace.details["amount"] == "12.5"
        assert trace.details["amount_raw"] == "12500000"


# =============================================================================
# Balance check
# =============================================================================

class TestBalanceCheck:

    @pytest.mark.asyncio
    async def test_enough_balance(self, workflow, usdc):
        trace = WorkflowTrace("swap")
        await workflow.check_balance(trace, usdc, WALLET, 50_000_000)
        assert trace.stage == WorkflowStage.BALANCE_CHECKED
        assert trace.details["balance"] == "100"
        assert trace.details["balance_verified"] is True

    @pytest.mark.asyncio
    async def test_shortfall_is_exact(self, workflow, reader, usdc):
        reader.get_balance.return_value = TokenAmount(40_000_000, 6)
        trace = WorkflowTrace("swap")
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await workflow.check_balance(trace, usdc, WALLET, 50_000_000)
        assert exc_info.value.shortfall == "10"
        result = trace.reject_error(exc_info.value)
        assert result.rejection.shortfall == "10"
        assert result.details["shortfall"] == "10"
        assert result.stages == [
            WorkflowStage.VALIDATING,
            WorkflowStage.BALANCE_CHECKED,
            WorkflowStage.REJECTED,
        ]

    @pytest.mark.asyncio
    async def test_unreadable_balance_warns_and_continues(self, workflow, reader, usdc):
        reader.get_balance.side_effect = UpstreamUnavailableError("eth_call", reason="down")
        trace = WorkflowTrace("swap")
        await workflow.check_balance(trace, usdc, WALLET, 50_000_000)
        assert trace.stage == WorkflowStage.BALANCE_CHECKED
        assert BALANCE_UNVERIFIED_WARNING in trace.warnings
        assert trace.details["balance_verified"] is False


# =============================================================================
# Settlement
# =============================================================================

class TestSettle:

    @pytest.mark.asyncio
    async def test_low_allowance_submits_exact_approval_only(self, workflow, signer, usdc, supply_call):
        encoded, call = supply_call
        result = await workflow.settle(
            quoted_trace(), asset=usdc, owner=WALLET, amount_raw=encoded.amount_raw, spender=encoded.to, call=call
        )

        assert result.status == WorkflowStatus.APPROVAL_SUBMITTED
        assert result.approval.needed is True
        assert result.approval.unlimited is False
        signer.submit.assert_awaited_once()
        kwargs = signer.submit.await_args.kwargs
        assert kwargs["to"] == usdc.address
        assert kwargs["action"] == "approve"
        assert calldata_words(kwargs["data"])[1] == encode_uint256(50_000_000)
        assert "next_step" in result.details

    @pytest.mark.asyncio
    async def test_approval_then_execute_across_invocations(self, workflow, reader, signer, usdc, supply_call):
        encoded, call = supply_call
        first = await workflow.settle(
            quoted_trace(), asset=usdc, owner=WALLET, amount_raw=encoded.amount_raw, spender=encoded.to, call=call
        )
        assert first.status == WorkflowStatus.APPROVAL_SUBMITTED

        reader.get_allowance.return_value = TokenAmount(encoded.amount_raw, 6)
        second = await workflow.settle(
            quoted_trace(), asset=usdc, owner=WALLET, amount_raw=encoded.amount_raw, spender=encoded.to, call=call
        )
        assert second.status == WorkflowStatus.EXECUTED
        assert second.tx_hash == "0xhash"
        assert second.approval.needed is False

        actions = [c.kwargs["action"] for c in signer.submit.await_args_list]
        assert actions == ["approve", "supply"]
        assert signer.submit.await_args_list[1].kwargs["data"] == encoded.data

    @pytest.mark.asyncio
    async def test_unlimited_approval_warns(self, workflow, signer, usdc):
        call = PreparedCall(to="0x" + "11" * 20, data="0xdeadbeef", action="swap", venue="0x")
        result = await workflow.settle(
            quoted_trace("swap"),
            asset=usdc,
            owner=WALLET,
            amount_raw=1,
            spender="0x" + "11" * 20,
            call=call,
            unlimited_approval=True,
        )
        assert result.approval.unlimited is True
        assert result.approval.amount_raw == MAX_UINT256
        assert any("unlimited" in w for w in result.warnings)
        assert signer.submit.await_args.kwargs["data"].endswith("f" * 64)

    @pytest.mark.asyncio
    async def test_native_asset_never_needs_approval(self, workflow, reader, signer):
        eth = resolve_asset("ETH", "base")
        call = PreparedCall(to="0x" + "11" * 20, data="0xdeadbeef", action="swap", value=10**17, venue="lifi")
        result = await workflow.settle(
            quoted_trace("swap"), asset=eth, owner=WALLET, amount_raw=10**17, spender=None, call=call
        )
        assert result.status == WorkflowStatus.EXECUTED
        reader.get_allowance.assert_not_awaited()
        assert signer.submit.await_args.kwargs["value"] == 10**17

    @pytest.mark.asyncio
    async def test_allowance_read_failure_propagates_without_write(self, workflow, reader, signer, usdc, supply_call):
        encoded, call = supply_call
        reader.get_allowance.side_effect = UpstreamUnavailableError("eth_call")
        with pytest.raises(UpstreamUnavailableError):
            await workflow.settle(
                quoted_trace(), asset=usdc, owner=WALLET, amount_raw=encoded.amount_raw, spender=encoded.to, call=call
            )
        signer.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_calldata_is_never_submitted(self, workflow, signer, usdc, supply_call):
        encoded, _ = supply_call
        broken = PreparedCall(
            to=encoded.to,
            data=encoded.data[:-2],
            action="supply",
            venue="aave-v3",
            expected_selector=encoded.expected_selector,
            word_count=encoded.word_count,
        )
        with pytest.raises(EncodeInvariantViolation):
            await workflow.settle(
                quoted_trace(), asset=usdc, owner=WALLET, amount_raw=encoded.amount_raw, spender=encoded.to, call=broken
            )
        signer.submit.assert_not_awaited()
