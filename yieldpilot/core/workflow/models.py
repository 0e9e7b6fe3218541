"""
Workflow Models

Stages, results and approval state for the approval-gated intent flows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..encoding import check_calldata
from ..errors import EncodeInvariantViolation


class WorkflowStage(str, Enum):
    """Stages an intent passes through."""

    VALIDATING = "validating"
    BALANCE_CHECKED = "balance_checked"
    QUOTED = "quoted"
    APPROVAL_REQUIRED = "approval_required"
    APPROVAL_SUBMITTED = "approval_submitted"
    EXECUTED = "executed"
    REJECTED = "rejected"


class WorkflowStatus(str, Enum):
    """Terminal outcome reported to the caller."""

    QUOTED = "quoted"                          # Preview only, nothing written
    APPROVAL_SUBMITTED = "approval_submitted"  # Approval sent; call again once it confirms
    EXECUTED = "executed"                      # Value-moving call sent
    REJECTED = "rejected"                      # Failed before any write


class InvalidTransitionError(Exception):
    """Raised when a stage transition is not in the transition table."""

    def __init__(
        self,
        from_stage: WorkflowStage,
        to_stage: WorkflowStage,
        message: Optional[str] = None,
    ):
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.message = message or f"Cannot transition from {from_stage.value} to {to_stage.value}"
        super().__init__(self.message)


@dataclass(frozen=True)
class ApprovalState:
    """Derived per invocation from a live allowance read; never stored."""

    needed: bool
    address: Optional[str]
    amount_raw: int
    unlimited: bool = False
    current_allowance_raw: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "needed": self.needed,
            "address": self.address,
            "amount_raw": str(self.amount_raw),
            "unlimited": self.unlimited,
            "current_allowance_raw": (
                str(self.current_allowance_raw) if self.current_allowance_raw is not None else None
            ),
        }


@dataclass(frozen=True)
class Rejection:
    code: str
    message: str
    shortfall: Optional[str] = None
    suggested_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "shortfall": self.shortfall,
            "suggested_action": self.suggested_action,
        }


@dataclass(frozen=True)
class PreparedCall:
    """A write ready for the signer.

    ``expected_selector``/``word_count`` are set for fixed-shape venue calls
    and checked once more right before submission. Router calldata from a
    routing service is only checked for being well-formed hex.
    """

    to: str
    data: str
    action: str
    value: int = 0
    venue: Optional[str] = None
    expected_selector: Optional[str] = None
    word_count: Optional[int] = None

    def verify(self) -> "PreparedCall":
        if self.expected_selector is not None and self.word_count is not None:
            check_calldata(self.data, self.expected_selector, self.word_count)
            return self
        body = self.data[2:] if self.data.startswith("0x") else None
        if body is None or len(body) % 2 or any(c not in "0123456789abcdefABCDEF" for c in body):
            raise EncodeInvariantViolation(f"Malformed calldata for {self.action}", data=self.data[:74])
        return self


@dataclass
class WorkflowResult:
    """Outcome of one intent invocation plus everything needed to render it."""

    status: WorkflowStatus
    intent: str
    stages: List[WorkflowStage] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    approval: Optional[ApprovalState] = None
    tx_hash: Optional[str] = None
    rejection: Optional[Rejection] = None

    @property
    def stage(self) -> WorkflowStage:
        return self.stages[-1]

    @property
    def is_rejected(self) -> bool:
        return self.status == WorkflowStatus.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "intent": self.intent,
            "stages": [stage.value for stage in self.stages],
            "details": self.details,
            "warnings": list(self.warnings),
            "approval": self.approval.to_dict() if self.approval else None,
            "tx_hash": self.tx_hash,
            "rejection": self.rejection.to_dict() if self.rejection else None,
        }
