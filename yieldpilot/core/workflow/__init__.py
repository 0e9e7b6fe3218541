from .machine import (
    BALANCE_UNVERIFIED_WARNING,
    ApprovalWorkflow,
    WorkflowTrace,
    require_amount_format,
    require_positive_amount,
    require_wallet,
)
from .models import (
    ApprovalState,
    InvalidTransitionError,
    PreparedCall,
    Rejection,
    WorkflowResult,
    WorkflowStage,
    WorkflowStatus,
)

__all__ = [
    "BALANCE_UNVERIFIED_WARNING",
    "ApprovalState",
    "ApprovalWorkflow",
    "InvalidTransitionError",
    "PreparedCall",
    "Rejection",
    "WorkflowResult",
    "WorkflowStage",
    "WorkflowStatus",
    "WorkflowTrace",
    "require_amount_format",
    "require_positive_amount",
    "require_wallet",
]
