"""Yield (earn) orchestration components."""

from .manager import EarnManager
from .models import ChainBalance, DepositPlan, YieldOpportunity

__all__ = ["ChainBalance", "DepositPlan", "EarnManager", "YieldOpportunity"]
