"""Swap orchestration components."""

from .manager import SwapManager

__all__ = ["SwapManager"]
