"""Bridge orchestration components."""

from .manager import BridgeManager

__all__ = ["BridgeManager"]
