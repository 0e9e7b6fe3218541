"""Allowance review and revocation."""

from .manager import ROUTER_SPENDERS, UNLIMITED_THRESHOLD, ApprovalManager, venue_spenders

__all__ = ["ROUTER_SPENDERS", "UNLIMITED_THRESHOLD", "ApprovalManager", "venue_spenders"]
