"""
Manager providers for the intent routers.

Each provider builds its manager once from settings. Tests replace them via
``app.dependency_overrides``.
"""

from typing import List, Optional

from ..config import settings
from ..core.approvals import ApprovalManager
from ..core.bridge import BridgeManager
from ..core.earn import EarnManager
from ..core.quotes import QuoteAggregator, QuoteSource
from ..core.swap import SwapManager
from ..core.workflow import ApprovalWorkflow
from ..providers.defillama import YieldDataProvider
from ..providers.lifi import LifiQuoteSource
from ..providers.rpc import ChainReader
from ..providers.signer import RemoteSigner
from ..providers.zerox import ZeroXQuoteSource

_reader: Optional[ChainReader] = None
_workflow: Optional[ApprovalWorkflow] = None
_aggregator: Optional[QuoteAggregator] = None
_earn_manager: Optional[EarnManager] = None
_swap_manager: Optional[SwapManager] = None
_bridge_manager: Optional[BridgeManager] = None
_approval_manager: Optional[ApprovalManager] = None


def build_quote_sources() -> List[QuoteSource]:
    """Enabled quote services; 0x is skipped without an API key."""
    sources: List[QuoteSource] = []
    if settings.enable_lifi:
        sources.append(LifiQuoteSource())
    if settings.enable_zerox and settings.has_zerox_key:
        sources.append(ZeroXQuoteSource())
    return sources


def get_chain_reader() -> ChainReader:
    global _reader
    if _reader is None:
        _reader = ChainReader(settings.rpc_urls)
    return _reader


def get_workflow() -> ApprovalWorkflow:
    global _workflow
    if _workflow is None:
        _workflow = ApprovalWorkflow(get_chain_reader(), RemoteSigner())
    return _workflow


def get_quote_aggregator() -> QuoteAggregator:
    global _aggregator
    if _aggregator is None:
        _aggregator = QuoteAggregator(build_quote_sources())
    return _aggregator


def get_earn_manager() -> EarnManager:
    """Get or create the earn manager."""
    global _earn_manager
    if _earn_manager is None:
        _earn_manager = EarnManager(
            reader=get_chain_reader(),
            yields=YieldDataProvider(),
            workflow=get_workflow(),
        )
    return _earn_manager


def get_swap_manager() -> SwapManager:
    """Get or create the swap manager."""
    global _swap_manager
    if _swap_manager is None:
        _swap_manager = SwapManager(
            reader=get_chain_reader(),
            aggregator=get_quote_aggregator(),
            workflow=get_workflow(),
        )
    return _swap_manager


def get_bridge_manager() -> BridgeManager:
    """Get or create the bridge manager."""
    global _bridge_manager
    if _bridge_manager is None:
        _bridge_manager = BridgeManager(
            reader=get_chain_reader(),
            aggregator=get_quote_aggregator(),
            workflow=get_workflow(),
        )
    return _bridge_manager


def get_approval_manager() -> ApprovalManager:
    global _approval_manager
    if _approval_manager is None:
        _approval_manager = ApprovalManager(reader=get_chain_reader(), workflow=get_workflow())
    return _approval_manager
