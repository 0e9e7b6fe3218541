"""
Quote aggregation across routing services.

Every eligible source is asked concurrently; the best answer wins on net
receivable amount (minimum out after fees and slippage), then on gas.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from ..errors import (
    AllServicesUnavailableError,
    NoRouteFoundError,
    RecoverableError,
    UnsupportedPairError,
)
from .models import Quote, QuoteRequest, QuoteSource


class QuoteAggregator:
    """Fan a quote request out to every source that can serve it."""

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.sources = list(sources)
        self.logger = logger or logging.getLogger(__name__)

    def eligible_sources(self, request: QuoteRequest) -> List[QuoteSource]:
        if request.is_cross_chain:
            return [s for s in self.sources if s.supports_cross_chain]
        return list(self.sources)

    async def get_quote(self, request: QuoteRequest) -> Quote:
        """Return the best quote for ``request``.

        Raises:
            UnsupportedPairError: identical assets, or no source serves the chain pair
            NoRouteFoundError: at least one source answered but none had a route
            AllServicesUnavailableError: every source failed to answer
        """
        if (
            not request.is_cross_chain
            and request.from_asset.address.lower() == request.to_asset.address.lower()
        ):
            raise UnsupportedPairError(
                f"Cannot route {request.from_asset.symbol} into itself on {request.from_chain}"
            )

        sources = self.eligible_sources(request)
        if not sources:
            raise UnsupportedPairError(
                f"No routing service supports {request.from_chain} -> {request.to_chain}"
            )

        results = await asyncio.gather(
            *(source.fetch(request) for source in sources),
            return_exceptions=True,
        )

        quotes: List[Quote] = []
        no_route: Dict[str, str] = {}
        failures: Dict[str, str] = {}
        for source, result in zip(sources, results):
            if isinstance(result, RecoverableError):
                self.logger.warning("Quote source %s failed: %s", source.name, result.message)
                failures[source.name] = result.message
            elif isinstance(result, BaseException):
                # Programming errors are not a routing answer.
                raise result
            elif result is None:
                no_route[source.name] = "no route"
            else:
                quotes.append(result)

        if quotes:
            best = min(quotes, key=lambda q: q.ranking_key())
            self.logger.info(
                "Selected %s quote: %s %s -> %s %s (from %d candidates)",
                best.source,
                best.from_amount,
                best.from_token.symbol,
                best.to_amount,
                best.to_token.symbol,
                len(quotes),
            )
            return best

        if no_route:
            raise NoRouteFoundError(
                f"No route found for {request.amount} {request.from_asset.symbol} -> {request.to_asset.symbol}",
                sources={**failures, **no_route},
            )
        raise AllServicesUnavailableError(
            "All routing services are unavailable",
            sources=failures,
        )
