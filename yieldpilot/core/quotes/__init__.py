from .aggregator import QuoteAggregator
from .models import Quote, QuoteRequest, QuoteSource, QuoteToken, QuoteTransaction

__all__ = [
    "Quote",
    "QuoteAggregator",
    "QuoteRequest",
    "QuoteSource",
    "QuoteToken",
    "QuoteTransaction",
]
