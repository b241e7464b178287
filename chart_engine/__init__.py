"""
Index Chart Engine
─────────────────────
Fetches index price history and FX rates, then aligns everything onto
one UTC timeline for charting.

    from chart_engine import ExpiringCache, QuoteFetcher, RateFetcher, ChartService
    chart = await ChartService(quotes, rates).build(["^GSPC", "^FTSE"], "1y", currency="USD")
"""

from .cache.expiring import ExpiringCache, CacheEntry
from .errors import (
    ChartError, FetchFailure, UpstreamUnavailable, MalformedResponse,
    InvalidRange, UnknownCurrency,
)
from .fetchers.quotes import QuoteFetcher
from .fetchers.rates import RateFetcher, rate_for_date, resolve_rate
from .models.series import (
    TimeRange, PriceSeries, CurrentQuote, ExchangeRateSeries, RateObservation,
)
from .pipeline.align import align, AlignedChart, AlignedSeries
from .pipeline.chart import ChartService

__all__ = [
    "ExpiringCache", "CacheEntry",
    "ChartError", "FetchFailure", "UpstreamUnavailable", "MalformedResponse",
    "InvalidRange", "UnknownCurrency",
    "QuoteFetcher", "RateFetcher", "rate_for_date", "resolve_rate",
    "TimeRange", "PriceSeries", "CurrentQuote", "ExchangeRateSeries", "RateObservation",
    "align", "AlignedChart", "AlignedSeries",
    "ChartService",
]
