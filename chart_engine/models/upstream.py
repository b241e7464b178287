"""
Upstream payload schemas.

Only the fields the fetchers read are declared; everything else Yahoo or
FRED send is ignored. A payload that doesn't fit raises pydantic's
ValidationError, which the fetchers turn into MalformedResponse.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── Yahoo Finance v8/chart ────────────────────────────────────

class YahooMeta(_Lenient):
    symbol:               Optional[str] = None
    currency:             Optional[str] = None
    gmtoffset:            int = 0
    regularMarketPrice:   Optional[float] = None
    regularMarketTime:    Optional[int] = None
    regularMarketVolume:  Optional[float] = None
    chartPreviousClose:   Optional[float] = None
    previousClose:        Optional[float] = None
    fiftyTwoWeekLow:      Optional[float] = None
    fiftyTwoWeekHigh:     Optional[float] = None


class YahooQuoteBlock(_Lenient):
    close:  List[Optional[float]] = Field(default_factory=list)
    volume: List[Optional[float]] = Field(default_factory=list)


class YahooIndicators(_Lenient):
    quote: List[YahooQuoteBlock] = Field(default_factory=list)


class YahooChartResult(_Lenient):
    meta:       YahooMeta
    timestamp:  List[int] = Field(default_factory=list)
    indicators: YahooIndicators = Field(default_factory=YahooIndicators)


class YahooChart(_Lenient):
    result: Optional[List[YahooChartResult]] = None
    error:  Optional[dict] = None


class YahooChartEnvelope(_Lenient):
    chart: YahooChart


# ── FRED series/observations ──────────────────────────────────

class FredObservation(_Lenient):
    date:  str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    value: str


class FredObservations(_Lenient):
    observations: List[FredObservation] = Field(default_factory=list)
