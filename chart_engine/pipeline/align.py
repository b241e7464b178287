"""
Index Chart — Timeline Aligner & Normalizer
─────────────────────────────────────────────
Puts N independently sampled series on one UTC axis.

  1. UTC-normalise every sample: utc = local - utc_offset_seconds
  2. Timeline = sorted, de-duplicated union of all UTC instants
  3. Reindex each series onto the timeline
  4. Forward-fill gaps (never back-fill: no invented history)
  5. Optional USD conversion, using the FX rate of each point's own UTC day
  6. Optional percentage basis: value / first non-null value * 100

A naive index-by-index merge would pair up unrelated trading days across
exchanges; the union-of-instants axis is what keeps them apart.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

import pandas as pd

from ..fetchers.rates import resolve_rate
from ..models.series import ExchangeRateSeries, PriceSeries

log = logging.getLogger("chart.align")

CURRENCY_MODES = ("native", "USD")
BASES          = ("price", "percent")

Values = List[Optional[float]]


# ── Step helpers ──────────────────────────────────────────────

def _to_list(s: pd.Series) -> Values:
    return [None if pd.isna(v) else float(v) for v in s.tolist()]


def to_utc(series: PriceSeries) -> pd.Series:
    """Closes indexed by UTC epoch seconds."""
    s = pd.Series(series.closes, index=series.utc_timestamps(), dtype="float64")
    # provider guarantees ascending local timestamps; guard anyway so reindex can't fail
    return s[~s.index.duplicated(keep="last")].sort_index()


def build_timeline(series_list: Iterable[PriceSeries]) -> List[int]:
    index = pd.Index([], dtype="int64")
    for series in series_list:
        if series.is_empty:
            continue
        index = index.union(pd.Index(series.utc_timestamps(), dtype="int64"))
    return [int(ts) for ts in index.unique().sort_values()]


def align_series(series: PriceSeries, timeline: Sequence[int]) -> Values:
    if series.is_empty:
        return [None] * len(timeline)
    return _to_list(to_utc(series).reindex(list(timeline)).ffill())


def forward_fill(values: Sequence[Optional[float]]) -> Values:
    """[None, 5, None, None, 8] → [None, 5, 5, 5, 8]"""
    return _to_list(pd.Series(list(values), dtype="float64").ffill())


def calendar_dates(timeline: Sequence[int]) -> List[str]:
    """UTC calendar day (YYYY-MM-DD) of each timestamp."""
    if not timeline:
        return []
    return list(pd.to_datetime(list(timeline), unit="s", utc=True).strftime("%Y-%m-%d"))


@dataclass
class UsdConversion:
    values:          Values
    degraded_points: int = 0    # points priced with the 1.0 fallback rate


def to_usd(values: Sequence[Optional[float]], timeline: Sequence[int],
           rates: Optional[ExchangeRateSeries]) -> UsdConversion:
    """Divide each value by the rate in effect on its own UTC day."""
    if rates is None:
        return UsdConversion(list(values))

    out: Values = []
    degraded = 0
    rate_by_day: Dict[str, tuple] = {}
    for value, day in zip(values, calendar_dates(timeline)):
        if value is None:
            out.append(None)
            continue
        if day not in rate_by_day:
            res = resolve_rate(rates, day)
            rate_by_day[day] = (res.rate, res.degraded)
        rate, is_fallback = rate_by_day[day]
        degraded += is_fallback
        out.append(value / rate)
    return UsdConversion(out, degraded)


def to_percent_basis(values: Sequence[Optional[float]]) -> Values:
    base = next((v for v in values if v is not None), None)
    if not base:
        return [None] * len(values)
    return [None if v is None else v / base * 100 for v in values]


# ── Output models ─────────────────────────────────────────────

@dataclass
class SeriesSummary:
    previous_close: Optional[float] = None
    volume:         Optional[int] = None
    low:            Optional[float] = None    # over the window, not the 52-week figure
    high:           Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "previous_close": self.previous_close,
            "volume":         self.volume,
            "low":            self.low,
            "high":           self.high,
        }


def summarize(values: Sequence[Optional[float]], series: PriceSeries) -> SeriesSummary:
    known = [v for v in values if v is not None]
    return SeriesSummary(
        previous_close=series.previous_close,
        volume=series.volumes[-1] if series.volumes else None,
        low=min(known) if known else None,
        high=max(known) if known else None,
    )


@dataclass
class AlignedSeries:
    symbol:          str
    currency:        str
    native:          Values
    usd:             Optional[Values] = None
    percent:         Optional[Values] = None
    summary:         SeriesSummary = field(default_factory=SeriesSummary)
    fx_degraded:     bool = False
    degraded_points: int = 0

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in self.native)

    @property
    def display(self) -> Values:
        """The representation a chart should draw."""
        if self.percent is not None:
            return self.percent
        if self.usd is not None:
            return self.usd
        return self.native

    def to_dict(self) -> dict:
        d = {
            "symbol":      self.symbol,
            "currency":    self.currency,
            "native":      self.native,
            "summary":     self.summary.to_dict(),
            "fx_degraded": self.fx_degraded,
        }
        if self.usd is not None:
            d["usd"] = self.usd
            d["degraded_points"] = self.degraded_points
        if self.percent is not None:
            d["percent"] = self.percent
        return d


@dataclass
class AlignedChart:
    timeline: List[int]
    series:   Dict[str, AlignedSeries]
    currency: str = "native"
    basis:    str = "price"
    range:    Optional[str] = None
    errors:   Dict[str, str] = field(default_factory=dict)

    @property
    def excluded(self) -> List[str]:
        return [sym for sym, s in self.series.items() if s.is_empty]

    def to_dict(self) -> dict:
        return {
            "range":      self.range,
            "currency":   self.currency,
            "basis":      self.basis,
            "timestamps": self.timeline,
            "dates":      calendar_dates(self.timeline),
            "series":     [s.to_dict() for s in self.series.values() if not s.is_empty],
            "excluded":   self.excluded,
            "errors":     self.errors,
        }


# ── Pipeline ──────────────────────────────────────────────────

def align(series_list: Sequence[PriceSeries],
          rates: Optional[Dict[str, ExchangeRateSeries]] = None,
          currency: str = "native",
          basis: str = "price",
          rng: Optional[str] = None,
          errors: Optional[Dict[str, str]] = None,
          degraded_currencies: FrozenSet[str] = frozenset()) -> AlignedChart:
    """
    Align every series onto one timeline and derive the requested views.

    rates maps currency code → series; a non-USD currency missing from it
    is priced at the 1.0 fallback and flagged fx_degraded.
    """
    if currency not in CURRENCY_MODES:
        raise ValueError(f"currency must be one of {CURRENCY_MODES}, got {currency!r}")
    if basis not in BASES:
        raise ValueError(f"basis must be one of {BASES}, got {basis!r}")
    rates = rates or {}

    timeline = build_timeline(series_list)
    out: Dict[str, AlignedSeries] = {}

    for series in series_list:
        native = align_series(series, timeline)
        aligned = AlignedSeries(symbol=series.symbol, currency=series.currency, native=native)
        price_view = native

        if currency == "USD" and series.currency != "USD":
            fx = rates.get(series.currency)
            if fx is None:
                fx = ExchangeRateSeries(series.currency, [])
            conv = to_usd(native, timeline, fx)
            aligned.usd = conv.values
            aligned.degraded_points = conv.degraded_points
            aligned.fx_degraded = conv.degraded_points > 0 or series.currency in degraded_currencies
            if aligned.fx_degraded:
                log.warning(f"{series.symbol}: no {series.currency} rate for "
                            f"{conv.degraded_points} point(s), priced at parity with USD")
            price_view = conv.values
        elif currency == "USD":
            aligned.usd = list(native)
            price_view = aligned.usd

        if basis == "percent":
            aligned.percent = to_percent_basis(price_view)

        aligned.summary = summarize(price_view, series)
        out[series.symbol] = aligned

    chart = AlignedChart(
        timeline=timeline, series=out, currency=currency, basis=basis,
        range=rng, errors=dict(errors or {}),
    )
    if chart.excluded:
        log.info(f"No data for {', '.join(chart.excluded)}; excluded from chart")
    log.info(f"Aligned {len(out)} series onto {len(timeline)} timestamps")
    return chart
