"""
Index Chart — Chart Service
─────────────────────────────
symbols + range → quotes (concurrent) → FX rates (concurrent) → align().

Failure policy:
  isolate_failures=False  one FetchFailure fails the whole chart (default)
  isolate_failures=True   failures are settled per task; a failed symbol
                          becomes an empty column listed in chart.errors,
                          a failed currency is priced at the 1.0 fallback
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from ..errors import FetchFailure
from ..fetchers.quotes import QuoteFetcher, normalise_symbol
from ..fetchers.rates import RateFetcher
from ..models.series import ExchangeRateSeries, PriceSeries, TimeRange
from .align import BASES, CURRENCY_MODES, AlignedChart, align

log = logging.getLogger("chart.service")


@dataclass
class Settled:
    key:   str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle(tasks: Dict[str, Awaitable]) -> List[Settled]:
    """Await every task; never let one failure cancel or hide its siblings."""
    keys = list(tasks)
    raw = await asyncio.gather(*tasks.values(), return_exceptions=True)
    out = []
    for key, r in zip(keys, raw):
        if isinstance(r, FetchFailure):
            out.append(Settled(key, error=r))
        elif isinstance(r, BaseException):
            raise r
        else:
            out.append(Settled(key, value=r))
    return out


def dedupe_symbols(symbols: Iterable[str]) -> List[str]:
    seen, out = set(), []
    for s in symbols:
        s = normalise_symbol(s)
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out


class ChartService:

    def __init__(self, quotes: QuoteFetcher, rates: RateFetcher, isolate_failures: bool = False):
        self.quotes = quotes
        self.rates = rates
        self.isolate_failures = isolate_failures

    async def _fetch_series(self, symbols: List[str], rng: TimeRange):
        errors: Dict[str, str] = {}
        if not self.isolate_failures:
            series = await asyncio.gather(*[self.quotes.fetch_price_series(s, rng) for s in symbols])
            return list(series), errors

        series: List[PriceSeries] = []
        for r in await settle({s: self.quotes.fetch_price_series(s, rng) for s in symbols}):
            if r.ok:
                series.append(r.value)
            else:
                log.warning(f"{r.key}: excluded from chart ({r.error})")
                errors[r.key] = str(r.error)
                series.append(PriceSeries(r.key, [], [], []))
        return series, errors

    async def _fetch_rates(self, currencies: List[str]):
        degraded = set()
        if not currencies:
            return {}, degraded
        if not self.isolate_failures:
            fetched = await asyncio.gather(*[self.rates.fetch_rates(c) for c in currencies])
            return dict(zip(currencies, fetched)), degraded

        rates: Dict[str, ExchangeRateSeries] = {}
        for r in await settle({c: self.rates.fetch_rates(c) for c in currencies}):
            if r.ok:
                rates[r.key] = r.value
            else:
                log.warning(f"{r.key}: rate fetch failed, falling back to parity ({r.error})")
                degraded.add(r.key)
        return rates, degraded

    async def build(self, symbols: Iterable[str], rng, currency: str = "native",
                    basis: str = "price") -> AlignedChart:
        rng = TimeRange.parse(rng)
        if currency.lower() == "usd":
            currency = "USD"
        if currency not in CURRENCY_MODES:
            raise ValueError(f"currency must be one of {CURRENCY_MODES}")
        if basis not in BASES:
            raise ValueError(f"basis must be one of {BASES}")

        symbols = dedupe_symbols(symbols)
        series, errors = await self._fetch_series(symbols, rng)

        rates: Dict[str, ExchangeRateSeries] = {}
        degraded = set()
        if currency == "USD":
            needed = sorted({s.currency for s in series if not s.is_empty and s.currency != "USD"})
            rates, degraded = await self._fetch_rates(needed)

        return align(series, rates, currency=currency, basis=basis, rng=rng.value,
                     errors=errors, degraded_currencies=frozenset(degraded))
