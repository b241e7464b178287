"""
Index Chart — Rate Fetcher
────────────────────────────
Daily FX history from FRED, always expressed as units of currency per
1 USD, plus "most recent observation on or before" lookups.

FRED series used:
  DEX{CC}US   units of currency per USD (JPY → DEXJPUS, CAD → DEXCAUS, ...)
  DEXUS{CC}   USD per unit of currency (GBP, EUR, AUD, NZD); inverted on load

USD is never fetched. Ask usd_identity_series() for it instead.
"""

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..cache.expiring import ExpiringCache
from ..cache.ttl_config import TTL
from ..errors import MalformedResponse, UnknownCurrency, UpstreamUnavailable
from ..models.series import ExchangeRateSeries, RateObservation
from ..models.upstream import FredObservations
from .http import get_json

log = logging.getLogger("chart.rates")

SOURCE = "fred"

FRED_BASE_URL = "https://api.stlouisfed.org/fred/series/observations"

FALLBACK_RATE = 1.0

# currency → (FRED series id, quoted as USD per unit of currency)
FRED_SERIES: Dict[str, Tuple[str, bool]] = {
    "GBP": ("DEXUSUK", True),
    "EUR": ("DEXUSEU", True),
    "AUD": ("DEXUSAL", True),
    "NZD": ("DEXUSNZ", True),
    "JPY": ("DEXJPUS", False),
    "CAD": ("DEXCAUS", False),
    "CHF": ("DEXSZUS", False),
    "CNY": ("DEXCHUS", False),
    "HKD": ("DEXHKUS", False),
    "INR": ("DEXINUS", False),
    "KRW": ("DEXKOUS", False),
    "TWD": ("DEXTAUS", False),
    "SGD": ("DEXSIUS", False),
    "MYR": ("DEXMAUS", False),
    "THB": ("DEXTHUS", False),
    "MXN": ("DEXMXUS", False),
    "BRL": ("DEXBZUS", False),
    "SEK": ("DEXSDUS", False),
    "NOK": ("DEXNOUS", False),
    "DKK": ("DEXDNUS", False),
    "ZAR": ("DEXSFUS", False),
    "LKR": ("DEXSLUS", False),
    "VES": ("DEXVZUS", False),
}

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def normalise_currency(code: str) -> str:
    code = (code or "").strip().upper()
    if not _CURRENCY_RE.match(code):
        raise UnknownCurrency(f"Currency {code!r} not recognised")
    return code


def series_id_for(currency: str) -> Tuple[str, bool]:
    currency = normalise_currency(currency)
    if currency in FRED_SERIES:
        return FRED_SERIES[currency]
    return f"DEX{currency}US", False


@dataclass(frozen=True)
class RateResolution:
    rate:     float
    date:     Optional[str]   # observation date actually used
    degraded: bool            # True → no observation on/before the date, rate is the 1.0 fallback


def resolve_rate(series: ExchangeRateSeries, date: str) -> RateResolution:
    """Exact date if present, else the latest observation before it, else 1.0."""
    idx = bisect_right(series.dates, date)
    if idx == 0:
        return RateResolution(FALLBACK_RATE, None, True)
    obs = series.observations[idx - 1]
    return RateResolution(obs.rate, obs.date, False)


def rate_for_date(series: ExchangeRateSeries, date: str) -> float:
    return resolve_rate(series, date).rate


def usd_identity_series() -> ExchangeRateSeries:
    return ExchangeRateSeries("USD", [])


def parse_observations(currency: str, payload, inverted: bool = False) -> ExchangeRateSeries:
    try:
        body = FredObservations.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse(SOURCE, currency, f"unexpected observations payload: {e.error_count()} error(s)") from e

    observations = []
    for o in body.observations:
        try:
            rate = float(o.value)
        except ValueError:
            continue          # FRED marks holidays with "."
        if rate != rate or rate <= 0:
            continue
        observations.append(RateObservation(o.date, 1.0 / rate if inverted else rate))
    return ExchangeRateSeries(currency, observations)


class RateFetcher:

    def __init__(self, client: httpx.AsyncClient, cache: ExpiringCache,
                 api_key: str, observation_start: str = "1971-01-01"):
        self.client = client
        self.cache = cache
        self.api_key = api_key
        self.observation_start = observation_start

    async def fetch_rates(self, currency_code: str) -> ExchangeRateSeries:
        currency = normalise_currency(currency_code)
        if currency == "USD":
            raise ValueError("USD needs no exchange rate; use usd_identity_series()")

        cached = self.cache.get(currency)
        if cached is not None:
            return cached

        if not self.api_key:
            raise UpstreamUnavailable(SOURCE, currency, "FRED API key not configured")

        series_id, inverted = series_id_for(currency)
        params = {
            "series_id":         series_id,
            "api_key":           self.api_key,
            "file_type":         "json",
            "observation_start": self.observation_start,
        }
        payload = await get_json(self.client, FRED_BASE_URL, source=SOURCE, key=currency, params=params)
        series = parse_observations(currency, payload, inverted)
        if series.is_empty:
            log.warning(f"{currency}: FRED series {series_id} returned no usable observations")
        else:
            log.info(f"{currency}: {len(series.observations)} observations from {series_id} "
                     f"({series.dates[0]} → {series.dates[-1]})")
        self.cache.set(currency, series, TTL["fx_rates"])
        return series
