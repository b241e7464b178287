"""
Index Chart — Quote Fetcher
─────────────────────────────
Pulls price history and the headline quote from Yahoo's v8/chart
endpoint and turns them into PriceSeries / CurrentQuote.

Samples with a null or NaN close are dropped here (timestamp and volume
with them). Gaps between symbols are filled later, at alignment time.
"""

import logging
import math
from typing import Optional, Tuple

import httpx
from pydantic import ValidationError

from ..cache.expiring import ExpiringCache
from ..cache.ttl_config import TTL, series_ttl
from ..errors import FetchFailure, MalformedResponse, UpstreamUnavailable
from ..models.series import CurrentQuote, PriceSeries, TimeRange
from ..models.upstream import YahooChartEnvelope, YahooChartResult
from .http import YAHOO_HEADERS, get_json

log = logging.getLogger("chart.quotes")

SOURCE = "yahoo"

YAHOO_URL          = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_FALLBACK_URL = "https://query2.finance.yahoo.com/v8/finance/chart/{symbol}"

EXCHANGE_PREFIXES = {
    "LON:": ".L",
    "EPA:": ".PA",
    "ETR:": ".DE",
    "AMS:": ".AS",
    "TSX:": ".TO",
    "ASX:": ".AX",
}


# Yahoo quotes some listings in minor units (pence, cents, agorot)
MINOR_UNITS = {
    "GBp": ("GBP", 100),
    "GBX": ("GBP", 100),
    "ZAc": ("ZAR", 100),
    "ZAC": ("ZAR", 100),
    "ILA": ("ILS", 100),
}


def major_currency(code: Optional[str]) -> Tuple[str, int]:
    """Currency code → (ISO major currency, divisor for prices)."""
    if not code:
        return "USD", 1
    if code in MINOR_UNITS:
        return MINOR_UNITS[code]
    return code.upper(), 1


def normalise_symbol(symbol: str) -> str:
    symbol = symbol.upper().strip()
    for prefix, suffix in EXCHANGE_PREFIXES.items():
        if symbol.startswith(prefix):
            return symbol[len(prefix):] + suffix
    return symbol


def _is_price(value) -> bool:
    return value is not None and not math.isnan(value)


def parse_chart(symbol: str, payload) -> YahooChartResult:
    """Validate a v8/chart body and return its first result."""
    try:
        envelope = YahooChartEnvelope.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse(SOURCE, symbol, f"unexpected chart payload: {e.error_count()} error(s)") from e
    results = envelope.chart.result
    if not results:
        err = envelope.chart.error or {}
        raise MalformedResponse(SOURCE, symbol, err.get("description") or "chart.result is empty")
    return results[0]


def _scaled(value: Optional[float], divisor: int) -> Optional[float]:
    return None if value is None else value / divisor


def _previous_close(meta) -> Optional[float]:
    return meta.chartPreviousClose if meta.chartPreviousClose is not None else meta.previousClose


def to_price_series(symbol: str, result: YahooChartResult, rng: Optional[TimeRange] = None) -> PriceSeries:
    meta = result.meta
    currency, divisor = major_currency(meta.currency)
    quote = result.indicators.quote[0] if result.indicators.quote else None
    closes = quote.close if quote else []
    volumes = quote.volume if quote else []

    ts_out, close_out, vol_out = [], [], []
    for i, ts in enumerate(result.timestamp):
        price = closes[i] if i < len(closes) else None
        if not _is_price(price):
            continue
        vol = volumes[i] if i < len(volumes) else None
        ts_out.append(int(ts))
        close_out.append(float(price) / divisor)
        vol_out.append(int(vol) if _is_price(vol) else 0)

    dropped = len(result.timestamp) - len(ts_out)
    if dropped:
        log.debug(f"{symbol}: dropped {dropped} sample(s) with no close")

    return PriceSeries(
        symbol=symbol,
        timestamps=ts_out,
        closes=close_out,
        volumes=vol_out,
        utc_offset_seconds=meta.gmtoffset,
        currency=currency,
        range=rng.value if rng else None,
        interval=rng.interval if rng else None,
        previous_close=_scaled(_previous_close(meta), divisor),
        fifty_two_week_low=_scaled(meta.fiftyTwoWeekLow, divisor),
        fifty_two_week_high=_scaled(meta.fiftyTwoWeekHigh, divisor),
    )


def to_current_quote(symbol: str, result: YahooChartResult) -> CurrentQuote:
    meta = result.meta
    currency, divisor = major_currency(meta.currency)
    price = _scaled(meta.regularMarketPrice, divisor)
    prev_close = _scaled(_previous_close(meta), divisor)
    change = (price - prev_close) if price is not None and prev_close is not None else 0.0
    change_pct = (change / prev_close * 100) if prev_close else 0.0
    return CurrentQuote(
        symbol=symbol,
        current_price=price,
        change=round(change, 4),
        change_percent=round(change_pct, 4),
        previous_close=prev_close,
        volume=int(meta.regularMarketVolume) if meta.regularMarketVolume is not None else None,
        fifty_two_week_low=_scaled(meta.fiftyTwoWeekLow, divisor),
        fifty_two_week_high=_scaled(meta.fiftyTwoWeekHigh, divisor),
        last_updated_epoch=meta.regularMarketTime,
        currency=currency,
    )


class QuoteFetcher:
    """
    Yahoo chart client with a cache in front of it.
    The cache and the HTTP client are owned by the caller.
    """

    def __init__(self, client: httpx.AsyncClient, cache: ExpiringCache):
        self.client = client
        self.cache = cache

    async def _fetch_chart(self, symbol: str, range_token: str, interval: str) -> YahooChartResult:
        params = {"range": range_token, "interval": interval}
        last_error: Optional[FetchFailure] = None
        for url_template in (YAHOO_URL, YAHOO_FALLBACK_URL):
            try:
                payload = await get_json(
                    self.client, url_template.format(symbol=symbol),
                    source=SOURCE, key=symbol, params=params, headers=YAHOO_HEADERS,
                )
            except UpstreamUnavailable as e:
                last_error = e
                continue
            return parse_chart(symbol, payload)
        raise last_error

    async def fetch_price_series(self, symbol: str, rng) -> PriceSeries:
        rng = TimeRange.parse(rng)
        symbol = normalise_symbol(symbol)
        key: Tuple[str, str, str] = ("series", symbol, rng.value)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = await self._fetch_chart(symbol, rng.value, rng.interval)
        series = to_price_series(symbol, result, rng)
        if series.is_empty:
            log.info(f"{symbol}: no usable samples for range {rng}")
        self.cache.set(key, series, series_ttl(rng.value))
        return series

    async def fetch_current_quote(self, symbol: str) -> CurrentQuote:
        symbol = normalise_symbol(symbol)
        key = ("quote", symbol)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = await self._fetch_chart(symbol, "1d", "1d")
        quote = to_current_quote(symbol, result)
        self.cache.set(key, quote, TTL["quote"])
        return quote
