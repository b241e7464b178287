import math

import pytest

from chart_engine.errors import InvalidRange, MalformedResponse, UpstreamUnavailable
from chart_engine.fetchers.quotes import major_currency, normalise_symbol
from chart_engine.models.series import INTERVAL_FOR_RANGE, TimeRange

from conftest import yahoo_chart


def test_range_interval_policy():
    expected = {
        "1d": "5m", "5d": "15m", "1mo": "1d", "6mo": "1d", "ytd": "1d", "1y": "1d",
        "5y": "1wk", "10y": "1mo", "20y": "1mo", "max": "1mo",
    }
    assert {r.value: i for r, i in INTERVAL_FOR_RANGE.items()} == expected


def test_unknown_range_rejected():
    with pytest.raises(InvalidRange):
        TimeRange.parse("3y")
    assert TimeRange.parse(" YTD ") is TimeRange.YTD


def test_normalise_symbol():
    assert normalise_symbol(" lon:vod ") == "VOD.L"
    assert normalise_symbol("^gspc") == "^GSPC"


def test_minor_currency_units():
    assert major_currency("GBp") == ("GBP", 100)
    assert major_currency("eur") == ("EUR", 1)
    assert major_currency(None) == ("USD", 1)


async def test_null_and_nan_closes_dropped_in_lockstep(upstream, quotes):
    upstream.charts["^N225"] = yahoo_chart(
        "^N225",
        [100, 200, 300, 400, 500],
        [10.0, None, float("nan"), 13.0, 14.0],
        volumes=[1, 2, 3, None, 5],
        currency="JPY", gmtoffset=32400,
    )
    s = await quotes.fetch_price_series("^N225", "1y")
    assert s.timestamps == [100, 400, 500]
    assert s.closes == [10.0, 13.0, 14.0]
    assert s.volumes == [1, 0, 5]
    assert s.currency == "JPY"
    assert s.utc_offset_seconds == 32400
    assert s.interval == "1d"
    assert all(not math.isnan(c) for c in s.closes)


async def test_sends_range_and_interval(upstream, quotes):
    upstream.charts["^GSPC"] = yahoo_chart("^GSPC", [1], [1.0])
    await quotes.fetch_price_series("^GSPC", "5y")
    params = upstream.calls[0].url.params
    assert params["range"] == "5y"
    assert params["interval"] == "1wk"


async def test_all_null_prices_give_empty_series(upstream, quotes):
    upstream.charts["XYZ"] = yahoo_chart("XYZ", [1, 2], [None, None])
    s = await quotes.fetch_price_series("XYZ", "1mo")
    assert s.is_empty
    assert s.timestamps == s.closes == s.volumes == []


async def test_missing_currency_defaults_to_usd(upstream, quotes):
    body = yahoo_chart("ABC", [1], [2.0])
    del body["chart"]["result"][0]["meta"]["currency"]
    upstream.charts["ABC"] = body
    s = await quotes.fetch_price_series("ABC", "1y")
    assert s.currency == "USD"


async def test_pence_converted_to_pounds(upstream, quotes):
    upstream.charts["VOD.L"] = yahoo_chart("VOD.L", [1], [7050.0], currency="GBp", chartPreviousClose=7000.0)
    s = await quotes.fetch_price_series("VOD.L", "1y")
    assert s.currency == "GBP"
    assert s.closes == [70.5]
    assert s.previous_close == 70.0


async def test_series_cached_per_symbol_and_range(upstream, quotes):
    upstream.charts["^GSPC"] = yahoo_chart("^GSPC", [1], [1.0])
    await quotes.fetch_price_series("^GSPC", "1y")
    await quotes.fetch_price_series("^gspc", "1y")
    assert upstream.count("yahoo.com") == 1
    await quotes.fetch_price_series("^GSPC", "5d")
    assert upstream.count("yahoo.com") == 2


async def test_intraday_series_expire_before_daily(upstream, quotes, clock):
    upstream.charts["^GSPC"] = yahoo_chart("^GSPC", [1], [1.0])
    await quotes.fetch_price_series("^GSPC", "1d")
    await quotes.fetch_price_series("^GSPC", "1y")
    clock.advance(6 * 60)
    await quotes.fetch_price_series("^GSPC", "1d")
    await quotes.fetch_price_series("^GSPC", "1y")
    assert upstream.count("yahoo.com") == 3


async def test_upstream_failure_raises(upstream, quotes):
    upstream.charts["BAD"] = 500
    with pytest.raises(UpstreamUnavailable) as exc:
        await quotes.fetch_price_series("BAD", "1y")
    assert exc.value.status == 500
    # query1 then query2
    assert upstream.count("yahoo.com") == 2


async def test_failures_are_not_cached(upstream, quotes):
    upstream.charts["FLAKY"] = 503
    with pytest.raises(UpstreamUnavailable):
        await quotes.fetch_price_series("FLAKY", "1y")
    upstream.charts["FLAKY"] = yahoo_chart("FLAKY", [1], [3.0])
    s = await quotes.fetch_price_series("FLAKY", "1y")
    assert s.closes == [3.0]


async def test_empty_result_is_malformed(upstream, quotes):
    upstream.charts["GONE"] = {"chart": {"result": None, "error": {"code": "Not Found", "description": "No data found"}}}
    with pytest.raises(MalformedResponse, match="No data found"):
        await quotes.fetch_price_series("GONE", "1y")


async def test_schema_violation_is_malformed(upstream, quotes):
    upstream.charts["ODD"] = {"chart": {"result": [{"timestamp": [1]}]}}
    with pytest.raises(MalformedResponse):
        await quotes.fetch_price_series("ODD", "1y")


async def test_current_quote(upstream, quotes):
    upstream.charts["^GSPC"] = yahoo_chart(
        "^GSPC", [1], [5010.0],
        regularMarketPrice=5010.0, chartPreviousClose=5000.0, regularMarketVolume=2_500_000,
        regularMarketTime=1_700_000_123, fiftyTwoWeekLow=4100.0, fiftyTwoWeekHigh=5100.0,
    )
    q = await quotes.fetch_current_quote("^GSPC")
    assert q.current_price == 5010.0
    assert q.change == 10.0
    assert q.change_percent == pytest.approx(0.2)
    assert q.previous_close == 5000.0
    assert q.volume == 2_500_000
    assert q.last_updated_epoch == 1_700_000_123
    assert (q.fifty_two_week_low, q.fifty_two_week_high) == (4100.0, 5100.0)
    params = upstream.calls[0].url.params
    assert (params["range"], params["interval"]) == ("1d", "1d")


async def test_current_quote_without_previous_close(upstream, quotes):
    upstream.charts["NEW"] = yahoo_chart("NEW", [1], [1.0], regularMarketPrice=12.0)
    q = await quotes.fetch_current_quote("NEW")
    assert q.change == 0.0
    assert q.change_percent == 0.0
