import pytest

from chart_engine.errors import MalformedResponse, UnknownCurrency, UpstreamUnavailable
from chart_engine.fetchers.rates import (
    RateFetcher, parse_observations, rate_for_date, resolve_rate, series_id_for,
    usd_identity_series,
)
from chart_engine.models.series import ExchangeRateSeries, RateObservation

from conftest import fred_observations


@pytest.fixture
def eur():
    return ExchangeRateSeries("EUR", [
        RateObservation("2024-01-05", 0.92),
        RateObservation("2024-01-01", 0.90),
    ])


def test_exact_date(eur):
    assert rate_for_date(eur, "2024-01-05") == 0.92


def test_most_recent_prior(eur):
    assert rate_for_date(eur, "2024-01-03") == 0.90
    assert rate_for_date(eur, "2024-02-01") == 0.92


def test_before_all_data_falls_back_to_parity(eur):
    assert rate_for_date(eur, "2023-12-31") == 1.0
    res = resolve_rate(eur, "2023-12-31")
    assert res.degraded
    assert res.date is None


def test_resolution_reports_observation_used(eur):
    res = resolve_rate(eur, "2024-01-04")
    assert (res.rate, res.date, res.degraded) == (0.90, "2024-01-01", False)


def test_empty_series_is_degraded():
    assert resolve_rate(ExchangeRateSeries("XXX", []), "2024-01-01").degraded


def test_series_ids():
    assert series_id_for("jpy") == ("DEXJPUS", False)
    assert series_id_for("ISK") == ("DEXISKUS", False)
    assert series_id_for("GBP") == ("DEXUSUK", True)
    assert series_id_for("CHF") == ("DEXSZUS", False)
    with pytest.raises(UnknownCurrency):
        series_id_for("EURO")


def test_non_numeric_observations_filtered():
    s = parse_observations("JPY", fred_observations([
        ("2024-01-01", "141.2"), ("2024-01-02", "."), ("2024-01-03", "142.0"),
    ]))
    assert s.dates == ["2024-01-01", "2024-01-03"]
    assert [o.rate for o in s.observations] == [141.2, 142.0]


def test_usd_per_unit_series_inverted():
    s = parse_observations("GBP", fred_observations([("2024-01-01", "1.25")]), inverted=True)
    assert s.observations[0].rate == pytest.approx(0.8)


def test_bad_payload_is_malformed():
    with pytest.raises(MalformedResponse):
        parse_observations("JPY", {"observations": [{"date": "Jan 1", "value": "1"}]})


async def test_fetch_rates_queries_fred_and_caches(upstream, rates):
    upstream.fred["DEXJPUS"] = fred_observations([("2024-01-02", "141.0"), ("2024-01-03", "142.5")])
    s = await rates.fetch_rates("jpy")
    assert s.currency == "JPY"
    assert rate_for_date(s, "2024-01-04") == 142.5

    req = upstream.calls[0]
    assert req.url.params["series_id"] == "DEXJPUS"
    assert req.url.params["api_key"] == "test-key"
    assert req.url.params["file_type"] == "json"

    await rates.fetch_rates("JPY")
    assert upstream.count("stlouisfed.org") == 1


async def test_rates_cached_for_a_day(upstream, rates, clock):
    upstream.fred["DEXJPUS"] = fred_observations([("2024-01-02", "141.0")])
    await rates.fetch_rates("JPY")
    clock.advance(23 * 3600)
    await rates.fetch_rates("JPY")
    assert upstream.count("stlouisfed.org") == 1
    clock.advance(3600)
    await rates.fetch_rates("JPY")
    assert upstream.count("stlouisfed.org") == 2


async def test_usd_never_fetched(upstream, rates):
    with pytest.raises(ValueError):
        await rates.fetch_rates("USD")
    assert upstream.calls == []


def test_usd_identity_rate_is_one():
    usd = usd_identity_series()
    assert usd.currency == "USD"
    assert rate_for_date(usd, "2024-01-01") == 1.0


async def test_fred_failure_raises(upstream, rates):
    upstream.fred["DEXJPUS"] = 500
    with pytest.raises(UpstreamUnavailable):
        await rates.fetch_rates("JPY")


async def test_missing_api_key(upstream, cache):
    fetcher = RateFetcher(upstream.client(), cache, api_key="")
    with pytest.raises(UpstreamUnavailable, match="API key"):
        await fetcher.fetch_rates("JPY")
    assert upstream.calls == []
