import json

import httpx
import pytest

from chart_engine.cache.expiring import ExpiringCache
from chart_engine.fetchers.quotes import QuoteFetcher
from chart_engine.fetchers.rates import RateFetcher


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def yahoo_chart(symbol, timestamps, closes, volumes=None, currency="USD", gmtoffset=0, **meta):
    """Minimal Yahoo v8/chart body."""
    if volumes is None:
        volumes = [1000] * len(timestamps)
    m = {"symbol": symbol, "currency": currency, "gmtoffset": gmtoffset}
    m.update(meta)
    return {
        "chart": {
            "result": [{
                "meta": m,
                "timestamp": timestamps,
                "indicators": {"quote": [{"close": closes, "volume": volumes}]},
            }],
            "error": None,
        }
    }


def fred_observations(pairs):
    return {"observations": [{"date": d, "value": v} for d, v in pairs]}


class Upstream:
    """
    Routes MockTransport requests to canned Yahoo / FRED answers.
    A canned answer is a dict (JSON body) or an int (status code).
    """

    def __init__(self, charts=None, fred=None):
        self.charts = dict(charts or {})
        self.fred = dict(fred or {})
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.url.host.endswith("finance.yahoo.com"):
            symbol = request.url.path.rsplit("/", 1)[-1]
            answer = self.charts.get(symbol, 404)
        elif request.url.host == "api.stlouisfed.org":
            answer = self.fred.get(request.url.params.get("series_id"), 400)
        else:
            answer = 404
        if isinstance(answer, int):
            return httpx.Response(answer, json={"error": "nope"})
        # json.dumps keeps NaN literals, like Yahoo does
        return httpx.Response(200, content=json.dumps(answer).encode(),
                              headers={"content-type": "application/json"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, host_suffix: str) -> int:
        return sum(1 for r in self.calls if r.url.host.endswith(host_suffix))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ExpiringCache(3600, clock=clock)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def quotes(upstream, cache):
    return QuoteFetcher(upstream.client(), cache)


@pytest.fixture
def rates(upstream, cache):
    return RateFetcher(upstream.client(), cache, api_key="test-key")
