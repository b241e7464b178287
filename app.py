import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chart_engine import config
from chart_engine.cache.expiring import ExpiringCache
from chart_engine.cache.ttl_config import DEFAULT_TTL
from chart_engine.catalog import list_indices
from chart_engine.errors import ChartError, FetchFailure
from chart_engine.fetchers.http import make_client
from chart_engine.fetchers.quotes import QuoteFetcher
from chart_engine.fetchers.rates import RateFetcher, normalise_currency
from chart_engine.models.series import TimeRange
from chart_engine.pipeline.chart import ChartService

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
log = logging.getLogger("chart.app")

for noisy in ("httpx", "httpcore", "apscheduler"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app(client: Optional[httpx.AsyncClient] = None,
               fred_api_key: Optional[str] = None,
               isolate_failures: Optional[bool] = None,
               cleanup_interval: Optional[int] = None) -> FastAPI:
    """
    Build the API. Arguments override config; tests inject a client backed
    by httpx.MockTransport and disable the cleanup job with cleanup_interval=0.
    """
    api_key = config.FRED_API_KEY if fred_api_key is None else fred_api_key
    isolate = config.ISOLATE_FETCH_FAILURES if isolate_failures is None else isolate_failures
    interval = config.CACHE_CLEANUP_INTERVAL if cleanup_interval is None else cleanup_interval

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http = client or make_client(config.REQUEST_TIMEOUT)
        cache = ExpiringCache(DEFAULT_TTL)
        quotes = QuoteFetcher(http, cache)
        rates = RateFetcher(http, cache, api_key, config.FX_OBSERVATION_START)

        app.state.cache = cache
        app.state.quotes = quotes
        app.state.rates = rates
        app.state.charts = ChartService(quotes, rates, isolate_failures=isolate)
        app.state.started = time.time()

        async def _sweep():
            cache.cleanup()

        scheduler = None
        if interval > 0:
            scheduler = AsyncIOScheduler()
            scheduler.add_job(_sweep, "interval", seconds=interval, id="cache-cleanup")
            scheduler.start()
            log.info(f"Cache cleanup scheduled every {interval}s")
        if not api_key:
            log.warning("FRED_API_KEY not set; USD conversion will fail for non-USD symbols")

        yield

        if scheduler:
            scheduler.shutdown(wait=False)
        if client is None:
            await http.aclose()

    app = FastAPI(
        title="Index Chart API",
        description="Index price history aligned across exchanges, optionally in USD or % return.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FetchFailure)
    async def fetch_failure_handler(request: Request, exc: FetchFailure):
        log.warning(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"error": "Failed to load data", "detail": str(exc)})

    @app.exception_handler(ChartError)
    async def chart_error_handler(request: Request, exc: ChartError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.get("/")
    async def root():
        return {"status": "ok", "docs": "/docs", "api": "/api/chart?symbols=^GSPC,^FTSE&range=1y"}

    @app.get("/health")
    async def health(request: Request):
        state = request.app.state
        return {
            "status": "healthy",
            "cache_entries": state.cache.live_count(),
            "cache_entries_raw": len(state.cache),
            "fred": "configured" if state.rates.api_key else "missing FRED_API_KEY",
            "uptime_s": int(time.time() - state.started),
            "timestamp": int(time.time()),
        }

    @app.get("/api/market", tags=["Catalog"])
    async def market_indices():
        return list_indices()

    @app.get("/api/quote/{symbol}", tags=["Prices"])
    async def current_quote(symbol: str, request: Request):
        quote = await request.app.state.quotes.fetch_current_quote(symbol)
        return quote.to_dict()

    @app.get("/api/history/{symbol}", tags=["Prices"])
    async def history(symbol: str, request: Request,
                      range: str = Query("1y", description="1d, 5d, 1mo, 6mo, ytd, 1y, 5y, 10y, 20y, max")):
        series = await request.app.state.quotes.fetch_price_series(symbol, TimeRange.parse(range))
        return series.to_dict()

    @app.get("/api/exchange-rates/{currency}", tags=["FX"])
    async def exchange_rates(currency: str, request: Request,
                             start: Optional[str] = Query(None, description="YYYY-MM-DD"),
                             end: Optional[str] = Query(None, description="YYYY-MM-DD")):
        currency = normalise_currency(currency)
        if currency == "USD":
            raise HTTPException(400, "USD is the base currency; its rate is always 1.0")
        series = await request.app.state.rates.fetch_rates(currency)
        return series.window(start, end).to_dict()

    @app.get("/api/chart", tags=["Chart"])
    async def chart(request: Request,
                    symbols: str = Query(..., description="Comma-separated symbols e.g. ^GSPC,^FTSE,^N225"),
                    range: str = Query("1y"),
                    currency: str = Query("native", description="native or USD"),
                    basis: str = Query("price", description="price or percent")):
        raw = [s.strip() for s in symbols.split(",") if s.strip()]
        if not raw:
            raise HTTPException(400, "No symbols provided")
        if len(raw) > config.MAX_CHART_SYMBOLS:
            raise HTTPException(400, f"Maximum {config.MAX_CHART_SYMBOLS} symbols per request")
        try:
            result = await request.app.state.charts.build(raw, range, currency=currency, basis=basis)
        except ChartError:
            raise
        except ValueError as e:
            raise HTTPException(400, str(e))
        return result.to_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=config.PORT, reload=False, log_level="info")
