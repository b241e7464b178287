"""
Index Chart — Errors
──────────────────────
FetchFailure covers everything an upstream can do wrong. Missing data is
not an error: an empty series or a degraded FX rate is returned instead.
"""

from typing import Optional


class ChartError(Exception):
    """Base class for every error raised by chart_engine."""


class FetchFailure(ChartError):
    """An upstream fetch did not produce usable data."""

    def __init__(self, source: str, key: str, message: str, status: Optional[int] = None):
        self.source = source
        self.key = key
        self.status = status
        super().__init__(f"{source} [{key}]: {message}")


class UpstreamUnavailable(FetchFailure):
    """Non-success status or transport failure."""


class MalformedResponse(FetchFailure):
    """Upstream answered 200 but the body does not match its schema."""


class InvalidRange(ChartError, ValueError):
    pass


class UnknownCurrency(ChartError, ValueError):
    pass
