"""
Index Chart — TTL Configuration
─────────────────────────────────
Single source of truth for all cache durations.
Organised by data type: how fast the real world changes.
"""

# ── Per data-type TTL (seconds) ───────────────────────────────

TTL = {
    # Intraday bars: a 5-minute bar goes stale with the next one
    "series_intraday":  5 * 60,         # 5 minutes (1d, 5d)

    # Daily and coarser bars don't change within the hour
    "series_history":   3600,           # 1 hour

    # Headline quote shown above the chart
    "quote":            60,             # 1 minute

    # FRED publishes daily FX observations at most once a day
    "fx_rates":         24 * 3600,      # 1 day
}

DEFAULT_TTL = TTL["series_history"]

INTRADAY_RANGES = frozenset({"1d", "5d"})


def series_ttl(range_token: str) -> int:
    """TTL for a price series fetched for the given range."""
    if range_token in INTRADAY_RANGES:
        return TTL["series_intraday"]
    return TTL["series_history"]
