"""
Index Chart — Configuration
─────────────────────────────
Every tunable lives here. Override via environment variables (or a .env
file in the working directory).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Upstreams ──────────────────────────────────────────────────
FRED_API_KEY         = os.environ.get("FRED_API_KEY", "")
REQUEST_TIMEOUT      = float(os.environ.get("REQUEST_TIMEOUT", "10"))
FX_OBSERVATION_START = os.environ.get("FX_OBSERVATION_START", "1971-01-01")

# ── Cache ──────────────────────────────────────────────────────
CACHE_CLEANUP_INTERVAL = int(os.environ.get("CACHE_CLEANUP_INTERVAL", "600"))   # seconds

# ── Chart pipeline ─────────────────────────────────────────────
# false → one failed symbol fails the whole chart
ISOLATE_FETCH_FAILURES = os.environ.get("ISOLATE_FETCH_FAILURES", "false").lower() == "true"
MAX_CHART_SYMBOLS      = int(os.environ.get("MAX_CHART_SYMBOLS", "20"))

# ── Server ─────────────────────────────────────────────────────
PORT      = int(os.environ.get("PORT", "8000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
