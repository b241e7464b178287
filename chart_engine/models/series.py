"""
Index Chart — Series Models
─────────────────────────────
Typed shapes that flow between the fetchers, the aligner and the API.
Fetchers build these from validated upstream payloads; nothing downstream
ever sees raw JSON.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional

from ..errors import InvalidRange


class TimeRange(str, Enum):
    D1  = "1d"
    D5  = "5d"
    M1  = "1mo"
    M6  = "6mo"
    YTD = "ytd"
    Y1  = "1y"
    Y5  = "5y"
    Y10 = "10y"
    Y20 = "20y"
    MAX = "max"

    def __str__(self) -> str:
        return self.value

    @property
    def interval(self) -> str:
        return INTERVAL_FOR_RANGE[self]

    @classmethod
    def parse(cls, token) -> "TimeRange":
        if isinstance(token, cls):
            return token
        try:
            return cls(str(token).strip().lower())
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise InvalidRange(f"Unknown range {token!r} (expected one of: {valid})") from None


# Fixed sampling policy, not configurable per call
INTERVAL_FOR_RANGE: Dict[TimeRange, str] = {
    TimeRange.D1:  "5m",
    TimeRange.D5:  "15m",
    TimeRange.M1:  "1d",
    TimeRange.M6:  "1d",
    TimeRange.YTD: "1d",
    TimeRange.Y1:  "1d",
    TimeRange.Y5:  "1wk",
    TimeRange.Y10: "1mo",
    TimeRange.Y20: "1mo",
    TimeRange.MAX: "1mo",
}


@dataclass
class PriceSeries:
    """
    One symbol's history for one range.
    timestamps are exchange-local epoch seconds, strictly ascending.
    """
    symbol:             str
    timestamps:         List[int]
    closes:             List[float]
    volumes:            List[int]
    utc_offset_seconds: int = 0
    currency:           str = "USD"
    range:              Optional[str] = None
    interval:           Optional[str] = None
    previous_close:     Optional[float] = None
    fifty_two_week_low:  Optional[float] = None
    fifty_two_week_high: Optional[float] = None

    def __post_init__(self):
        if not (len(self.timestamps) == len(self.closes) == len(self.volumes)):
            raise ValueError(
                f"{self.symbol}: timestamps/closes/volumes length mismatch "
                f"({len(self.timestamps)}/{len(self.closes)}/{len(self.volumes)})"
            )

    @property
    def is_empty(self) -> bool:
        return not self.timestamps

    def utc_timestamps(self) -> List[int]:
        return [ts - self.utc_offset_seconds for ts in self.timestamps]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["count"] = len(self.timestamps)
        return d


@dataclass
class CurrentQuote:
    symbol:              str
    current_price:       Optional[float]
    change:              float
    change_percent:      float
    previous_close:      Optional[float]
    volume:              Optional[int]
    fifty_two_week_low:  Optional[float]
    fifty_two_week_high: Optional[float]
    last_updated_epoch:  Optional[int]
    currency:            str = "USD"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RateObservation:
    date: str      # YYYY-MM-DD
    rate: float    # units of currency per 1 USD


@dataclass
class ExchangeRateSeries:
    currency:     str
    observations: List[RateObservation] = field(default_factory=list)

    def __post_init__(self):
        self.observations = sorted(self.observations, key=lambda o: o.date)
        self._dates = [o.date for o in self.observations]

    @property
    def dates(self) -> List[str]:
        return self._dates

    @property
    def is_empty(self) -> bool:
        return not self.observations

    def window(self, start: Optional[str] = None, end: Optional[str] = None) -> "ExchangeRateSeries":
        obs = [
            o for o in self.observations
            if (start is None or o.date >= start) and (end is None or o.date <= end)
        ]
        return ExchangeRateSeries(self.currency, obs)

    def to_dict(self) -> dict:
        return {
            "currency":     self.currency,
            "count":        len(self.observations),
            "observations": [{"date": o.date, "rate": o.rate} for o in self.observations],
        }
