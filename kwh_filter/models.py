"""
Data structures shared by the range expansion, fetch and aggregation steps.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

POSITIVE = "positive"
NEGATIVE = "negative"

# Cycle states
IDLE = "idle"
VALIDATING = "validating"
FETCHING = "fetching"
AGGREGATING = "aggregating"

ZERO_TOTAL = Decimal("0.00")


@dataclass
class TimeWindow:
    """One time-of-day window and the result of its last cycle."""
    window_id: str
    from_time: str
    to_time: str
    label: str = "SELECT TIME"
    total: Decimal = ZERO_TOTAL
    sign: str = POSITIVE
    busy: bool = False
    state: str = IDLE

    @property
    def display_total(self) -> str:
        return f"{self.total:.2f}"

    @property
    def is_positive(self) -> bool:
        return self.sign == POSITIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.window_id,
            "label": self.label,
            "fromTime": self.from_time,
            "toTime": self.to_time,
            "total": self.display_total,
            "sign": self.sign,
            "isPositive": self.is_positive,
            "busy": self.busy,
            "state": self.state,
        }

    @classmethod
    def from_config(cls, entry: Dict[str, str]) -> "TimeWindow":
        return cls(
            window_id=entry["id"],
            from_time=entry["fromTime"],
            to_time=entry["toTime"],
            label=entry.get("label", "SELECT TIME"),
        )


@dataclass
class DateRange:
    """Inclusive span of calendar days, as entered by the user."""
    from_date: Optional[str]
    to_date: Optional[str]


@dataclass(frozen=True)
class Credentials:
    device_id: str
    token: str


@dataclass(frozen=True)
class QueryDescriptor:
    """One day's query: a calendar day plus the window's times of day."""
    date: date
    from_time: str
    to_time: str

    @property
    def start(self) -> datetime:
        return _combine_utc(self.date, self.from_time)

    @property
    def end(self) -> datetime:
        return _combine_utc(self.date, self.to_time)

    @property
    def start_ts(self) -> int:
        return to_epoch_ms(self.start)

    @property
    def end_ts(self) -> int:
        return to_epoch_ms(self.end)


@dataclass
class QueryResult:
    """Outcome of one remote call. Exactly one of data/error is set."""
    descriptor: QueryDescriptor
    data: Optional[Dict[str, List[Dict[str, Any]]]] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class AggregationSummary:
    total: Decimal = ZERO_TOTAL
    sign: str = NEGATIVE
    has_data: bool = False
    sample_count: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_calls: int = 0
    failures: List[str] = field(default_factory=list)


def _combine_utc(day: date, time_of_day: str) -> datetime:
    hours, minutes = time_of_day.split(":")
    return datetime(day.year, day.month, day.day, int(hours), int(minutes), tzinfo=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch for an aware datetime."""
    return int(dt.timestamp() * 1000)


def format_instant(dt: datetime) -> str:
    """Format as 2025-09-20T00:00:00.000Z."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
