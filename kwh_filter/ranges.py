"""
Validate user input and expand a date range into per-day queries.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from .config import DEFAULT_FROM_TIME, DEFAULT_LOOKBACK_DAYS, DEFAULT_TO_TIME
from .errors import ValidationError
from .models import DateRange, QueryDescriptor

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_time(value: str) -> time:
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")


def default_date_range(today: Optional[date] = None, lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> DateRange:
    """Today minus the lookback, through today (UTC calendar days)."""
    today = today or datetime.now(timezone.utc).date()
    return DateRange(
        from_date=(today - timedelta(days=lookback_days)).strftime(DATE_FORMAT),
        to_date=today.strftime(DATE_FORMAT),
    )


def validate_inputs(date_range: DateRange, from_time: str, to_time: str) -> None:
    """
    Check a date range and a window's times before any call is made.

    Raises ValidationError with a user-facing message on the first problem.
    """
    if not date_range.from_date or not date_range.to_date:
        raise ValidationError("Please select both from and to dates")

    if not from_time or not to_time:
        raise ValidationError("Please select both from and to times")

    start_day = parse_date(date_range.from_date)
    end_day = parse_date(date_range.to_date)
    start_time = parse_time(from_time)
    end_time = parse_time(to_time)

    if start_day > end_day:
        raise ValidationError("From date must be before or equal to to date")

    if start_day == end_day and start_time >= end_time:
        raise ValidationError("From time must be before to time for the same date")


def generate_date_ranges(date_range: DateRange, from_time: str, to_time: str) -> List[QueryDescriptor]:
    """One descriptor per calendar day, from_date to to_date inclusive."""
    start_day = parse_date(date_range.from_date)
    end_day = parse_date(date_range.to_date)
    from_time = from_time or DEFAULT_FROM_TIME
    to_time = to_time or DEFAULT_TO_TIME

    ranges = []
    current = start_day
    while current <= end_day:
        ranges.append(QueryDescriptor(date=current, from_time=from_time, to_time=to_time))
        current += timedelta(days=1)

    logger.debug(f"Generated {len(ranges)} day ranges for {from_time}-{to_time}")
    return ranges


def expand(date_range: DateRange, from_time: str, to_time: str) -> List[QueryDescriptor]:
    """Validate, then expand. Raises ValidationError on bad input."""
    validate_inputs(date_range, from_time, to_time)
    return generate_date_ranges(date_range, from_time, to_time)
