"""
Unit tests for ranges.py: input validation and per-day expansion.

Tests cover:
  1. validate_inputs(): missing fields, reversed dates, same-day times
  2. generate_date_ranges(): one descriptor per day, inclusive
  3. default_date_range(): lookback through today
  4. Descriptor instants: UTC start/end and epoch milliseconds
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from kwh_filter.errors import ValidationError
from kwh_filter.models import DateRange, format_instant
from kwh_filter.ranges import (
    default_date_range,
    expand,
    generate_date_ranges,
    validate_inputs,
)


# ============================================================================
# Validation
# ============================================================================

class TestValidateInputs:

    def test_valid_range_passes(self):
        validate_inputs(DateRange("2025-09-20", "2025-09-22"), "00:00", "02:00")

    def test_same_day_valid_times_pass(self):
        validate_inputs(DateRange("2025-09-20", "2025-09-20"), "08:30", "12:00")

    @pytest.mark.parametrize("from_date,to_date", [
        (None, "2025-09-22"),
        ("2025-09-20", None),
        ("", ""),
    ])
    def test_missing_dates(self, from_date, to_date):
        with pytest.raises(ValidationError, match="both from and to dates"):
            validate_inputs(DateRange(from_date, to_date), "00:00", "02:00")

    @pytest.mark.parametrize("from_time,to_time", [
        ("", "02:00"),
        ("00:00", None),
    ])
    def test_missing_times(self, from_time, to_time):
        with pytest.raises(ValidationError, match="both from and to times"):
            validate_inputs(DateRange("2025-09-20", "2025-09-22"), from_time, to_time)

    def test_reversed_dates(self):
        with pytest.raises(ValidationError, match="before or equal"):
            validate_inputs(DateRange("2025-09-23", "2025-09-22"), "00:00", "02:00")

    @pytest.mark.parametrize("from_time,to_time", [
        ("12:00", "12:00"),
        ("16:30", "12:00"),
    ])
    def test_same_day_times_not_increasing(self, from_time, to_time):
        with pytest.raises(ValidationError, match="same date"):
            validate_inputs(DateRange("2025-09-20", "2025-09-20"), from_time, to_time)

    def test_reversed_times_allowed_across_days(self):
        """Only a single-day range requires from_time < to_time."""
        validate_inputs(DateRange("2025-09-20", "2025-09-21"), "16:30", "12:00")

    def test_unparseable_date(self):
        with pytest.raises(ValidationError, match="Invalid date"):
            validate_inputs(DateRange("20-09-2025", "2025-09-22"), "00:00", "02:00")

    def test_unparseable_time(self):
        with pytest.raises(ValidationError, match="Invalid time"):
            validate_inputs(DateRange("2025-09-20", "2025-09-22"), "25:00", "02:00")


# ============================================================================
# Expansion
# ============================================================================

class TestGenerateDateRanges:

    def test_three_day_scenario(self):
        """2025-09-20 to 2025-09-22 gives three descriptors with the window's times."""
        ranges = generate_date_ranges(DateRange("2025-09-20", "2025-09-22"), "00:00", "02:00")

        assert [r.date for r in ranges] == [date(2025, 9, 20), date(2025, 9, 21), date(2025, 9, 22)]
        assert all(r.from_time == "00:00" and r.to_time == "02:00" for r in ranges)
        assert format_instant(ranges[0].start) == "2025-09-20T00:00:00.000Z"
        assert format_instant(ranges[0].end) == "2025-09-20T02:00:00.000Z"
        assert format_instant(ranges[2].end) == "2025-09-22T02:00:00.000Z"

    @pytest.mark.parametrize("start,end", [
        ("2025-09-20", "2025-09-20"),
        ("2025-02-25", "2025-03-03"),
        ("2024-12-30", "2025-01-02"),
        ("2024-02-27", "2024-03-01"),
    ])
    def test_length_and_order(self, start, end):
        ranges = generate_date_ranges(DateRange(start, end), "12:00", "16:30")
        d0 = date.fromisoformat(start)
        d1 = date.fromisoformat(end)

        assert len(ranges) == (d1 - d0).days + 1
        assert ranges[0].date == d0
        assert ranges[-1].date == d1
        for prev, cur in zip(ranges, ranges[1:]):
            assert cur.date - prev.date == timedelta(days=1)

    def test_empty_times_default_to_whole_day(self):
        ranges = generate_date_ranges(DateRange("2025-09-20", "2025-09-20"), "", None)
        assert ranges[0].from_time == "00:00"
        assert ranges[0].to_time == "23:59"

    def test_expand_validates_first(self):
        with pytest.raises(ValidationError):
            expand(DateRange("2025-09-22", "2025-09-20"), "00:00", "02:00")

    def test_epoch_milliseconds(self):
        descriptor = expand(DateRange("2025-09-20", "2025-09-20"), "00:00", "02:00")[0]
        expected = int(datetime(2025, 9, 20, tzinfo=timezone.utc).timestamp()) * 1000

        assert descriptor.start_ts == expected
        assert descriptor.end_ts - descriptor.start_ts == 2 * 60 * 60 * 1000


class TestDefaultDateRange:

    def test_three_day_lookback(self):
        dr = default_date_range(today=date(2025, 9, 22))
        assert dr.from_date == "2025-09-19"
        assert dr.to_date == "2025-09-22"

    def test_custom_lookback(self):
        dr = default_date_range(today=date(2025, 3, 1), lookback_days=1)
        assert dr.from_date == "2025-02-28"
        assert dr.to_date == "2025-03-01"
