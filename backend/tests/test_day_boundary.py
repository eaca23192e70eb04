from datetime import date, datetime, timezone

import pytest

from app.services.day_boundary import (
    DateRange,
    DateRangeKeys,
    InvalidTimezoneError,
    LogicalDate,
    ResolveTimezone,
    TrailingWindow,
)


def test_logical_date_before_boundary_is_previous_day():
    # 02:30 in New York on 2024-01-15
    instant = datetime(2024, 1, 15, 7, 30, tzinfo=timezone.utc)
    assert LogicalDate(instant, "America/New_York", 4) == date(2024, 1, 14)
    assert LogicalDate(instant, "America/New_York", 2) == date(2024, 1, 15)


def test_logical_date_at_boundary_counts_as_new_day():
    instant = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
    assert LogicalDate(instant, "America/New_York", 4) == date(2024, 1, 15)


def test_logical_date_midnight_boundary_is_calendar_date():
    instant = datetime(2024, 1, 15, 4, 59, tzinfo=timezone.utc)
    assert LogicalDate(instant, "America/New_York", 0) == date(2024, 1, 14)
    assert LogicalDate(instant, "UTC", 0) == date(2024, 1, 15)


def test_logical_date_across_spring_forward():
    # 03:00 EDT on the morning clocks jump from 02:00 to 03:00
    instant = datetime(2024, 3, 10, 7, 0, tzinfo=timezone.utc)
    assert LogicalDate(instant, "America/New_York", 4) == date(2024, 3, 9)
    assert LogicalDate(instant, "America/New_York", 2) == date(2024, 3, 10)


def test_naive_instant_is_read_as_utc():
    assert LogicalDate(datetime(2024, 6, 1, 2, 0), "America/New_York") == date(2024, 5, 31)


def test_empty_timezone_uses_default():
    assert ResolveTimezone("").key == "America/New_York"
    assert ResolveTimezone(None).key == "America/New_York"


def test_unknown_timezone_raises():
    with pytest.raises(InvalidTimezoneError):
        ResolveTimezone("Mars/Olympus_Mons")


def test_boundary_hour_out_of_range_raises():
    with pytest.raises(ValueError):
        LogicalDate(datetime(2024, 1, 1, tzinfo=timezone.utc), "UTC", 24)


def test_date_range_spans_month_and_year():
    assert DateRange(date(2023, 12, 30), 4) == [
        date(2023, 12, 30),
        date(2023, 12, 31),
        date(2024, 1, 1),
        date(2024, 1, 2),
    ]
    assert DateRangeKeys(date(2024, 2, 28), 3) == ["2024-02-28", "2024-02-29", "2024-03-01"]


def test_date_range_zero_and_negative():
    assert DateRange(date(2024, 1, 1), 0) == []
    with pytest.raises(ValueError):
        DateRange(date(2024, 1, 1), -1)


def test_trailing_window_ends_on_day():
    window = TrailingWindow(date(2024, 3, 2), 3)
    assert window == [date(2024, 2, 29), date(2024, 3, 1), date(2024, 3, 2)]
