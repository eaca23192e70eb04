"""Logical calendar dates anchored to a timezone and a day-boundary hour.

Every "what day is it" decision in the tasks module goes through
``LogicalDate`` so completion, skip, work-session logging and stats
windows agree on the same date for the same instant.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_DAY_BOUNDARY_HOUR = 0


class InvalidTimezoneError(ValueError):
    pass


def ResolveTimezone(name: str | None) -> ZoneInfo:
    candidate = (name or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezoneError(f"Unknown time zone: {candidate}") from exc


def NormalizeBoundaryHour(value: int | None) -> int:
    if value is None:
        return DEFAULT_DAY_BOUNDARY_HOUR
    hour = int(value)
    if hour < 0 or hour > 23:
        raise ValueError("Day boundary hour must be between 0 and 23.")
    return hour


def LocalNow(instant: datetime, timezone_name: str | None) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(ResolveTimezone(timezone_name))


def LogicalDate(
    instant: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
    boundary_hour: int | None = DEFAULT_DAY_BOUNDARY_HOUR,
) -> date:
    """Return the calendar date ``instant`` counts as.

    Local times strictly before ``boundary_hour`` belong to the previous
    day. Naive instants are read as UTC.
    """
    hour = NormalizeBoundaryHour(boundary_hour)
    local = LocalNow(instant, timezone_name)
    if local.hour < hour:
        return local.date() - timedelta(days=1)
    return local.date()


def DateRange(start_date: date, days: int) -> list[date]:
    if days < 0:
        raise ValueError("Days must be zero or positive.")
    return [start_date + timedelta(days=offset) for offset in range(days)]


def DateRangeKeys(start_date: date, days: int) -> list[str]:
    return [value.isoformat() for value in DateRange(start_date, days)]


def TrailingWindow(end_date: date, days: int) -> list[date]:
    return DateRange(end_date - timedelta(days=max(days, 1) - 1), days)
