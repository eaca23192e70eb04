from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Union

from app.modules.tasks.schemas import TaskRecurrenceType
from app.services.astronomy import SOLAR_EVENT_KINDS, AstronomicalEventKind, NextEvent
from app.services.day_boundary import DEFAULT_TIMEZONE
from app.services.schedules import AddMonths, ClampDay, DaysInMonth

logger = logging.getLogger("app.tasks.recurrence")

LAST_WEEK_OF_MONTH = 5


@dataclass(frozen=True)
class NoRecurrence:
    pass


@dataclass(frozen=True)
class EveryNDaysRule:
    Interval: int


@dataclass(frozen=True)
class WeeklyRule:
    DayOfWeek: int


@dataclass(frozen=True)
class BiweeklyRule:
    DayOfWeek: int


@dataclass(frozen=True)
class MonthlyByDateRule:
    DayOfMonth: int


@dataclass(frozen=True)
class MonthlyByWeekdayRule:
    WeekOfMonth: int
    DayOfWeek: int


@dataclass(frozen=True)
class AnnualRule:
    Month: int
    DayOfMonth: int | None = None


@dataclass(frozen=True)
class AstronomicalRule:
    EventKind: AstronomicalEventKind


@dataclass(frozen=True)
class SeasonalRule:
    pass


@dataclass(frozen=True)
class IncompleteRule:
    """A recurring kind whose required fields are missing or out of range."""

    Kind: str
    MissingFields: tuple[str, ...]


RecurrenceRule = Union[
    NoRecurrence,
    EveryNDaysRule,
    WeeklyRule,
    BiweeklyRule,
    MonthlyByDateRule,
    MonthlyByWeekdayRule,
    AnnualRule,
    AstronomicalRule,
    SeasonalRule,
    IncompleteRule,
]


@dataclass(frozen=True)
class Occurrence:
    DueDate: date | None = None
    DisplayDate: date | None = None

    @property
    def IsEmpty(self) -> bool:
        return self.DueDate is None and self.DisplayDate is None


_ASTRONOMICAL_KINDS = {
    TaskRecurrenceType.NewMoon: AstronomicalEventKind.NewMoon,
    TaskRecurrenceType.FullMoon: AstronomicalEventKind.FullMoon,
    TaskRecurrenceType.SolsticeWinter: AstronomicalEventKind.SolsticeWinter,
    TaskRecurrenceType.EquinoxSpring: AstronomicalEventKind.EquinoxSpring,
    TaskRecurrenceType.SolsticeSummer: AstronomicalEventKind.SolsticeSummer,
    TaskRecurrenceType.EquinoxAutumn: AstronomicalEventKind.EquinoxAutumn,
}


def _InRange(value, low: int, high: int) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if number < low or number > high:
        return None
    return number


def _NormalizeWeekOfMonth(value) -> int | None:
    if _InRange(value, -1, -1) == -1:
        return LAST_WEEK_OF_MONTH
    return _InRange(value, 1, LAST_WEEK_OF_MONTH)


def ParseRecurrenceRule(
    kind: str | TaskRecurrenceType | None,
    interval=None,
    day_of_week=None,
    day_of_month=None,
    week_of_month=None,
    day_of_week_monthly=None,
    month=None,
) -> RecurrenceRule:
    """Build the variant for ``kind`` from a flat record.

    Fields that ``kind`` does not use are ignored. A missing or out-of-range
    required field gives ``IncompleteRule`` rather than an error.
    """
    raw_kind = kind.value if isinstance(kind, TaskRecurrenceType) else (kind or "none")
    try:
        normalized = TaskRecurrenceType(str(raw_kind).strip().lower())
    except ValueError:
        logger.debug("unknown recurrence kind %r", raw_kind)
        return IncompleteRule(Kind=str(raw_kind), MissingFields=("kind",))

    if normalized == TaskRecurrenceType.None_:
        return NoRecurrence()
    if normalized == TaskRecurrenceType.Daily:
        return EveryNDaysRule(Interval=1)
    if normalized == TaskRecurrenceType.EveryNDays:
        value = _InRange(interval, 1, 100000)
        if value is None:
            return IncompleteRule(Kind=normalized.value, MissingFields=("interval",))
        return EveryNDaysRule(Interval=value)
    if normalized in (TaskRecurrenceType.Weekly, TaskRecurrenceType.Biweekly):
        weekday = _InRange(day_of_week, 0, 6)
        if weekday is None:
            return IncompleteRule(Kind=normalized.value, MissingFields=("day_of_week",))
        if normalized == TaskRecurrenceType.Weekly:
            return WeeklyRule(DayOfWeek=weekday)
        return BiweeklyRule(DayOfWeek=weekday)
    if normalized == TaskRecurrenceType.MonthlyByDate:
        day = _InRange(day_of_month, 1, 31)
        if day is None:
            return IncompleteRule(Kind=normalized.value, MissingFields=("day_of_month",))
        return MonthlyByDateRule(DayOfMonth=day)
    if normalized == TaskRecurrenceType.MonthlyByWeekday:
        week = _NormalizeWeekOfMonth(week_of_month)
        weekday = _InRange(day_of_week_monthly, 0, 6)
        missing = tuple(
            name
            for name, value in (("week_of_month", week), ("day_of_week_monthly", weekday))
            if value is None
        )
        if missing:
            return IncompleteRule(Kind=normalized.value, MissingFields=missing)
        return MonthlyByWeekdayRule(WeekOfMonth=week, DayOfWeek=weekday)
    if normalized == TaskRecurrenceType.Annually:
        month_value = _InRange(month, 1, 12)
        if month_value is None:
            return IncompleteRule(Kind=normalized.value, MissingFields=("month",))
        return AnnualRule(Month=month_value, DayOfMonth=_InRange(day_of_month, 1, 31))
    if normalized == TaskRecurrenceType.Seasonal:
        return SeasonalRule()
    return AstronomicalRule(EventKind=_ASTRONOMICAL_KINDS[normalized])


def NthWeekdayOfMonth(year: int, month: int, week_of_month: int, day_of_week: int) -> date:
    if week_of_month >= LAST_WEEK_OF_MONTH:
        last = date(year, month, DaysInMonth(year, month))
        return last - timedelta(days=(last.weekday() - day_of_week) % 7)
    first = date(year, month, 1)
    offset = (day_of_week - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (week_of_month - 1))


def NextRuleDate(
    rule: RecurrenceRule,
    anchor: date | None,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> date | None:
    if anchor is None:
        return None
    if isinstance(rule, EveryNDaysRule):
        return anchor + timedelta(days=rule.Interval)
    if isinstance(rule, WeeklyRule):
        return anchor + timedelta(days=(rule.DayOfWeek - anchor.weekday()) % 7 or 7)
    if isinstance(rule, BiweeklyRule):
        return anchor + timedelta(days=14)
    if isinstance(rule, MonthlyByDateRule):
        return AddMonths(anchor, 1, day=rule.DayOfMonth)
    if isinstance(rule, MonthlyByWeekdayRule):
        following = AddMonths(anchor.replace(day=1), 1)
        return NthWeekdayOfMonth(following.year, following.month, rule.WeekOfMonth, rule.DayOfWeek)
    if isinstance(rule, AnnualRule):
        return ClampDay(anchor.year + 1, rule.Month, rule.DayOfMonth or anchor.day)
    if isinstance(rule, AstronomicalRule):
        return NextEvent(anchor, rule.EventKind, timezone_name=timezone_name)
    if isinstance(rule, SeasonalRule):
        return min(NextEvent(anchor, kind, timezone_name=timezone_name) for kind in SOLAR_EVENT_KINDS)
    return None


def ComputeNextOccurrence(
    rule: RecurrenceRule,
    anchor_due_date: date | None,
    anchor_display_date: date | None,
    display_date_offset: int | None = None,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> Occurrence:
    """Derive the next (due, display) pair from the current instance's dates.

    With an offset the due date is computed from the due anchor (falling back
    to the display anchor) and the display date sits ``offset`` days earlier.
    Without one, both dates advance from that same anchor and the due date
    stays empty when the instance had none. No anchors, kind ``none`` and
    incomplete rules all give an empty ``Occurrence``.
    """
    if anchor_due_date is None and anchor_display_date is None:
        return Occurrence()
    if isinstance(rule, (NoRecurrence, IncompleteRule)):
        return Occurrence()

    if display_date_offset is not None:
        due_date = NextRuleDate(rule, anchor_due_date or anchor_display_date, timezone_name)
        if due_date is None:
            return Occurrence()
        return Occurrence(DueDate=due_date, DisplayDate=due_date - timedelta(days=display_date_offset))

    next_date = NextRuleDate(rule, anchor_due_date or anchor_display_date, timezone_name)
    if next_date is None:
        return Occurrence()
    due_date = next_date if anchor_due_date is not None else None
    return Occurrence(DueDate=due_date, DisplayDate=next_date)
