import calendar
from datetime import date


def DaysInMonth(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def ClampDay(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, DaysInMonth(year, month)))


def AddMonths(start_date: date, months: int, day: int | None = None) -> date:
    total = start_date.month - 1 + months
    year = start_date.year + total // 12
    month = total % 12 + 1
    return ClampDay(year, month, day or start_date.day)
