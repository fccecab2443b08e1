"""Working-day calculator with configurable public holidays.

Counts whole days only (Mon-Fri), excluding holidays from the `holidays`
package for the configured country/subdivision plus any explicit dates.
Defaults to Scotland, the jurisdiction of the Care Inspectorate.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Iterable

import holidays

from careops.core.config import settings


class InvalidDateError(ValueError):
    """Raised when a calendar function receives something that is not a date."""


def _as_date(value: object, name: str) -> date:
    # datetime is a subclass of date; check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateError(f"{name} must be a date, got {type(value).__name__}")


@lru_cache(maxsize=32)
def _public_holidays(country: str, subdivision: str | None, year: int) -> frozenset[date]:
    """Cache holiday sets per (country, subdivision, year)."""
    return frozenset(holidays.country_holidays(country, subdiv=subdivision, years=year).keys())


class WorkingDayCalendar:
    """Weekends plus public and explicitly configured holidays are non-working."""

    def __init__(
        self,
        country: str | None = None,
        subdivision: str | None = None,
        extra_holidays: Iterable[date] = (),
    ):
        self.country = country or None
        self.subdivision = subdivision or None
        self.extra_holidays = frozenset(extra_holidays)

    def is_holiday(self, day: date) -> bool:
        if day in self.extra_holidays:
            return True
        if self.country is None:
            return False
        return day in _public_holidays(self.country, self.subdivision, day.year)

    def is_working_day(self, day: date) -> bool:
        if day.weekday() >= 5:  # Weekend
            return False
        return not self.is_holiday(day)


WEEKENDS_ONLY = WorkingDayCalendar()


def default_calendar() -> WorkingDayCalendar:
    """Calendar built from HOLIDAY_COUNTRY, HOLIDAY_SUBDIVISION and EXTRA_HOLIDAYS."""
    return WorkingDayCalendar(
        country=settings.HOLIDAY_COUNTRY,
        subdivision=settings.HOLIDAY_SUBDIVISION,
        extra_holidays=settings.extra_holidays_list,
    )


def is_working_day(day: date, calendar: WorkingDayCalendar | None = None) -> bool:
    """Check if a date is a working day (Mon-Fri, not a holiday)."""
    calendar = calendar or default_calendar()
    return calendar.is_working_day(_as_date(day, "day"))


def add_working_days(
    start: date,
    n: int,
    calendar: WorkingDayCalendar | None = None,
) -> date:
    """
    Return the date n working days after start.

    n == 0 returns start unchanged (even if start is itself a weekend or
    holiday). A negative n walks backwards.

    Args:
        start: First date (not counted)
        n: Number of working days to move
        calendar: Holiday calendar; defaults to the configured one

    Returns:
        The resulting working day
    """
    start = _as_date(start, "start")
    if not isinstance(n, int) or isinstance(n, bool):
        raise InvalidDateError(f"n must be an int, got {type(n).__name__}")
    calendar = calendar or default_calendar()

    step = timedelta(days=1 if n >= 0 else -1)
    remaining = abs(n)
    current = start
    while remaining > 0:
        current += step
        if calendar.is_working_day(current):
            remaining -= 1
    return current


def working_days_elapsed(
    start: date,
    end: date,
    calendar: WorkingDayCalendar | None = None,
) -> int:
    """
    Count working days d with start < d <= end.

    Inverse of add_working_days: working_days_elapsed(d, add_working_days(d, n)) == n.
    Returns 0 when end <= start.
    """
    start = _as_date(start, "start")
    end = _as_date(end, "end")
    if end <= start:
        return 0
    calendar = calendar or default_calendar()

    count = 0
    current = start
    while current < end:
        current += timedelta(days=1)
        if calendar.is_working_day(current):
            count += 1
    return count
