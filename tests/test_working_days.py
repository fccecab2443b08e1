"""Tests for working-day arithmetic."""

from datetime import date, datetime, timedelta

import pytest

from careops.utils.working_days import (
    WEEKENDS_ONLY,
    InvalidDateError,
    WorkingDayCalendar,
    add_working_days,
    default_calendar,
    is_working_day,
    working_days_elapsed,
)

MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)
SATURDAY = date(2026, 3, 7)


class TestAddWorkingDays:
    def test_zero_returns_start(self):
        assert add_working_days(MONDAY, 0, WEEKENDS_ONLY) == MONDAY
        assert add_working_days(SATURDAY, 0, WEEKENDS_ONLY) == SATURDAY

    def test_skips_weekend(self):
        assert add_working_days(FRIDAY, 1, WEEKENDS_ONLY) == date(2026, 3, 9)
        assert add_working_days(SATURDAY, 1, WEEKENDS_ONLY) == date(2026, 3, 9)

    def test_twenty_working_days_is_four_weeks(self):
        assert add_working_days(MONDAY, 20, WEEKENDS_ONLY) == date(2026, 3, 30)

    def test_negative_walks_backwards(self):
        assert add_working_days(date(2026, 3, 9), -1, WEEKENDS_ONLY) == FRIDAY
        assert add_working_days(date(2026, 3, 30), -20, WEEKENDS_ONLY) == MONDAY

    def test_datetime_is_normalised(self):
        assert add_working_days(datetime(2026, 3, 6, 23, 30), 1, WEEKENDS_ONLY) == date(2026, 3, 9)

    @pytest.mark.parametrize("bad", [None, "2026-03-02", 20260302])
    def test_rejects_non_dates(self, bad):
        with pytest.raises(InvalidDateError):
            add_working_days(bad, 1, WEEKENDS_ONLY)

    def test_rejects_non_int_count(self):
        with pytest.raises(InvalidDateError):
            add_working_days(MONDAY, 1.5, WEEKENDS_ONLY)

    def test_invalid_date_error_is_value_error(self):
        assert issubclass(InvalidDateError, ValueError)


class TestWorkingDaysElapsed:
    def test_same_day_is_zero(self):
        assert working_days_elapsed(MONDAY, MONDAY, WEEKENDS_ONLY) == 0

    def test_end_before_start_is_zero(self):
        assert working_days_elapsed(FRIDAY, MONDAY, WEEKENDS_ONLY) == 0

    def test_counts_days_after_start_up_to_end(self):
        assert working_days_elapsed(MONDAY, FRIDAY, WEEKENDS_ONLY) == 4
        assert working_days_elapsed(FRIDAY, date(2026, 3, 8), WEEKENDS_ONLY) == 0
        assert working_days_elapsed(FRIDAY, date(2026, 3, 9), WEEKENDS_ONLY) == 1

    @pytest.mark.parametrize("n", [0, 1, 4, 5, 19, 20, 61])
    def test_inverse_of_add_working_days(self, n):
        for start in (MONDAY, FRIDAY, SATURDAY):
            assert working_days_elapsed(start, add_working_days(start, n, WEEKENDS_ONLY), WEEKENDS_ONLY) == n

    def test_monotonic_as_today_advances(self):
        previous = 0
        for offset in range(60):
            elapsed = working_days_elapsed(MONDAY, MONDAY + timedelta(days=offset), WEEKENDS_ONLY)
            assert elapsed >= previous
            previous = elapsed


class TestHolidays:
    def test_extra_holidays_are_skipped(self):
        calendar = WorkingDayCalendar(extra_holidays=[date(2026, 3, 4)])
        assert not calendar.is_working_day(date(2026, 3, 4))
        assert add_working_days(MONDAY, 2, calendar) == date(2026, 3, 5)
        assert working_days_elapsed(MONDAY, date(2026, 3, 5), calendar) == 2

    def test_scottish_public_holidays(self):
        scotland = WorkingDayCalendar(country="GB", subdivision="SCT")
        england = WorkingDayCalendar(country="GB", subdivision="ENG")
        # 2 January is a bank holiday in Scotland only
        assert not is_working_day(date(2026, 1, 2), scotland)
        assert is_working_day(date(2026, 1, 2), england)
        # Good Friday
        assert not is_working_day(date(2026, 4, 3), scotland)
        assert working_days_elapsed(date(2026, 4, 2), date(2026, 4, 3), scotland) == 0

    def test_default_calendar_reads_settings(self, monkeypatch):
        from careops.core.config import settings

        monkeypatch.setattr(settings, "HOLIDAY_COUNTRY", "")
        monkeypatch.setattr(settings, "EXTRA_HOLIDAYS", "2026-03-04, 2026-03-05")
        calendar = default_calendar()
        assert calendar.country is None
        assert calendar.extra_holidays == {date(2026, 3, 4), date(2026, 3, 5)}
        assert add_working_days(MONDAY, 2) == date(2026, 3, 6)
