"""Rota integration interface + in-memory implementation.

The external rota system implements RotaProvider. A provider is bound to one
organisation when it is built and never returns another tenant's shifts.
The compliance engine does not call it yet; the in-memory provider backs
local development and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Protocol
from uuid import UUID

from careops.utils.working_days import InvalidDateError


class ShiftNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise InvalidDateError("DateRange bounds must be dates")
        if self.end < self.start:
            raise InvalidDateError("DateRange end is before start")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class RotaShiftSummary:
    id: UUID
    organisation_id: UUID
    staff_member_id: UUID | None
    service_user_id: UUID | None
    shift_date: date
    start_time: str  # "HH:MM"
    end_time: str
    status: str  # "unfilled", "assigned", "completed", "cancelled"


class RotaProvider(Protocol):
    organisation_id: UUID

    def get_staff_schedule(self, staff_id: UUID, date_range: DateRange) -> list[RotaShiftSummary]:
        """Shifts assigned to one staff member."""

    def get_service_user_visits(
        self, service_user_id: UUID, date_range: DateRange
    ) -> list[RotaShiftSummary]:
        """Visits scheduled for one service user."""

    def get_unfilled_shifts(self, date_range: DateRange) -> list[RotaShiftSummary]:
        """Shifts with no staff member assigned."""

    def assign_staff_to_shift(self, shift_id: UUID, staff_id: UUID) -> None:
        """Assign a staff member to a shift."""


class InMemoryRotaProvider:
    """Dict-backed RotaProvider for one organisation."""

    def __init__(self, organisation_id: UUID, shifts: Iterable[RotaShiftSummary] = ()):
        self.organisation_id = organisation_id
        self._shifts: dict[UUID, RotaShiftSummary] = {
            shift.id: shift for shift in shifts if shift.organisation_id == organisation_id
        }

    def _in_range(self, date_range: DateRange) -> list[RotaShiftSummary]:
        return sorted(
            (s for s in self._shifts.values() if date_range.contains(s.shift_date)),
            key=lambda s: (s.shift_date, s.start_time),
        )

    def get_staff_schedule(self, staff_id: UUID, date_range: DateRange) -> list[RotaShiftSummary]:
        return [s for s in self._in_range(date_range) if s.staff_member_id == staff_id]

    def get_service_user_visits(
        self, service_user_id: UUID, date_range: DateRange
    ) -> list[RotaShiftSummary]:
        return [s for s in self._in_range(date_range) if s.service_user_id == service_user_id]

    def get_unfilled_shifts(self, date_range: DateRange) -> list[RotaShiftSummary]:
        return [s for s in self._in_range(date_range) if s.staff_member_id is None]

    def assign_staff_to_shift(self, shift_id: UUID, staff_id: UUID) -> None:
        shift = self._shifts.get(shift_id)
        if shift is None:
            raise ShiftNotFoundError(f"Shift {shift_id} not found")
        self._shifts[shift_id] = replace(shift, staff_member_id=staff_id, status="assigned")
