"""
Availability pipeline: working hours -> candidate slots -> free/busy flags.

A date-specific shift always beats the weekly template; the two sources are
never merged. Slots are whole multiples of the slot length starting at the
window opening time, and a slot is busy iff an active appointment strictly
overlaps it.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from booking_service import repository
from booking_service.models import Appointment, ScheduleEntry, Shift
from booking_service.utils import overlaps, step_slots, weekday_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkingWindow:
    day: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_day_off: bool = False

    @property
    def is_empty(self) -> bool:
        return self.is_day_off or self.start_time is None or self.end_time is None

    @property
    def start(self) -> datetime:
        return datetime.combine(self.day, self.start_time)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.day, self.end_time)


@dataclass
class Slot:
    start_time: datetime
    end_time: datetime
    is_free: bool = True


def _window_from_override(day: date, shift: Shift) -> WorkingWindow:
    return WorkingWindow(day=day, start_time=shift.start_time, end_time=shift.end_time, is_day_off=shift.is_day_off)


def _window_from_template(day: date, entries: Iterable[ScheduleEntry]) -> WorkingWindow:
    dow = weekday_index(day)
    for entry in entries:
        if entry.day_of_week == dow:
            return WorkingWindow(day=day, start_time=entry.start_time, end_time=entry.end_time, is_day_off=entry.is_day_off)
    return WorkingWindow(day=day)


async def resolve_working_window(db: AsyncSession, employee_id: int, day: date) -> WorkingWindow:
    shifts = await repository.get_shift_overrides(db, employee_id, day, day)
    if shifts:
        return _window_from_override(day, shifts[0])

    entries = await repository.get_weekly_schedule(db, employee_id)
    return _window_from_template(day, entries)


def generate_slots(window: WorkingWindow, slot_minutes: int) -> list[Slot]:
    if window.is_empty:
        return []
    return [Slot(start_time=start, end_time=end) for start, end in step_slots(window.start, window.end, slot_minutes)]


def mark_availability(slots: list[Slot], appointments: Iterable[Appointment]) -> list[Slot]:
    appointments = list(appointments)
    for slot in slots:
        slot.is_free = not any(
            overlaps(slot.start_time, slot.end_time, appt.start_time, appt.end_time) for appt in appointments
        )
    return slots


async def compute_slots(db: AsyncSession, employee_id: int, day: date, slot_minutes: int) -> list[Slot]:
    window = await resolve_working_window(db, employee_id, day)
    if window.is_empty:
        logger.debug("No working hours for employee %s on %s", employee_id, day)
        return []

    slots = generate_slots(window, slot_minutes)
    if not slots:
        return []
    appointments = await repository.get_appointments(db, employee_id, window.start, window.end)
    return mark_availability(slots, appointments)
