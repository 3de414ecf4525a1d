import asyncio
import logging
import weakref
from datetime import date, datetime
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_service import repository
from booking_service.availability import Slot, compute_slots
from booking_service.config import OPERATION_TIMEOUT_SECONDS, SLOT_MINUTES
from booking_service.database import begin_write
from booking_service.errors import (
    AppointmentNotFound,
    ConcurrentConflictDetected,
    OperationTimeout,
    ResolutionFailure,
    SlotConflict,
)
from booking_service.models import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment, ScheduleEntry, Shift
from booking_service.utils import month_bounds, wall_clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EmployeeLocks:
    """One asyncio.Lock per employee, kept per event loop.

    Locks are never pruned; a loop holds at most one per employee it has booked for.
    """

    def __init__(self):
        self._by_loop: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[int, asyncio.Lock]]" = (
            weakref.WeakKeyDictionary()
        )

    def get(self, employee_id: int) -> asyncio.Lock:
        locks = self._by_loop.setdefault(asyncio.get_running_loop(), {})
        lock = locks.get(employee_id)
        if lock is None:
            lock = locks[employee_id] = asyncio.Lock()
        return lock


employee_locks = EmployeeLocks()


async def _with_deadline(db: AsyncSession, operation: Awaitable[T], timeout: Optional[float], name: str) -> T:
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError as exc:
        await db.rollback()
        logger.warning("%s exceeded its %ss deadline", name, timeout)
        raise OperationTimeout(f"{name} timed out after {timeout}s") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("%s failed against the store: %s", name, exc)
        raise ResolutionFailure(f"{name} failed: {exc}") from exc


async def get_available_slots(
    db: AsyncSession,
    employee_id: int,
    service_id: int,
    day: date,
    *,
    slot_minutes: int = SLOT_MINUTES,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> list[Slot]:
    # service_id will select the slot length once durations are priced per service
    return await _with_deadline(db, compute_slots(db, employee_id, day, slot_minutes), timeout, "get_available_slots")


async def _commit_booking(
    db: AsyncSession,
    employee_id: int,
    service_id: int,
    client_id: int,
    start_time: datetime,
    end_time: Optional[datetime],
    comment: Optional[str],
    slot_minutes: int,
) -> Appointment:
    async with employee_locks.get(employee_id):
        await begin_write(db, employee_id)
        try:
            slots = await compute_slots(db, employee_id, start_time.date(), slot_minutes)
            slot = next((s for s in slots if s.start_time == start_time), None)
            if slot is None:
                raise SlotConflict(f"No bookable slot starts at {start_time.isoformat()}")
            if not slot.is_free:
                raise SlotConflict(f"Slot at {start_time.isoformat()} is already taken")
            if end_time is not None and end_time != slot.end_time:
                raise SlotConflict(
                    f"Requested end {end_time.isoformat()} does not match slot end {slot.end_time.isoformat()}"
                )

            appointment = await repository.insert_appointment(
                db,
                Appointment(
                    employee_id=employee_id,
                    service_id=service_id,
                    client_id=client_id,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    status=STATUS_CONFIRMED,
                    comment=comment or None,
                ),
            )
            await repository.add_history(
                db, appointment.id, "create", f"Booked {slot.start_time.isoformat()} - {slot.end_time.isoformat()}"
            )
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            logger.warning(
                "Concurrent booking conflict for employee %s at %s, availability check was stale: %s",
                employee_id,
                start_time,
                exc.orig,
            )
            raise ConcurrentConflictDetected(f"Slot at {start_time.isoformat()} was taken concurrently") from exc
        except SlotConflict as exc:
            await db.rollback()
            logger.warning("Booking rejected for employee %s: %s", employee_id, exc)
            raise
        except Exception:
            await db.rollback()
            raise

    logger.info("Created appointment %s for employee %s at %s", appointment.id, employee_id, appointment.start_time)
    return appointment


async def create_booking(
    db: AsyncSession,
    employee_id: int,
    service_id: int,
    client_id: int,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    comment: Optional[str] = None,
    *,
    slot_minutes: int = SLOT_MINUTES,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> Appointment:
    """Confirm an appointment if ``start_time`` is a free slot right now.

    Availability is recomputed inside a write transaction while holding the
    employee's lock, so two concurrent requests for the same slot cannot both
    pass the check. The partial unique index (and the exclusion constraint on
    PostgreSQL) backs this up across processes; losing there raises
    ``ConcurrentConflictDetected``. Aware datetimes keep their wall-clock
    time and lose the offset.
    """
    start_time = wall_clock(start_time)
    if end_time is not None:
        end_time = wall_clock(end_time)
    return await _with_deadline(
        db,
        _commit_booking(db, employee_id, service_id, client_id, start_time, end_time, comment, slot_minutes),
        timeout,
        "create_booking",
    )


async def cancel_appointment(
    db: AsyncSession,
    appointment_id: int,
    reason: Optional[str] = None,
    *,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> Appointment:
    async def _cancel() -> Appointment:
        appointment = await db.get(Appointment, appointment_id)
        if not appointment:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        if appointment.status == STATUS_CANCELLED:
            logger.info("Appointment %s already cancelled", appointment_id)
            return appointment
        await repository.update_appointment_status(db, appointment_id, STATUS_CANCELLED)
        await repository.add_history(db, appointment_id, "cancel", f"Cancelled: {reason}" if reason else "Cancelled")
        await db.commit()
        await db.refresh(appointment)
        logger.info("Cancelled appointment %s", appointment_id)
        return appointment

    return await _with_deadline(db, _cancel(), timeout, "cancel_appointment")


async def get_appointments(
    db: AsyncSession,
    employee_id: int,
    start: datetime,
    end: datetime,
    *,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> list[Appointment]:
    """Non-cancelled appointments intersecting ``[start, end)``; touching the range is not intersecting."""
    return await _with_deadline(
        db, repository.get_appointments(db, employee_id, wall_clock(start), wall_clock(end)), timeout, "get_appointments"
    )


async def get_schedule(
    db: AsyncSession, employee_id: int, *, timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS
) -> list[ScheduleEntry]:
    return await _with_deadline(db, repository.get_weekly_schedule(db, employee_id), timeout, "get_schedule")


def _validate_hours(start, end, is_day_off: bool, label: str) -> None:
    if not is_day_off and start >= end:
        raise ValueError(f"{label}: start_time must be before end_time")


async def set_schedule(
    db: AsyncSession,
    employee_id: int,
    entries: list[dict],
    *,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> list[ScheduleEntry]:
    """Replace the employee's weekly template with ``entries``."""
    seen = set()
    for entry in entries:
        dow = entry["day_of_week"]
        if not 0 <= dow <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {dow}")
        if dow in seen:
            raise ValueError(f"Duplicate schedule entry for day_of_week {dow}")
        seen.add(dow)
        _validate_hours(entry["start_time"], entry["end_time"], entry.get("is_day_off", False), f"day {dow}")

    async def _replace() -> list[ScheduleEntry]:
        rows = await repository.replace_schedule(db, employee_id, entries)
        await db.commit()
        logger.info("Saved weekly schedule for employee %s (%d days)", employee_id, len(rows))
        return rows

    return await _with_deadline(db, _replace(), timeout, "set_schedule")


async def get_shifts(
    db: AsyncSession,
    employee_id: Optional[int],
    branch_id: Optional[int],
    month: date,
    *,
    timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
) -> list[Shift]:
    """Shifts in the calendar month of ``month``, for a branch when given, else for the employee."""
    first, last = month_bounds(month)
    if branch_id:
        query = repository.get_shifts_by_branch(db, branch_id, first, last)
    elif employee_id:
        query = repository.get_shift_overrides(db, employee_id, first, last)
    else:
        raise ValueError("employee_id or branch_id is required")
    return await _with_deadline(db, query, timeout, "get_shifts")


async def save_shifts(
    db: AsyncSession, shifts: list[dict], *, timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS
) -> list[Shift]:
    seen = set()
    for item in shifts:
        key = (item["employee_id"], item["date"])
        if key in seen:
            raise ValueError(f"Duplicate shift for employee {key[0]} on {key[1]}")
        seen.add(key)
        _validate_hours(item["start_time"], item["end_time"], item.get("is_day_off", False), f"shift {key[1]}")

    async def _upsert() -> list[Shift]:
        rows = await repository.upsert_shifts(db, shifts)
        await db.commit()
        logger.info("Saved %d shifts", len(rows))
        return rows

    return await _with_deadline(db, _upsert(), timeout, "save_shifts")
