"""
Queries the booking engine runs against the store.

Every function takes the request's ``AsyncSession`` and leaves commit to the
caller, so a whole booking can run inside one transaction.
"""

from datetime import date, datetime

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_service.models import STATUS_CANCELLED, Appointment, AppointmentHistory, ScheduleEntry, Shift


async def get_shift_overrides(db: AsyncSession, employee_id: int, start: date, end: date) -> list[Shift]:
    result = await db.scalars(
        select(Shift)
        .where(and_(Shift.employee_id == employee_id, Shift.date >= start, Shift.date <= end))
        .order_by(Shift.date)
    )
    return list(result.all())


async def get_shifts_by_branch(db: AsyncSession, branch_id: int, start: date, end: date) -> list[Shift]:
    result = await db.scalars(
        select(Shift)
        .where(and_(Shift.branch_id == branch_id, Shift.date >= start, Shift.date <= end))
        .order_by(Shift.date, Shift.employee_id)
    )
    return list(result.all())


async def upsert_shifts(db: AsyncSession, shifts: list[dict]) -> list[Shift]:
    saved = []
    for item in shifts:
        existing = await db.scalar(
            select(Shift).where(and_(Shift.employee_id == item["employee_id"], Shift.date == item["date"]))
        )
        if existing:
            for key, value in item.items():
                setattr(existing, key, value)
            saved.append(existing)
        else:
            shift = Shift(**item)
            db.add(shift)
            saved.append(shift)
    await db.flush()
    return saved


async def get_weekly_schedule(db: AsyncSession, employee_id: int) -> list[ScheduleEntry]:
    result = await db.scalars(
        select(ScheduleEntry).where(ScheduleEntry.employee_id == employee_id).order_by(ScheduleEntry.day_of_week)
    )
    return list(result.all())


async def replace_schedule(db: AsyncSession, employee_id: int, entries: list[dict]) -> list[ScheduleEntry]:
    await db.execute(delete(ScheduleEntry).where(ScheduleEntry.employee_id == employee_id))
    rows = [ScheduleEntry(employee_id=employee_id, **entry) for entry in entries]
    db.add_all(rows)
    await db.flush()
    return sorted(rows, key=lambda row: row.day_of_week)


async def get_appointments(db: AsyncSession, employee_id: int, start: datetime, end: datetime) -> list[Appointment]:
    """Non-cancelled appointments of the employee that intersect ``[start, end)``."""
    result = await db.scalars(
        select(Appointment)
        .where(
            and_(
                Appointment.employee_id == employee_id,
                Appointment.status != STATUS_CANCELLED,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
        )
        .order_by(Appointment.start_time)
    )
    return list(result.all())


async def insert_appointment(db: AsyncSession, appointment: Appointment) -> Appointment:
    db.add(appointment)
    await db.flush()
    return appointment


async def update_appointment_status(db: AsyncSession, appointment_id: int, status: str) -> int:
    result = await db.execute(update(Appointment).where(Appointment.id == appointment_id).values(status=status))
    return result.rowcount


async def add_history(db: AsyncSession, appointment_id: int, event_type: str, description: str) -> None:
    db.add(AppointmentHistory(appointment_id=appointment_id, event_type=event_type, description=description))
