from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_service.database import get_db
from booking_service.deps import parse_day, parse_iso
from booking_service.errors import AppointmentNotFound, OperationTimeout, ResolutionFailure, SlotConflict
from booking_service.schemas import AppointmentOut, BookingIn, CancelIn, SlotOut
from booking_service.services import cancel_appointment, create_booking, get_appointments, get_available_slots

router = APIRouter(tags=["bookings"])


def engine_failure(exc: Exception) -> HTTPException:
    if isinstance(exc, OperationTimeout):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.get("/slots", response_model=list[SlotOut])
async def list_slots(
    employee_id: int = Query(..., gt=0),
    service_id: int = Query(..., gt=0),
    date_str: str = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    day = parse_day(date_str)
    try:
        return await get_available_slots(db, employee_id, service_id, day)
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.post("/bookings", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def book(payload: BookingIn, db: AsyncSession = Depends(get_db)):
    try:
        return await create_booking(
            db,
            employee_id=payload.employee_id,
            service_id=payload.service_id,
            client_id=payload.client_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            comment=payload.comment,
        )
    except SlotConflict as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.post("/bookings/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel(appointment_id: int, payload: CancelIn | None = None, db: AsyncSession = Depends(get_db)):
    try:
        return await cancel_appointment(db, appointment_id, payload.reason if payload else None)
    except AppointmentNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.get("/appointments", response_model=list[AppointmentOut])
async def list_appointments(
    employee_id: int = Query(..., gt=0),
    start: str = Query(...),
    end: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    try:
        range_start, range_end = parse_iso(start), parse_iso(end)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start and end must be ISO datetimes")
    try:
        return await get_appointments(db, employee_id, range_start, range_end)
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)
