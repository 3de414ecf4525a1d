from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_service.database import get_db
from booking_service.deps import parse_day
from booking_service.errors import OperationTimeout, ResolutionFailure
from booking_service.routers.bookings import engine_failure
from booking_service.schemas import ScheduleEntryIn, ScheduleEntryOut, ShiftIn, ShiftOut
from booking_service.services import get_schedule, get_shifts, save_shifts, set_schedule

router = APIRouter(tags=["schedules"])


@router.get("/schedules/{employee_id}", response_model=list[ScheduleEntryOut])
async def read_schedule(employee_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await get_schedule(db, employee_id)
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.post("/schedules/{employee_id}", response_model=list[ScheduleEntryOut])
async def write_schedule(employee_id: int, entries: list[ScheduleEntryIn], db: AsyncSession = Depends(get_db)):
    try:
        return await set_schedule(db, employee_id, [entry.model_dump() for entry in entries])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.get("/shifts", response_model=list[ShiftOut])
async def read_shifts(
    month: str = Query(...),
    employee_id: int | None = Query(None),
    branch_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await get_shifts(db, employee_id, branch_id, parse_day(month))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)


@router.post("/shifts", response_model=list[ShiftOut])
async def write_shifts(shifts: list[ShiftIn], db: AsyncSession = Depends(get_db)):
    try:
        return await save_shifts(db, [shift.model_dump() for shift in shifts])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except (OperationTimeout, ResolutionFailure) as exc:
        raise engine_failure(exc)
