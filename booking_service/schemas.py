from datetime import date as date_type, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_time: datetime
    end_time: datetime
    is_free: bool


class BookingIn(BaseModel):
    employee_id: int = Field(gt=0)
    service_id: int = Field(gt=0)
    client_id: int = Field(gt=0)
    start_time: datetime
    end_time: Optional[datetime] = None
    comment: str = ""


class CancelIn(BaseModel):
    reason: Optional[str] = None


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    service_id: int
    client_id: int
    start_time: datetime
    end_time: datetime
    status: str
    comment: Optional[str] = None


class ScheduleEntryIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    is_day_off: bool = False


class ScheduleEntryOut(ScheduleEntryIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int


class ShiftIn(BaseModel):
    employee_id: int = Field(gt=0)
    branch_id: int = Field(gt=0)
    date: date_type
    start_time: time
    end_time: time
    is_day_off: bool = False


class ShiftOut(ShiftIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
