"""
Shared fixtures for the booking service tests.

Each test gets its own file-backed SQLite database under ``tmp_path`` so
concurrent sessions see real locking behaviour.
"""

from datetime import date, datetime, time

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from booking_service.database import build_engine, create_tables, get_db
from booking_service.models import STATUS_CONFIRMED, Appointment, ScheduleEntry, Shift

MONDAY = date(2024, 1, 1)
SUNDAY = date(2024, 1, 7)
EMPLOYEE_ID = 7


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}", poolclass=NullPool)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from booking_service.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def add_schedule(db, day_of_week, start, end, is_day_off=False, employee_id=EMPLOYEE_ID):
    db.add(
        ScheduleEntry(
            employee_id=employee_id, day_of_week=day_of_week, start_time=start, end_time=end, is_day_off=is_day_off
        )
    )
    await db.commit()


async def add_shift(db, day, start, end, is_day_off=False, employee_id=EMPLOYEE_ID, branch_id=1):
    db.add(
        Shift(
            employee_id=employee_id,
            branch_id=branch_id,
            date=day,
            start_time=start,
            end_time=end,
            is_day_off=is_day_off,
        )
    )
    await db.commit()


async def add_appointment(db, start, end, status=STATUS_CONFIRMED, employee_id=EMPLOYEE_ID):
    appointment = Appointment(
        employee_id=employee_id, service_id=1, client_id=1, start_time=start, end_time=end, status=status
    )
    db.add(appointment)
    await db.commit()
    return appointment


@pytest.fixture
async def monday_hours(db):
    """Weekly Monday hours 09:00-18:00."""
    await add_schedule(db, 1, time(9, 0), time(18, 0))


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))
