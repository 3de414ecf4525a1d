"""
Route tests for the JSON delivery layer.
"""

from datetime import time

from sqlalchemy.ext.asyncio import AsyncSession

from booking_service.database import get_db
from booking_service.models import STATUS_CANCELLED
from conftest import add_appointment, add_schedule, at


async def test_slots_endpoint(client, db, monday_hours):
    await add_appointment(db, at(10), at(10, 30))

    response = await client.get("/slots", params={"employee_id": 7, "service_id": 1, "date": "2024-01-01"})

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 18
    assert body[0] == {"start_time": "2024-01-01T09:00:00", "end_time": "2024-01-01T09:30:00", "is_free": True}
    assert [s["start_time"] for s in body if not s["is_free"]] == ["2024-01-01T10:00:00"]


async def test_slots_accepts_datetime_date_param(client, monday_hours):
    response = await client.get(
        "/slots", params={"employee_id": 7, "service_id": 1, "date": "2024-01-01T00:00:00Z"}
    )
    assert response.status_code == 200
    assert len(response.json()) == 18


async def test_slots_rejects_bad_date(client):
    response = await client.get("/slots", params={"employee_id": 7, "service_id": 1, "date": "tomorrow"})
    assert response.status_code == 400


async def test_slots_empty_on_day_off(client, db):
    await add_schedule(db, 1, time(9, 0), time(18, 0), is_day_off=True)
    response = await client.get("/slots", params={"employee_id": 7, "service_id": 1, "date": "2024-01-01"})
    assert response.status_code == 200
    assert response.json() == []


async def test_create_booking_and_conflict(client, monday_hours):
    payload = {
        "employee_id": 7,
        "service_id": 1,
        "client_id": 5,
        "start_time": "2024-01-01T10:00:00+03:00",
        "end_time": "2024-01-01T10:30:00+03:00",
        "comment": "haircut",
    }
    created = await client.post("/bookings", json=payload)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "confirmed"
    assert body["start_time"] == "2024-01-01T10:00:00"

    again = await client.post("/bookings", json={**payload, "client_id": 6})
    assert again.status_code == 409


async def test_misaligned_booking_is_conflict(client, monday_hours):
    response = await client.post(
        "/bookings",
        json={
            "employee_id": 7,
            "service_id": 1,
            "client_id": 5,
            "start_time": "2024-01-01T10:15:00",
            "end_time": "2024-01-01T10:45:00",
        },
    )
    assert response.status_code == 409


async def test_cancel_booking(client, monday_hours):
    created = await client.post(
        "/bookings",
        json={"employee_id": 7, "service_id": 1, "client_id": 5, "start_time": "2024-01-01T11:00:00"},
    )
    appointment_id = created.json()["id"]

    cancelled = await client.post(f"/bookings/{appointment_id}/cancel", json={"reason": "sick"})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    missing = await client.post("/bookings/999/cancel")
    assert missing.status_code == 404


async def test_schedule_round_trip(client):
    entries = [
        {"day_of_week": 1, "start_time": "09:00:00", "end_time": "18:00:00"},
        {"day_of_week": 0, "start_time": "00:00:00", "end_time": "00:00:00", "is_day_off": True},
    ]
    saved = await client.post("/schedules/7", json=entries)
    assert saved.status_code == 200

    response = await client.get("/schedules/7")
    assert [e["day_of_week"] for e in response.json()] == [0, 1]
    assert response.json()[1]["start_time"] == "09:00:00"


async def test_schedule_rejects_duplicate_days(client):
    entries = [
        {"day_of_week": 1, "start_time": "09:00:00", "end_time": "18:00:00"},
        {"day_of_week": 1, "start_time": "10:00:00", "end_time": "12:00:00"},
    ]
    response = await client.post("/schedules/7", json=entries)
    assert response.status_code == 400


async def test_shifts_round_trip(client):
    shifts = [
        {"employee_id": 7, "branch_id": 2, "date": "2024-01-01", "start_time": "12:00:00", "end_time": "14:00:00"},
        {"employee_id": 8, "branch_id": 2, "date": "2024-01-02", "start_time": "09:00:00", "end_time": "13:00:00"},
    ]
    saved = await client.post("/shifts", json=shifts)
    assert saved.status_code == 200

    by_branch = await client.get("/shifts", params={"branch_id": 2, "month": "2024-01-01"})
    assert [s["employee_id"] for s in by_branch.json()] == [7, 8]

    by_employee = await client.get("/shifts", params={"employee_id": 7, "month": "2024-01-15"})
    assert [s["date"] for s in by_employee.json()] == ["2024-01-01"]

    slots = await client.get("/slots", params={"employee_id": 7, "service_id": 1, "date": "2024-01-01"})
    assert [s["start_time"] for s in slots.json()] == [
        "2024-01-01T12:00:00",
        "2024-01-01T12:30:00",
        "2024-01-01T13:00:00",
        "2024-01-01T13:30:00",
    ]


async def test_shifts_require_a_filter(client):
    response = await client.get("/shifts", params={"month": "2024-01-01"})
    assert response.status_code == 400


async def test_list_appointments(client, db, monday_hours):
    await client.post(
        "/bookings",
        json={"employee_id": 7, "service_id": 1, "client_id": 5, "start_time": "2024-01-01T10:00:00"},
    )
    await add_appointment(db, at(11), at(11, 30), status=STATUS_CANCELLED)

    response = await client.get(
        "/appointments", params={"employee_id": 7, "start": "2024-01-01T00:00:00", "end": "2024-01-02T00:00:00"}
    )
    assert response.status_code == 200
    assert [(a["start_time"], a["status"]) for a in response.json()] == [("2024-01-01T10:00:00", "confirmed")]


async def test_list_appointments_rejects_bad_range(client):
    response = await client.get("/appointments", params={"employee_id": 7, "start": "soon", "end": "later"})
    assert response.status_code == 400


async def test_get_db_yields_a_session():
    sessions = get_db()
    session = await sessions.__anext__()
    assert isinstance(session, AsyncSession)
    await sessions.aclose()
