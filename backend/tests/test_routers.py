"""
HTTP boundary: authentication, permission checks and error mapping.
"""
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from vetcare.constants import AppointmentStatus, Role
from vetcare.deps import (
    get_appointment_service,
    get_confirmation_service,
    get_directory,
    get_reminder_service,
    get_schedule_service,
)
from vetcare.config import get_settings
from vetcare.main import app
from vetcare.rate_limit import limiter
from vetcare.schemas import UserRecord
from vetcare.security import create_access_token

from fakes import NOW


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
async def api(directory, appointment_service, schedule_service, reminder_service, confirmation_service):
    app.dependency_overrides[get_directory] = lambda: directory
    app.dependency_overrides[get_appointment_service] = lambda: appointment_service
    app.dependency_overrides[get_schedule_service] = lambda: schedule_service
    app.dependency_overrides[get_reminder_service] = lambda: reminder_service
    app.dependency_overrides[get_confirmation_service] = lambda: confirmation_service
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await appointment_service.wait_for_notifications()
    app.dependency_overrides.clear()


def _create_body(hours: float) -> dict:
    return {
        "pet_id": "pet-1",
        "client_id": "client-1",
        "veterinarian_id": "vet-1",
        "appointment_date": (NOW + timedelta(hours=hours)).isoformat(),
        "reason": "Dental cleaning",
    }


# ---------------------- authentication ----------------------


async def test_missing_token_is_401(api):
    response = await api.get("/client/appointments")

    assert response.status_code == 401


async def test_garbage_token_is_401(api):
    response = await api.get("/client/appointments", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


async def test_token_for_unknown_user_is_401(api):
    response = await api.get("/client/appointments", headers=auth("deleted-user"))

    assert response.status_code == 401


# ---------------------- lifecycle ----------------------


async def test_receptionist_creates_appointment(api, store):
    response = await api.post("/appointments", json=_create_body(72), headers=auth("reception-1"))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "SCHEDULED"
    assert body["pet"]["name"] == "Rex"
    assert body["id"] in store.records


async def test_client_cannot_create_appointments(api, store):
    response = await api.post("/appointments", json=_create_body(72), headers=auth("client-1"))

    assert response.status_code == 403
    assert store.records == {}


async def test_past_date_maps_to_invalid_request(api):
    response = await api.post("/appointments", json=_create_body(-1), headers=auth("reception-1"))

    assert response.status_code == 422
    assert response.json()["error"] == "INVALID_REQUEST"


async def test_late_cancel_maps_to_policy_violation(api, make_appointment):
    appt = make_appointment(hours=10)

    response = await api.post(f"/appointments/{appt.id}/cancel", headers=auth("reception-1"))

    assert response.status_code == 409
    assert response.json()["error"] == "POLICY_VIOLATION"


async def test_owner_may_cancel_through_staff_route(api, make_appointment, store):
    appt = make_appointment(hours=48)

    response = await api.post(f"/appointments/{appt.id}/cancel", headers=auth("client-1"))

    assert response.status_code == 200
    assert store.records[appt.id].status == AppointmentStatus.CANCELLED


async def test_stranger_cannot_reschedule(api, make_appointment):
    appt = make_appointment(hours=48)

    response = await api.post(
        f"/appointments/{appt.id}/reschedule",
        json={"new_date": (NOW + timedelta(days=6)).isoformat()},
        headers=auth("client-2"),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "UNAUTHORIZED"


async def test_unknown_appointment_is_404(api):
    response = await api.post("/appointments/missing/cancel", headers=auth("admin-1"))

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


async def test_client_reschedules_own_appointment(api, make_appointment, store):
    appt = make_appointment(hours=48)
    new_date = NOW + timedelta(days=6)

    response = await api.post(
        f"/client/appointments/{appt.id}/reschedule",
        json={"new_date": new_date.isoformat(), "reason": "Work trip"},
        headers=auth("client-1"),
    )

    assert response.status_code == 200
    assert store.records[appt.id].appointment_date == new_date
    assert "Work trip" in store.records[appt.id].notes


async def test_client_route_enforces_ownership(api, make_appointment):
    appt = make_appointment(hours=48)

    response = await api.post(f"/client/appointments/{appt.id}/cancel", headers=auth("client-2"))

    assert response.status_code == 403


# ---------------------- schedule views ----------------------


async def test_vet_daily_defaults_to_calling_vet(api, make_appointment):
    appt = make_appointment(hours=3)

    response = await api.get("/appointments/daily", params={"date": "2030-03-10"}, headers=auth("vet-1"))

    assert response.status_code == 200
    body = response.json()
    assert [a["id"] for a in body["content"]] == [appt.id]
    assert body["total_elements"] == 1


async def test_receptionist_must_name_the_vet(api):
    response = await api.get("/appointments/daily", headers=auth("reception-1"))

    assert response.status_code == 422


async def test_reception_day_view(api, make_appointment):
    appt = make_appointment(hours=34)

    response = await api.get(
        "/reception/appointments/daily",
        params={"date": "2030-03-11", "size": 5},
        headers=auth("reception-1"),
    )

    assert response.status_code == 200
    [row] = response.json()["content"]
    assert row["id"] == appt.id
    assert row["can_cancel"] is True
    assert row["client_name"] == "Ana Lopez"


async def test_client_cannot_use_reception_view(api):
    response = await api.get("/reception/appointments/daily", headers=auth("client-1"))

    assert response.status_code == 403


async def test_bad_sort_direction_is_rejected(api):
    response = await api.get(
        "/reception/appointments/daily", params={"sort_direction": "sideways"}, headers=auth("reception-1")
    )

    assert response.status_code == 422


async def test_my_pets_and_upcoming(api, make_appointment):
    appt = make_appointment(hours=40)

    pets = await api.get("/appointments/my-pets", headers=auth("client-1"))
    upcoming = await api.get("/client/appointments", headers=auth("client-1"))

    assert pets.status_code == 200
    assert pets.json()["content"][0]["pet"]["name"] == "Rex"
    assert upcoming.status_code == 200
    assert upcoming.json()["content"][0]["id"] == appt.id


async def test_staff_have_no_client_view(api):
    response = await api.get("/client/appointments", headers=auth("vet-1"))

    assert response.status_code == 403


# ---------------------- reminders ----------------------


async def test_reminder_config_requires_permission(api):
    assert (await api.get("/reminders/config", headers=auth("reception-1"))).status_code == 403
    assert (await api.get("/reminders/config", headers=auth("admin-1"))).status_code == 200


async def test_user_level_grant_extends_role(api, directory):
    directory.add_user(UserRecord(
        id="reception-2", first_name="Lee", email="lee@vetcare.example",
        role=Role.RECEPTIONIST, permissions=["MANAGE_REMINDERS"],
    ))

    response = await api.get("/reminders/config", headers=auth("reception-2"))

    assert response.status_code == 200
    assert response.json()["reminder_hours_before"] == 24


async def test_update_reminder_config(api):
    response = await api.put(
        "/reminders/config",
        json={"reminder_hours_before": 48, "is_enabled": True, "email_template": "Hi {0}: {4}"},
        headers=auth("admin-1"),
    )

    assert response.status_code == 200
    assert response.json()["reminder_hours_before"] == 48


@pytest.mark.parametrize(
    "body",
    [
        {"reminder_hours_before": -1},
        {"reminder_hours_before": 24, "email_template": "Hi {7}"},
    ],
)
async def test_invalid_reminder_config_is_422(api, body):
    response = await api.put("/reminders/config", json=body, headers=auth("admin-1"))

    assert response.status_code == 422


async def test_manual_sweep_then_public_confirmation(api, make_appointment, token_store, store):
    appt = make_appointment(hours=20)

    sweep = await api.post("/reminders/sweep", headers=auth("admin-1"))

    assert sweep.status_code == 200
    assert sweep.json()["sent"] == 1

    token = token_store.issued[0]
    confirm = await api.get("/reminders/confirm", params={"id": appt.id, "token": token})

    assert confirm.status_code == 200
    assert confirm.json() == {"id": appt.id, "status": "CONFIRMED"}
    assert store.records[appt.id].status == AppointmentStatus.CONFIRMED


async def test_confirmation_with_bad_token(api, make_appointment):
    appt = make_appointment(hours=20)

    response = await api.get("/reminders/confirm", params={"id": appt.id, "token": "forged"})

    assert response.status_code == 403


async def test_confirmation_link_is_throttled(api, make_appointment):
    appt = make_appointment(hours=20)
    allowed = int(get_settings().CONFIRM_RATE_LIMIT.split("/")[0])

    statuses = [
        (await api.get("/reminders/confirm", params={"id": appt.id, "token": "forged"})).status_code
        for _ in range(allowed + 1)
    ]

    assert statuses[:allowed] == [403] * allowed
    assert statuses[-1] == 429
    limited = await api.get("/reminders/confirm", params={"id": appt.id, "token": "forged"})
    assert limited.json()["error"] == "RATE_LIMITED"


async def test_healthz(api):
    response = await api.get("/healthz")

    assert response.json() == {"status": "ok"}
