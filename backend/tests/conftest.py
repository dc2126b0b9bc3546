"""
Shared fixtures: in-memory gateways, a frozen clock and seeded directory data.
"""
import os
import tempfile
from datetime import datetime, timedelta
from uuid import uuid4

# Settings are read at import time; keep test runs off MongoDB and the real mailer
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "vetcare-test-logs"))
os.environ["EMAIL_PROVIDER"] = "log"
os.environ["REMINDER_SWEEP_ENABLED"] = "false"
os.environ["APP_DEBUG"] = "false"

import pytest

from vetcare.constants import AppointmentStatus, Role
from vetcare.schemas import AppointmentRecord, PetRecord, UserRecord
from vetcare.services.appointment_service import AppointmentService
from vetcare.services.confirmation_service import ConfirmationService
from vetcare.services.notifier import Notifier
from vetcare.services.reminder_service import ReminderService
from vetcare.services.schedule_service import ScheduleService

from fakes import (
    FakeAppointmentStore,
    FakeDirectory,
    FakeReminderConfigStore,
    FakeTokenStore,
    FrozenClock,
    NOW,
    PUBLIC_BASE_URL,
    RecordingChannel,
)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def store() -> FakeAppointmentStore:
    return FakeAppointmentStore()


@pytest.fixture
def directory() -> FakeDirectory:
    directory = FakeDirectory()
    directory.add_user(UserRecord(
        id="client-1", first_name="Ana", last_name="Lopez",
        email="ana@example.com", phone="555-0101", role=Role.CLIENT,
    ))
    directory.add_user(UserRecord(
        id="client-2", first_name="Ben", last_name="Okafor",
        email="ben@example.com", role=Role.CLIENT,
    ))
    directory.add_user(UserRecord(
        id="vet-1", first_name="Maya", last_name="Chen",
        email="maya@vetcare.example", role=Role.VETERINARIAN,
    ))
    directory.add_user(UserRecord(
        id="reception-1", first_name="Sam", last_name="Ruiz",
        email="desk@vetcare.example", role=Role.RECEPTIONIST,
    ))
    directory.add_user(UserRecord(
        id="admin-1", first_name="Ada", email="admin@vetcare.example", role=Role.ADMIN,
    ))
    directory.add_pet(PetRecord(id="pet-1", name="Rex", species="Dog", breed="Beagle", owner_id="client-1"))
    directory.add_pet(PetRecord(id="pet-2", name="Milo", species="Cat", owner_id="client-1"))
    directory.add_pet(PetRecord(id="pet-3", name="Kiwi", species="Bird", owner_id="client-2"))
    return directory


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def notifier(channel) -> Notifier:
    return Notifier(channel, timeout=1.0)


@pytest.fixture
def config_store() -> FakeReminderConfigStore:
    return FakeReminderConfigStore()


@pytest.fixture
def token_store() -> FakeTokenStore:
    return FakeTokenStore()


@pytest.fixture
def appointment_service(store, directory, notifier, clock) -> AppointmentService:
    return AppointmentService(store, directory, notifier, clock=clock, max_attempts=3)


@pytest.fixture
def schedule_service(store, directory, clock) -> ScheduleService:
    return ScheduleService(store, directory, clock=clock, max_page_size=100)


@pytest.fixture
def reminder_service(store, config_store, token_store, directory, notifier, clock) -> ReminderService:
    return ReminderService(
        store, config_store, token_store, directory, notifier,
        public_base_url=PUBLIC_BASE_URL, clock=clock,
    )


@pytest.fixture
def confirmation_service(store, token_store, clock) -> ConfirmationService:
    return ConfirmationService(store, token_store, clock=clock, max_attempts=3)


@pytest.fixture
def make_appointment(store):
    """Seed an appointment ``hours`` away from NOW (or at an explicit ``at``)."""

    def _make(hours: float = 48, *, at: datetime | None = None, **overrides) -> AppointmentRecord:
        data = dict(
            id=uuid4().hex,
            pet_id="pet-1",
            client_id="client-1",
            veterinarian_id="vet-1",
            appointment_date=at or NOW + timedelta(hours=hours),
            reason="Vaccination",
            status=AppointmentStatus.SCHEDULED,
            reminder_sent=False,
            revision=0,
            created_at=NOW - timedelta(days=7),
            updated_at=NOW - timedelta(days=7),
        )
        data.update(overrides)
        return store.add(AppointmentRecord(**data))

    return _make
