from beanie import Document, Indexed
from pydantic import Field
from datetime import datetime, timezone
from uuid import uuid4

from vetcare.constants import AppointmentStatus


class Appointment(Document):
    """A veterinary visit tying a pet, its owner and a veterinarian to a date."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    pet_id: Indexed(str)
    client_id: Indexed(str)
    veterinarian_id: Indexed(str)
    appointment_date: Indexed(datetime)
    previous_appointment_date: datetime | None = None  # set on reschedule
    reason: str | None = None
    notes: str | None = None
    status: Indexed(str) = AppointmentStatus.SCHEDULED.value
    reminder_sent: bool = False
    # bumped on every write; writers assert the value they read
    revision: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "appointments"
