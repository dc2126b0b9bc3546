from beanie import Document, Indexed
from pydantic import Field
from datetime import datetime, timezone
from uuid import uuid4


class Pet(Document):
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    species: str | None = None
    breed: str | None = None
    owner_id: Indexed(str)

    class Settings:
        name = "pets"


class MedicalRecord(Document):
    """Clinical history entry for a pet."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    pet_id: Indexed(str)
    veterinarian_id: str | None = None
    date: Indexed(datetime) = Field(default_factory=lambda: datetime.now(timezone.utc))
    diagnosis: str | None = None
    treatment: str | None = None
    notes: str | None = None

    class Settings:
        name = "medical_records"
