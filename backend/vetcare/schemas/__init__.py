from datetime import datetime
from math import ceil
from pydantic import BaseModel, Field, field_validator
from typing import Generic, List, Literal, Optional, TypeVar

from vetcare.constants import AppointmentStatus, Role
from vetcare.services.policy_clock import as_utc

T = TypeVar("T")

# -------------------- Records (store/directory level) --------------------


class AppointmentRecord(BaseModel):
    """Typed view of one appointment document as read from the store."""

    id: str
    pet_id: str
    client_id: str
    veterinarian_id: str
    appointment_date: datetime
    previous_appointment_date: Optional[datetime] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reminder_sent: bool = False
    revision: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_validator("appointment_date", "previous_appointment_date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class ReminderConfigRecord(BaseModel):
    reminder_hours_before: int = Field(24, ge=0)
    is_enabled: bool = True
    email_template: Optional[str] = None

    class Config:
        from_attributes = True


class UserRecord(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role
    permissions: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or (self.email or self.id)


class PetRecord(BaseModel):
    id: str
    name: str
    species: Optional[str] = None
    breed: Optional[str] = None
    owner_id: str

    class Config:
        from_attributes = True


class MedicalRecordOut(BaseModel):
    id: str
    date: datetime
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    notes: Optional[str] = None
    veterinarian_id: Optional[str] = None

    class Config:
        from_attributes = True


# -------------------- Directory display shapes --------------------


class PersonOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: UserRecord) -> "PersonOut":
        return cls(id=user.id, name=user.full_name, email=user.email, phone=user.phone)


class PetOut(BaseModel):
    id: str
    name: str
    species: Optional[str] = None
    breed: Optional[str] = None

    @classmethod
    def from_pet(cls, pet: PetRecord) -> "PetOut":
        return cls(id=pet.id, name=pet.name, species=pet.species, breed=pet.breed)


# -------------------- Appointment payloads --------------------


class AppointmentCreate(BaseModel):
    pet_id: str
    client_id: str
    veterinarian_id: str
    appointment_date: datetime
    reason: Optional[str] = None
    notes: Optional[str] = None


class RescheduleIn(BaseModel):
    new_date: datetime
    reason: str = Field("", max_length=500)


class AppointmentOut(BaseModel):
    id: str
    appointment_date: datetime
    previous_appointment_date: Optional[datetime] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    reminder_sent: bool = False
    client: Optional[PersonOut] = None
    veterinarian: Optional[PersonOut] = None
    pet: Optional[PetOut] = None
    pet_history: List[MedicalRecordOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DailyAppointmentOut(BaseModel):
    """Flattened row for the reception desk day view."""

    id: str
    appointment_time: datetime
    client_id: str
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    pet_id: str
    pet_name: Optional[str] = None
    pet_species: Optional[str] = None
    pet_breed: Optional[str] = None
    veterinarian_id: str
    veterinarian_name: Optional[str] = None
    status: AppointmentStatus
    reason: Optional[str] = None
    # advisory only; the lifecycle checks again at mutation time
    can_cancel: bool
    can_reschedule: bool


class ClientAppointmentOut(BaseModel):
    id: str
    appointment_date: datetime
    reason: Optional[str] = None
    status: AppointmentStatus
    veterinarian_name: Optional[str] = None
    pet: Optional[PetOut] = None
    can_cancel: bool
    can_reschedule: bool


class PetAppointmentsOut(BaseModel):
    pet: PetOut
    appointments: List[AppointmentOut]
    count: int


# -------------------- Pagination --------------------


class PageParams(BaseModel):
    page: int = Field(0, ge=0)
    size: int = Field(10, ge=1)
    sort_by: str = "appointment_date"
    sort_direction: Literal["ASC", "DESC"] = "ASC"
    filter_by: Optional[str] = None
    filter_value: Optional[str] = None

    @field_validator("sort_direction", mode="before")
    @classmethod
    def _upper(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def offset(self) -> int:
        return self.page * self.size


class Page(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def of(cls, content: List[T], params: PageParams, total_elements: int) -> "Page[T]":
        return cls(
            content=content,
            page=params.page,
            size=params.size,
            total_elements=total_elements,
            total_pages=ceil(total_elements / params.size) if total_elements else 0,
        )


# -------------------- Reminders --------------------


class ReminderConfigIn(BaseModel):
    reminder_hours_before: int = Field(..., ge=0, le=24 * 14)
    is_enabled: bool = True
    email_template: Optional[str] = None


class SweepResultOut(BaseModel):
    skipped: bool = False
    candidates: int = 0
    sent: int = 0
    failed: int = 0


class ConfirmationOut(BaseModel):
    id: str
    status: AppointmentStatus
