"""
Read-only lookups of clients, veterinarians, pets and medical history.

These only enrich outward payloads, so ``enrich_appointment`` treats every
lookup as best effort: a missing or failing lookup leaves the field empty.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, List, Optional

from vetcare.errors import ProcessingError
from vetcare.models import MedicalRecord, Pet, User
from vetcare.schemas import (
    AppointmentOut,
    AppointmentRecord,
    MedicalRecordOut,
    PersonOut,
    PetOut,
    PetRecord,
    UserRecord,
)
from vetcare.utils.bounded import bounded
from vetcare.utils.logger import get_logger

logger = get_logger("directory")

PET_HISTORY_LIMIT = 5


class DirectoryGateway(ABC):
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def get_pet(self, pet_id: str) -> Optional[PetRecord]:
        ...

    @abstractmethod
    async def list_pets_by_owner(self, owner_id: str) -> List[PetRecord]:
        ...

    @abstractmethod
    async def recent_medical_records(self, pet_id: str, limit: int = PET_HISTORY_LIMIT) -> List[MedicalRecordOut]:
        """Most recent first."""


class BeanieDirectory(DirectoryGateway):
    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def _bounded(self, op: Awaitable, action: str):
        return await bounded(op, self._timeout, action, "Directory")

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = await self._bounded(User.get(user_id), f"loading user {user_id}")
        return UserRecord.model_validate(user, from_attributes=True) if user else None

    async def get_pet(self, pet_id: str) -> Optional[PetRecord]:
        pet = await self._bounded(Pet.get(pet_id), f"loading pet {pet_id}")
        return PetRecord.model_validate(pet, from_attributes=True) if pet else None

    async def list_pets_by_owner(self, owner_id: str) -> List[PetRecord]:
        pets = await self._bounded(
            Pet.find(Pet.owner_id == owner_id).sort(+Pet.name).to_list(),
            f"listing pets of {owner_id}",
        )
        return [PetRecord.model_validate(p, from_attributes=True) for p in pets]

    async def recent_medical_records(self, pet_id: str, limit: int = PET_HISTORY_LIMIT) -> List[MedicalRecordOut]:
        records = await self._bounded(
            MedicalRecord.find(MedicalRecord.pet_id == pet_id)
            .sort(-MedicalRecord.date)
            .limit(limit)
            .to_list(),
            f"loading history of pet {pet_id}",
        )
        return [MedicalRecordOut.model_validate(r, from_attributes=True) for r in records]


async def lookup_quietly(op: Awaitable, what: str):
    """Await a directory lookup, logging and returning None on failure."""
    try:
        return await op
    except ProcessingError as e:
        logger.warning(f"⚠️ Could not load {what}: {e.message}")
        return None


async def enrich_appointment(
    directory: DirectoryGateway,
    record: AppointmentRecord,
    *,
    with_history: bool = False,
) -> AppointmentOut:
    client, vet, pet = await asyncio.gather(
        lookup_quietly(directory.get_user(record.client_id), f"client {record.client_id}"),
        lookup_quietly(directory.get_user(record.veterinarian_id), f"veterinarian {record.veterinarian_id}"),
        lookup_quietly(directory.get_pet(record.pet_id), f"pet {record.pet_id}"),
    )
    history: List[MedicalRecordOut] = []
    if with_history:
        history = await lookup_quietly(
            directory.recent_medical_records(record.pet_id, PET_HISTORY_LIMIT),
            f"history of pet {record.pet_id}",
        ) or []

    return AppointmentOut(
        id=record.id,
        appointment_date=record.appointment_date,
        previous_appointment_date=record.previous_appointment_date,
        reason=record.reason,
        notes=record.notes,
        status=record.status,
        reminder_sent=record.reminder_sent,
        client=PersonOut.from_user(client) if client else None,
        veterinarian=PersonOut.from_user(vet) if vet else None,
        pet=PetOut.from_pet(pet) if pet else None,
        pet_history=history,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
