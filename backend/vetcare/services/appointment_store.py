"""
Typed access to the appointments collection.

``AppointmentStore`` is the narrow interface the services depend on;
``BeanieAppointmentStore`` implements it on MongoDB. Every call is bounded by
a timeout and driver failures surface as ``ProcessingError``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional

from vetcare.errors import ConflictError, NotFoundError
from vetcare.models import Appointment
from vetcare.schemas import AppointmentRecord
from vetcare.utils.bounded import bounded
from vetcare.utils.logger import get_logger

logger = get_logger("appointment_store")


@dataclass
class AppointmentQuery:
    """Conjunction of equality filters plus an optional [date_from, date_before) window."""

    equals: dict[str, Any] = field(default_factory=dict)
    date_from: Optional[datetime] = None
    date_before: Optional[datetime] = None


class AppointmentStore(ABC):
    @abstractmethod
    async def get(self, appointment_id: str) -> Optional[AppointmentRecord]:
        ...

    @abstractmethod
    async def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        ...

    @abstractmethod
    async def replace(self, record: AppointmentRecord) -> AppointmentRecord:
        """Overwrite the stored document if its revision still equals ``record.revision``.

        Returns the record with the bumped revision; raises ``ConflictError``
        when the stored revision moved.
        """

    @abstractmethod
    async def mark_reminder_sent(self, appointment_id: str, now: datetime) -> bool:
        """Flip ``reminder_sent`` false -> true. False if it was already set."""

    @abstractmethod
    async def find(
        self,
        query: AppointmentQuery,
        *,
        sort_by: str = "appointment_date",
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[AppointmentRecord]:
        ...

    @abstractmethod
    async def count(self, query: AppointmentQuery) -> int:
        ...


def _mongo_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_record(doc: Appointment) -> AppointmentRecord:
    return AppointmentRecord.model_validate(doc, from_attributes=True)


class BeanieAppointmentStore(AppointmentStore):
    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def _bounded(self, op, action: str):
        return await bounded(op, self._timeout, action, "Appointment store")

    @staticmethod
    def _build_filter(query: AppointmentQuery) -> dict:
        flt: dict[str, Any] = {k: _mongo_value(v) for k, v in query.equals.items()}
        date_range: dict[str, datetime] = {}
        if query.date_from is not None:
            date_range["$gte"] = query.date_from
        if query.date_before is not None:
            date_range["$lt"] = query.date_before
        if date_range:
            flt["appointment_date"] = date_range
        return flt

    async def get(self, appointment_id: str) -> Optional[AppointmentRecord]:
        doc = await self._bounded(Appointment.get(appointment_id), f"loading {appointment_id}")
        return _to_record(doc) if doc else None

    async def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        data = record.model_dump()
        data["status"] = record.status.value
        doc = Appointment(**data)
        await self._bounded(doc.insert(), f"inserting {record.id}")
        return record

    async def replace(self, record: AppointmentRecord) -> AppointmentRecord:
        data = record.model_dump(exclude={"id"})
        data["status"] = record.status.value
        data["revision"] = record.revision + 1
        collection = Appointment.get_motor_collection()
        result = await self._bounded(
            collection.update_one(
                {"_id": record.id, "revision": record.revision},
                {"$set": data},
            ),
            f"saving {record.id}",
        )
        if result.matched_count == 0:
            raise ConflictError(f"Appointment {record.id} was modified concurrently")
        return record.model_copy(update={"revision": record.revision + 1})

    async def mark_reminder_sent(self, appointment_id: str, now: datetime) -> bool:
        collection = Appointment.get_motor_collection()
        result = await self._bounded(
            collection.update_one(
                {"_id": appointment_id, "reminder_sent": False},
                {"$set": {"reminder_sent": True, "updated_at": now}, "$inc": {"revision": 1}},
            ),
            f"marking reminder for {appointment_id}",
        )
        return result.modified_count == 1

    async def find(
        self,
        query: AppointmentQuery,
        *,
        sort_by: str = "appointment_date",
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[AppointmentRecord]:
        cursor = (
            Appointment.find(self._build_filter(query))
            .sort(f"{'-' if descending else '+'}{sort_by}")
            .skip(offset)
        )
        if limit is not None:
            cursor = cursor.limit(limit)
        docs = await self._bounded(cursor.to_list(), "querying appointments")
        return [_to_record(d) for d in docs]

    async def count(self, query: AppointmentQuery) -> int:
        return await self._bounded(
            Appointment.find(self._build_filter(query)).count(), "counting appointments"
        )


async def mutate_with_retry(
    store: AppointmentStore,
    appointment_id: str,
    apply: Callable[[AppointmentRecord], Optional[AppointmentRecord]],
    *,
    max_attempts: int = 3,
) -> tuple[AppointmentRecord, AppointmentRecord]:
    """Read-modify-write one appointment under optimistic concurrency.

    ``apply`` receives the freshly loaded record and returns the new version
    (or raises to abort). Returning ``None`` means nothing to write. On a
    revision conflict the record is re-read and ``apply`` runs again.
    Returns ``(previous, saved)``.
    """
    for attempt in range(1, max_attempts + 1):
        current = await store.get(appointment_id)
        if current is None:
            raise NotFoundError("Appointment not found")
        updated = apply(current)
        if updated is None:
            return current, current
        try:
            saved = await store.replace(updated)
            return current, saved
        except ConflictError:
            logger.warning(
                f"⚠️ Revision conflict on appointment {appointment_id} "
                f"(attempt {attempt}/{max_attempts})"
            )
    raise ConflictError("Appointment is being modified by another request, please retry")
