"""
Appointment lifecycle: create, reschedule, cancel and the ownership check.

State changes are persisted first; the e-mails that follow are dispatched as
background tasks, so a slow or failing mail provider never delays or undoes a
saved change.
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, Set
from uuid import uuid4

from vetcare.constants import (
    FINAL_STATUSES,
    MIN_CANCEL_HOURS,
    MIN_RESCHEDULE_HOURS,
    AppointmentStatus,
)
from vetcare.errors import InvalidRequestError, PolicyViolationError, UnauthorizedError
from vetcare.schemas import AppointmentCreate, AppointmentOut, AppointmentRecord
from vetcare.services.appointment_store import AppointmentStore, mutate_with_retry
from vetcare.services.directory import DirectoryGateway, enrich_appointment
from vetcare.services.notifier import Notifier, Parties
from vetcare.services.policy_clock import as_utc, is_at_least, utcnow
from vetcare.utils.logger import get_logger

logger = get_logger("appointment_service")


def _append_note(notes: Optional[str], line: str) -> str:
    return f"{notes}\n{line}" if notes else line


class AppointmentService:
    def __init__(
        self,
        store: AppointmentStore,
        directory: DirectoryGateway,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
    ):
        self._store = store
        self._directory = directory
        self._notifier = notifier
        self._clock = clock
        self._max_attempts = max_attempts
        self._pending: Set[asyncio.Task] = set()

    # ---------------------- Operations ----------------------

    async def create(self, payload: AppointmentCreate, caller_id: str) -> AppointmentOut:
        now = self._clock()
        appointment_date = as_utc(payload.appointment_date)
        if appointment_date <= now:
            raise InvalidRequestError("Appointment date must be in the future")

        record = AppointmentRecord(
            id=uuid4().hex,
            pet_id=payload.pet_id,
            client_id=payload.client_id,
            veterinarian_id=payload.veterinarian_id,
            appointment_date=appointment_date,
            reason=payload.reason,
            notes=payload.notes,
            status=AppointmentStatus.SCHEDULED,
            reminder_sent=False,
            revision=0,
            created_at=now,
            updated_at=now,
        )
        await self._store.insert(record)
        logger.info(f"✅ Appointment {record.id} created by {caller_id} for {appointment_date.isoformat()}")

        self._dispatch(self._notify(record, "created", self._notifier.appointment_created))
        return await enrich_appointment(self._directory, record)

    async def reschedule(
        self,
        appointment_id: str,
        new_date: datetime,
        reason: str,
        caller_id: str,
        *,
        enforce_ownership: bool = False,
    ) -> AppointmentOut:
        """Move an appointment to ``new_date``.

        Allowed only while the current date is at least MIN_RESCHEDULE_HOURS
        away. ``enforce_ownership`` is set by the client-facing path, where
        only the appointment's own client may act.
        """
        new_date = as_utc(new_date)

        def apply(current: AppointmentRecord) -> AppointmentRecord:
            now = self._clock()
            self._check_access(current, caller_id, enforce_ownership)
            self._guard_not_final(current, "rescheduled")
            if new_date <= now:
                raise InvalidRequestError("New date must be in the future")
            if not is_at_least(current.appointment_date, now, MIN_RESCHEDULE_HOURS):
                raise PolicyViolationError(
                    f"Appointments can only be rescheduled at least {MIN_RESCHEDULE_HOURS} hours in advance"
                )
            note = f"Rescheduled from {current.appointment_date:%Y-%m-%d %H:%M} UTC"
            if reason:
                note = f"{note}: {reason}"
            return current.model_copy(update={
                "appointment_date": new_date,
                "previous_appointment_date": current.appointment_date,
                "notes": _append_note(current.notes, note),
                "updated_at": now,
            })

        previous, saved = await mutate_with_retry(
            self._store, appointment_id, apply, max_attempts=self._max_attempts
        )
        logger.info(
            f"✅ Appointment {appointment_id} rescheduled by {caller_id}: "
            f"{previous.appointment_date.isoformat()} -> {saved.appointment_date.isoformat()}"
        )

        async def send(record: AppointmentRecord, parties: Parties) -> int:
            return await self._notifier.appointment_rescheduled(record, previous.appointment_date, parties)

        self._dispatch(self._notify(saved, "rescheduled", send))
        return await enrich_appointment(self._directory, saved)

    async def cancel(self, appointment_id: str, caller_id: str, *, enforce_ownership: bool = False) -> AppointmentOut:
        def apply(current: AppointmentRecord) -> AppointmentRecord:
            now = self._clock()
            self._check_access(current, caller_id, enforce_ownership)
            self._guard_not_final(current, "cancelled")
            if not is_at_least(current.appointment_date, now, MIN_CANCEL_HOURS):
                raise PolicyViolationError(
                    f"Appointments can only be cancelled at least {MIN_CANCEL_HOURS} hours in advance"
                )
            return current.model_copy(update={"status": AppointmentStatus.CANCELLED, "updated_at": now})

        _, saved = await mutate_with_retry(self._store, appointment_id, apply, max_attempts=self._max_attempts)
        logger.info(f"✅ Appointment {appointment_id} cancelled by {caller_id}")

        self._dispatch(self._notify(saved, "cancelled", self._notifier.appointment_cancelled))
        return await enrich_appointment(self._directory, saved)

    async def is_owner(self, appointment_id: str, caller_id: str) -> bool:
        """Capability check for the HTTP boundary; lookup failures mean 'no'."""
        try:
            record = await self._store.get(appointment_id)
        except Exception as e:
            logger.warning(f"⚠️ Ownership lookup failed for {appointment_id}: {e}")
            return False
        return record is not None and record.client_id == caller_id

    # ---------------------- Guards ----------------------

    @staticmethod
    def _check_access(record: AppointmentRecord, caller_id: str, enforce_ownership: bool) -> None:
        if enforce_ownership and record.client_id != caller_id:
            raise UnauthorizedError("You are not allowed to modify this appointment")

    @staticmethod
    def _guard_not_final(record: AppointmentRecord, action: str) -> None:
        if record.status in FINAL_STATUSES:
            raise PolicyViolationError(
                f"Appointment is already {record.status.value.lower()} and cannot be {action}"
            )

    # ---------------------- Notifications ----------------------

    def _dispatch(self, coro: Awaitable) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_for_notifications(self) -> None:
        """Wait for in-flight notification tasks (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _load_parties(self, record: AppointmentRecord) -> Optional[Parties]:
        client, vet, pet = await asyncio.gather(
            self._directory.get_user(record.client_id),
            self._directory.get_user(record.veterinarian_id),
            self._directory.get_pet(record.pet_id),
        )
        if not (client and vet and pet):
            logger.warning(f"⚠️ Missing directory data for appointment {record.id}; notification skipped")
            return None
        return Parties(client=client, veterinarian=vet, pet=pet)

    async def _notify(
        self,
        record: AppointmentRecord,
        event: str,
        send: Callable[[AppointmentRecord, Parties], Awaitable[int]],
    ) -> None:
        try:
            parties = await self._load_parties(record)
            if parties is None:
                return
            delivered = await send(record, parties)
            logger.info(f"📧 {event} notice for {record.id}: {delivered}/2 delivered")
        except Exception as e:
            # never propagates: the state change is already saved
            logger.error(f"❌ Error sending {event} notifications for {record.id}: {e}")
