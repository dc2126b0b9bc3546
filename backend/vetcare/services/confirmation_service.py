"""
Client confirmation of an appointment through the link sent in the reminder.
"""
from datetime import datetime
from typing import Callable, Optional

from vetcare.constants import FINAL_STATUSES, AppointmentStatus
from vetcare.errors import NotFoundError, PolicyViolationError, UnauthorizedError
from vetcare.schemas import AppointmentRecord, ConfirmationOut
from vetcare.services.appointment_store import AppointmentStore, mutate_with_retry
from vetcare.services.policy_clock import utcnow
from vetcare.services.reminder_store import ConfirmationTokenStore
from vetcare.utils.logger import get_logger

logger = get_logger("confirmation_service")


class ConfirmationService:
    def __init__(
        self,
        store: AppointmentStore,
        token_store: ConfirmationTokenStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
    ):
        self._store = store
        self._token_store = token_store
        self._clock = clock
        self._max_attempts = max_attempts

    async def confirm(self, appointment_id: str, token: str) -> ConfirmationOut:
        """Mark a SCHEDULED appointment CONFIRMED.

        Confirming twice is a no-op. The token is consumed only when the
        appointment can actually move to CONFIRMED.
        """
        current = await self._store.get(appointment_id)
        if current is None:
            raise NotFoundError("Appointment not found")
        if current.status == AppointmentStatus.CONFIRMED:
            return ConfirmationOut(id=current.id, status=current.status)
        self._guard_not_final(current)

        now = self._clock()
        if not token or not await self._token_store.consume(appointment_id, token, now):
            logger.warning(f"⚠️ Invalid or expired confirmation token for {appointment_id}")
            raise UnauthorizedError("Invalid or expired confirmation link")

        def apply(record: AppointmentRecord) -> Optional[AppointmentRecord]:
            if record.status == AppointmentStatus.CONFIRMED:
                return None
            self._guard_not_final(record)
            return record.model_copy(update={
                "status": AppointmentStatus.CONFIRMED,
                "updated_at": self._clock(),
            })

        _, saved = await mutate_with_retry(self._store, appointment_id, apply, max_attempts=self._max_attempts)
        logger.info(f"✅ Appointment {appointment_id} confirmed by client")
        return ConfirmationOut(id=saved.id, status=saved.status)

    @staticmethod
    def _guard_not_final(record: AppointmentRecord) -> None:
        if record.status in FINAL_STATUSES:
            raise PolicyViolationError(
                f"Appointment is {record.status.value.lower()} and can no longer be confirmed"
            )
