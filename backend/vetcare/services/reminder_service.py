"""
Appointment reminder sweep - emails clients before their appointments.

A sweep finds SCHEDULED appointments without a reminder whose date falls
before ``now + reminder_hours_before``, sends each client a reminder with a
single-use confirmation link and then sets ``reminder_sent``. It is run
periodically by the scheduler started in ``vetcare.main`` and can also be
triggered manually; only one sweep runs at a time.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable
from urllib.parse import urlencode

from vetcare.constants import AppointmentStatus
from vetcare.errors import InvalidRequestError
from vetcare.schemas import AppointmentRecord, ReminderConfigIn, ReminderConfigRecord, SweepResultOut
from vetcare.services.appointment_store import AppointmentQuery, AppointmentStore
from vetcare.services.directory import DirectoryGateway
from vetcare.services.email_templates import DEFAULT_REMINDER_TEMPLATE, render_reminder
from vetcare.services.notifier import Notifier
from vetcare.services.policy_clock import utcnow
from vetcare.services.reminder_store import ConfirmationTokenStore, ReminderConfigStore
from vetcare.utils.logger import get_logger

logger = get_logger("appointment_reminder")


class ReminderSkipped(Exception):
    """Candidate cannot be reminded (missing directory data)."""


class ReminderService:
    def __init__(
        self,
        store: AppointmentStore,
        config_store: ReminderConfigStore,
        token_store: ConfirmationTokenStore,
        directory: DirectoryGateway,
        notifier: Notifier,
        *,
        public_base_url: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._config_store = config_store
        self._token_store = token_store
        self._directory = directory
        self._notifier = notifier
        self._public_base_url = public_base_url.rstrip("/")
        self._clock = clock
        self._lock = asyncio.Lock()

    # ---------------------- Configuration ----------------------

    async def get_config(self) -> ReminderConfigRecord:
        return await self._config_store.get_or_create()

    async def update_config(self, payload: ReminderConfigIn) -> ReminderConfigRecord:
        template = payload.email_template or DEFAULT_REMINDER_TEMPLATE
        try:
            render_reminder(template, "client", "date", "pet", "vet", "link")
        except (IndexError, KeyError, ValueError) as e:
            raise InvalidRequestError(
                "Template must use the positional placeholders {0}..{4} "
                "(client, date, pet, veterinarian, link)"
            ) from e
        config = ReminderConfigRecord(
            reminder_hours_before=payload.reminder_hours_before,
            is_enabled=payload.is_enabled,
            email_template=template,
        )
        saved = await self._config_store.save(config)
        logger.info(
            f"Reminder configuration updated: {saved.reminder_hours_before}h before, "
            f"enabled={saved.is_enabled}"
        )
        return saved

    def confirmation_link(self, appointment_id: str, token: str) -> str:
        query = urlencode({"id": appointment_id, "token": token})
        return f"{self._public_base_url}/reminders/confirm?{query}"

    # ---------------------- Sweep ----------------------

    async def run_sweep(self) -> SweepResultOut:
        """One sweep cycle. Never raises; failures are logged."""
        if self._lock.locked():
            logger.info("ℹ️ Reminder sweep already running, skipping this cycle")
            return SweepResultOut(skipped=True)

        async with self._lock:
            result = SweepResultOut()
            try:
                config = await self._config_store.get_or_create()
                if not config.is_enabled:
                    logger.info("ℹ️ Reminders are disabled")
                    return result

                now = self._clock()
                threshold = now + timedelta(hours=config.reminder_hours_before)
                # past appointments are left alone; their link would already be expired
                candidates = await self._store.find(
                    AppointmentQuery(
                        equals={"status": AppointmentStatus.SCHEDULED, "reminder_sent": False},
                        date_from=now,
                        date_before=threshold,
                    ),
                    sort_by="appointment_date",
                )
            except Exception as e:
                logger.error(f"❌ Error in reminder sweep: {e}")
                return result

            result.candidates = len(candidates)
            logger.info(f"🔍 Checking {len(candidates)} appointment(s) due for a reminder")

            for appointment in candidates:
                try:
                    await self._remind(appointment, config, now)
                    result.sent += 1
                except ReminderSkipped as e:
                    result.failed += 1
                    logger.warning(f"⚠️ Reminder skipped for appointment {appointment.id}: {e}")
                except Exception as e:
                    result.failed += 1
                    logger.error(f"❌ Error processing appointment {appointment.id}: {e}")
                    continue

            if result.sent:
                logger.info(f"✅ Sent {result.sent} reminder(s), {result.failed} failed")
            else:
                logger.info("ℹ️ No reminders sent this cycle")
            return result

    async def _remind(self, appointment: AppointmentRecord, config: ReminderConfigRecord, now: datetime) -> None:
        client, vet, pet = await asyncio.gather(
            self._directory.get_user(appointment.client_id),
            self._directory.get_user(appointment.veterinarian_id),
            self._directory.get_pet(appointment.pet_id),
        )
        if client is None or not client.email:
            raise ReminderSkipped("client or client e-mail not found")
        if vet is None or pet is None:
            raise ReminderSkipped("veterinarian or pet not found")

        # link dies with the appointment
        token = await self._token_store.issue(appointment.id, expires_at=appointment.appointment_date)
        body = render_reminder(
            config.email_template or DEFAULT_REMINDER_TEMPLATE,
            client.full_name,
            self._notifier.format_date(appointment.appointment_date),
            pet.name,
            vet.full_name,
            self.confirmation_link(appointment.id, token),
        )

        # raises NotificationError; reminder_sent stays false so the next sweep retries
        await self._notifier.send_reminder(client.email, pet.name, body)

        if await self._store.mark_reminder_sent(appointment.id, now):
            logger.info(f"✅ Sent reminder for appointment {appointment.id}")
        else:
            logger.warning(f"⚠️ Reminder for {appointment.id} was already marked as sent")
