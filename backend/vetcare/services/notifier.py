"""
Formats and sends appointment lifecycle e-mails.

Lifecycle notices (new / rescheduled / cancelled) go to both the client and
the veterinarian; each recipient is attempted independently and failures are
only logged. Reminders are different: ``send_reminder`` raises
``NotificationError`` so the sweep knows not to mark the reminder as sent.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import resend

from vetcare.config import Settings
from vetcare.errors import NotificationError
from vetcare.schemas import AppointmentRecord, PetRecord, UserRecord
from vetcare.services import email_templates
from vetcare.services.policy_clock import format_for_display
from vetcare.utils.logger import get_logger

logger = get_logger("notifier")


class EmailChannel(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> None:
        ...


class LogEmailChannel(EmailChannel):
    """Dev channel: the e-mail is only written to the log."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info(f"[EMAIL] {to} <= {subject}")
        logger.debug(html)


class ResendEmailChannel(EmailChannel):
    def __init__(self, api_key: str, from_address: str):
        resend.api_key = api_key
        self._from = from_address

    async def send(self, to: str, subject: str, html: str) -> None:
        params = {"from": self._from, "to": [to], "subject": subject, "html": html}
        # SDK is synchronous
        await asyncio.to_thread(resend.Emails.send, params)


def build_email_channel(settings: Settings) -> EmailChannel:
    if settings.EMAIL_PROVIDER == "resend":
        if not settings.RESEND_API_KEY:
            raise RuntimeError("EMAIL_PROVIDER=resend requires RESEND_API_KEY")
        return ResendEmailChannel(settings.RESEND_API_KEY, settings.EMAIL_FROM_ADDRESS)
    return LogEmailChannel()


@dataclass
class Parties:
    """Directory data needed to address and word a lifecycle e-mail."""

    client: UserRecord
    veterinarian: UserRecord
    pet: PetRecord


class Notifier:
    def __init__(self, channel: EmailChannel, *, timeout: float = 15.0, date_format: str = "%d/%m/%Y %H:%M"):
        self._channel = channel
        self._timeout = timeout
        self._date_format = date_format

    def format_date(self, value: datetime) -> str:
        return format_for_display(value, self._date_format)

    async def deliver(self, to: str | None, subject: str, html: str) -> None:
        if not to:
            raise NotificationError(f"No e-mail address for '{subject}'")
        try:
            await asyncio.wait_for(self._channel.send(to, subject, html), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise NotificationError(f"Timed out sending '{subject}' to {to}") from e
        except NotificationError:
            raise
        except Exception as e:
            raise NotificationError(f"Failed sending '{subject}' to {to}: {e}") from e

    async def _deliver_quietly(self, to: str | None, subject: str, html: str) -> bool:
        try:
            await self.deliver(to, subject, html)
            return True
        except NotificationError as e:
            logger.error(f"❌ {e}")
            return False

    async def _to_both(self, parties: Parties, client_mail: tuple[str, str], vet_mail: tuple[str, str]) -> int:
        results = await asyncio.gather(
            self._deliver_quietly(parties.client.email, *client_mail),
            self._deliver_quietly(parties.veterinarian.email, *vet_mail),
        )
        return sum(results)

    async def appointment_created(self, appointment: AppointmentRecord, parties: Parties) -> int:
        date = self.format_date(appointment.appointment_date)
        pet = parties.pet.name
        return await self._to_both(
            parties,
            (f"New appointment scheduled for {pet}",
             email_templates.new_appointment_client(pet, date, parties.veterinarian.full_name)),
            ("New appointment scheduled",
             email_templates.new_appointment_vet(pet, date, parties.client.full_name)),
        )

    async def appointment_rescheduled(self, appointment: AppointmentRecord, old_date: datetime, parties: Parties) -> int:
        old, new = self.format_date(old_date), self.format_date(appointment.appointment_date)
        pet = parties.pet.name
        return await self._to_both(
            parties,
            (f"Appointment rescheduled - {pet}",
             email_templates.rescheduled_client(pet, old, new, parties.veterinarian.full_name)),
            ("Appointment rescheduled",
             email_templates.rescheduled_vet(pet, parties.client.full_name, old, new)),
        )

    async def appointment_cancelled(self, appointment: AppointmentRecord, parties: Parties) -> int:
        date = self.format_date(appointment.appointment_date)
        pet = parties.pet.name
        return await self._to_both(
            parties,
            (f"Appointment cancelled - {pet}",
             email_templates.cancelled_client(pet, date, parties.veterinarian.full_name)),
            ("Appointment cancelled",
             email_templates.cancelled_vet(pet, parties.client.full_name, date)),
        )

    async def send_reminder(self, to: str | None, pet_name: str, html: str) -> None:
        await self.deliver(to, f"Veterinary appointment reminder - {pet_name}", html)
