import asyncio
from urllib.parse import parse_qs, urlparse

import pytest

from vetcare.constants import AppointmentStatus, Role
from vetcare.errors import InvalidRequestError
from vetcare.schemas import ReminderConfigIn, ReminderConfigRecord, UserRecord
from vetcare.services.email_templates import DEFAULT_REMINDER_TEMPLATE
from vetcare.services.notifier import EmailChannel, Notifier
from vetcare.services.reminder_service import ReminderService
from vetcare.services.reminder_store import hash_token

from fakes import PUBLIC_BASE_URL, FakeReminderConfigStore

CLIENT_MAIL = "ana@example.com"


async def test_appointment_23_hours_out_gets_one_reminder(reminder_service, make_appointment, store, channel, token_store):
    appt = make_appointment(hours=23)

    result = await reminder_service.run_sweep()

    assert (result.candidates, result.sent, result.failed) == (1, 1, 0)
    assert store.records[appt.id].reminder_sent is True
    [mail] = channel.to(CLIENT_MAIL)
    assert mail["subject"] == "Veterinary appointment reminder - Rex"
    assert "Ana Lopez" in mail["html"]
    assert "Maya Chen" in mail["html"]

    token = token_store.issued[0]
    assert token_store.tokens[hash_token(token)]["expires_at"] == appt.appointment_date
    assert f"{PUBLIC_BASE_URL}/reminders/confirm?" in mail["html"]


async def test_second_sweep_sends_nothing(reminder_service, make_appointment, channel):
    make_appointment(hours=23)

    await reminder_service.run_sweep()
    again = await reminder_service.run_sweep()

    assert again.candidates == 0
    assert len(channel.sent) == 1


async def test_only_scheduled_unreminded_inside_window_are_candidates(reminder_service, make_appointment, channel):
    make_appointment(hours=25)
    make_appointment(hours=5, status=AppointmentStatus.CONFIRMED)
    make_appointment(hours=5, status=AppointmentStatus.CANCELLED)
    make_appointment(hours=5, reminder_sent=True)

    result = await reminder_service.run_sweep()

    assert result.candidates == 0
    assert channel.sent == []


async def test_past_appointments_are_not_reminded(reminder_service, make_appointment, store, channel, token_store):
    appt = make_appointment(hours=-2)

    result = await reminder_service.run_sweep()

    assert (result.candidates, result.sent) == (0, 0)
    assert channel.sent == []
    assert token_store.issued == []
    assert store.records[appt.id].reminder_sent is False


async def test_disabled_reminders_do_nothing(reminder_service, make_appointment, config_store, channel, store):
    config_store.config = ReminderConfigRecord(reminder_hours_before=24, is_enabled=False)
    appt = make_appointment(hours=2)

    result = await reminder_service.run_sweep()

    assert result.candidates == 0
    assert channel.sent == []
    assert store.records[appt.id].reminder_sent is False


async def test_window_follows_configuration(reminder_service, make_appointment, config_store, channel):
    config_store.config = ReminderConfigRecord(reminder_hours_before=72, is_enabled=True)
    make_appointment(hours=60)

    result = await reminder_service.run_sweep()

    assert result.sent == 1


async def test_failed_delivery_is_retried_next_sweep(reminder_service, make_appointment, store, channel):
    appt = make_appointment(hours=12)
    channel.failing.add(CLIENT_MAIL)

    first = await reminder_service.run_sweep()

    assert (first.sent, first.failed) == (0, 1)
    assert store.records[appt.id].reminder_sent is False

    channel.failing.clear()
    second = await reminder_service.run_sweep()

    assert second.sent == 1
    assert store.records[appt.id].reminder_sent is True


async def test_one_bad_candidate_does_not_stop_the_sweep(reminder_service, make_appointment, directory, store):
    directory.add_user(UserRecord(id="client-9", first_name="No", last_name="Mail", role=Role.CLIENT))
    broken = make_appointment(hours=10, client_id="client-9")
    good = make_appointment(hours=11)

    result = await reminder_service.run_sweep()

    assert (result.candidates, result.sent, result.failed) == (2, 1, 1)
    assert store.records[broken.id].reminder_sent is False
    assert store.records[good.id].reminder_sent is True


async def test_store_outage_is_logged_not_raised(reminder_service, make_appointment, store):
    make_appointment(hours=10)
    store.fail_reads = True

    result = await reminder_service.run_sweep()

    assert result.sent == 0


class GatedChannel(EmailChannel):
    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def send(self, to: str, subject: str, html: str) -> None:
        self.started.set()
        await self.release.wait()


async def test_overlapping_sweep_is_skipped(store, token_store, directory, clock, make_appointment):
    channel = GatedChannel()
    service = ReminderService(
        store, FakeReminderConfigStore(), token_store, directory, Notifier(channel, timeout=5.0),
        public_base_url=PUBLIC_BASE_URL, clock=clock,
    )
    make_appointment(hours=6)

    running = asyncio.create_task(service.run_sweep())
    await channel.started.wait()
    overlapping = await service.run_sweep()
    channel.release.set()
    finished = await running

    assert overlapping.skipped is True
    assert finished.sent == 1


async def test_confirmation_link_carries_id_and_token(reminder_service):
    link = reminder_service.confirmation_link("abc123", "t0k/en+")

    parsed = urlparse(link)
    assert f"{parsed.scheme}://{parsed.netloc}" == PUBLIC_BASE_URL
    assert parsed.path == "/reminders/confirm"
    assert parse_qs(parsed.query) == {"id": ["abc123"], "token": ["t0k/en+"]}


# ---------------------- configuration ----------------------


async def test_config_defaults_are_created_on_first_read(reminder_service):
    config = await reminder_service.get_config()

    assert config.reminder_hours_before == 24
    assert config.is_enabled is True
    assert config.email_template == DEFAULT_REMINDER_TEMPLATE


async def test_custom_template_is_used(reminder_service, make_appointment, channel):
    await reminder_service.update_config(ReminderConfigIn(
        reminder_hours_before=48,
        email_template="Hi {0}, {2} sees Dr. {3} on {1}. Confirm: {4}",
    ))
    make_appointment(hours=30)

    await reminder_service.run_sweep()

    [mail] = channel.sent
    assert mail["html"].startswith("Hi Ana Lopez, Rex sees Dr. Maya Chen on 11/03/2030 16:00. Confirm: ")


async def test_reminder_escapes_names_and_link(reminder_service, make_appointment, directory, channel):
    directory.add_user(UserRecord(
        id="client-7", first_name="<b>Eve</b>", last_name="O'Hara", email="eve@example.com", role=Role.CLIENT,
    ))
    make_appointment(hours=10, client_id="client-7")

    await reminder_service.run_sweep()

    [mail] = channel.to("eve@example.com")
    assert "<b>Eve</b>" not in mail["html"]
    assert "Dear &lt;b&gt;Eve&lt;/b&gt; O&#x27;Hara," in mail["html"]
    assert "&amp;token=" in mail["html"]


async def test_blank_template_falls_back_to_default(reminder_service):
    saved = await reminder_service.update_config(ReminderConfigIn(reminder_hours_before=12, email_template=""))

    assert saved.email_template == DEFAULT_REMINDER_TEMPLATE
    assert saved.reminder_hours_before == 12


@pytest.mark.parametrize("template", ["Hello {5}", "Hello {name}", "Broken {"])
async def test_template_with_unknown_placeholders_is_rejected(reminder_service, template):
    with pytest.raises(InvalidRequestError):
        await reminder_service.update_config(ReminderConfigIn(reminder_hours_before=24, email_template=template))
