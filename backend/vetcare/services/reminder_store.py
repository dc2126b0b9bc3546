"""
Persistence for the reminder settings singleton and confirmation tokens.
"""
import hashlib
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from vetcare.models import ConfirmationToken, ReminderConfig, REMINDER_CONFIG_ID
from vetcare.schemas import ReminderConfigRecord
from vetcare.services.email_templates import DEFAULT_REMINDER_TEMPLATE
from vetcare.utils.bounded import bounded
from vetcare.utils.logger import get_logger

logger = get_logger("reminder_store")


def default_reminder_config() -> ReminderConfigRecord:
    return ReminderConfigRecord(
        reminder_hours_before=24,
        is_enabled=True,
        email_template=DEFAULT_REMINDER_TEMPLATE,
    )


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ReminderConfigStore(ABC):
    @abstractmethod
    async def get_or_create(self) -> ReminderConfigRecord:
        """Current settings; the defaults are persisted on first read."""

    @abstractmethod
    async def save(self, config: ReminderConfigRecord) -> ReminderConfigRecord:
        ...


class ConfirmationTokenStore(ABC):
    @abstractmethod
    async def issue(self, appointment_id: str, expires_at: datetime) -> str:
        """Create a token for ``appointment_id`` and return it in clear."""

    @abstractmethod
    async def consume(self, appointment_id: str, token: str, now: datetime) -> bool:
        """Atomically invalidate a matching, unexpired, unused token."""


class BeanieReminderConfigStore(ReminderConfigStore):
    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def get_or_create(self) -> ReminderConfigRecord:
        doc = await bounded(ReminderConfig.get(REMINDER_CONFIG_ID), self._timeout, "loading reminder config")
        if doc is None:
            defaults = default_reminder_config()
            doc = ReminderConfig(id=REMINDER_CONFIG_ID, **defaults.model_dump())
            await bounded(doc.save(), self._timeout, "creating reminder config")
            logger.info("ℹ️ Reminder configuration created with defaults")
        return ReminderConfigRecord.model_validate(doc, from_attributes=True)

    async def save(self, config: ReminderConfigRecord) -> ReminderConfigRecord:
        doc = ReminderConfig(
            id=REMINDER_CONFIG_ID,
            updated_at=datetime.now(timezone.utc),
            **config.model_dump(),
        )
        # whole-document overwrite
        await bounded(doc.save(), self._timeout, "saving reminder config")
        return config


class BeanieConfirmationTokenStore(ConfirmationTokenStore):
    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def issue(self, appointment_id: str, expires_at: datetime) -> str:
        token = secrets.token_urlsafe(32)
        doc = ConfirmationToken(
            token_hash=hash_token(token),
            appointment_id=appointment_id,
            expires_at=expires_at,
        )
        await bounded(doc.insert(), self._timeout, f"issuing token for {appointment_id}")
        return token

    async def consume(self, appointment_id: str, token: str, now: datetime) -> bool:
        collection = ConfirmationToken.get_motor_collection()
        result = await bounded(
            collection.update_one(
                {
                    "token_hash": hash_token(token),
                    "appointment_id": appointment_id,
                    "used_at": None,
                    "expires_at": {"$gt": now},
                },
                {"$set": {"used_at": now}},
            ),
            self._timeout,
            f"consuming token for {appointment_id}",
        )
        return result.modified_count == 1
