from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime, timezone
from uuid import uuid4

REMINDER_CONFIG_ID = "reminder_config"


class ReminderConfig(Document):
    """Singleton settings read by every reminder sweep."""
    id: str = REMINDER_CONFIG_ID
    reminder_hours_before: int = 24
    is_enabled: bool = True
    email_template: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "configurations"


class ConfirmationToken(Document):
    """Single-use token embedded in a reminder's confirmation link.

    Only the SHA-256 of the token is stored.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    token_hash: Indexed(str, unique=True)
    appointment_id: Indexed(str)
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "confirmation_tokens"
        # Mongo drops a token once its appointment time has passed
        indexes = [IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=0)]
