from beanie import Document, Indexed
from pydantic import Field
from datetime import datetime, timezone
from uuid import uuid4

from vetcare.constants import Role


class User(Document):
    """Clinic user (client, veterinarian, receptionist or admin).

    Read-only here: accounts are managed by the identity service.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    first_name: str | None = None
    last_name: str | None = None
    email: Indexed(str, unique=True)
    phone: str | None = None
    role: Role
    # extra grants on top of the role defaults
    permissions: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "users"
