from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from vetcare.config import get_settings

settings = get_settings()

_mongo_client: AsyncIOMotorClient | None = None


async def init_db() -> None:
    """Connect to MongoDB and register the Beanie document models."""
    global _mongo_client
    _mongo_client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGODB_TIMEOUT_MS,
    )
    from vetcare.models import (
        User,
        Pet,
        MedicalRecord,
        Appointment,
        ReminderConfig,
        ConfirmationToken,
    )
    await init_beanie(
        database=_mongo_client[settings.mongodb_database],
        document_models=[
            User,
            Pet,
            MedicalRecord,
            Appointment,
            ReminderConfig,
            ConfirmationToken,
        ],
    )


async def ping_db() -> bool:
    """Check MongoDB connectivity."""
    if not _mongo_client:
        return False
    try:
        await _mongo_client.admin.command("ping")
        return True
    except Exception:
        return False


def close_db() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
