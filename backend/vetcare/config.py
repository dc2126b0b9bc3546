from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List
import os


class Settings(BaseSettings):
    """Global app settings loaded from environment.
    - Keep defaults light for dev.
    - Override via .env or real env vars.
    """

    APP_NAME: str = "vetcare_api"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    LOG_DIR: str = "logs"

    MONGODB_URI: str = "mongodb://localhost:27017/vetcare_db"
    # Upper bound for server selection / socket operations in the driver
    MONGODB_TIMEOUT_MS: int = 5000

    # JWT settings
    JWT_SECRET: str = "vetcare_dev_secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Raw CORS string from env (comma-separated); parsed via cors_origins property
    CORS_ORIGINS: str | None = None

    # Email provider config (log | resend)
    EMAIL_PROVIDER: str = "log"
    RESEND_API_KEY: str | None = None
    EMAIL_FROM_ADDRESS: str = "VetCare <no-reply@vetcare.local>"

    # Base URL used when building confirmation links sent in reminders
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Reminder sweep
    REMINDER_SWEEP_ENABLED: bool = True
    REMINDER_INTERVAL_MINUTES: int = 60

    # Bounded waits on external collaborators (seconds)
    STORE_TIMEOUT_SECONDS: float = 10.0
    NOTIFY_TIMEOUT_SECONDS: float = 15.0

    # Optimistic concurrency: how many read-modify-write attempts before giving up
    MUTATION_MAX_ATTEMPTS: int = 3

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Dates in e-mails are rendered in UTC with this format
    DATE_DISPLAY_FORMAT: str = "%d/%m/%Y %H:%M"

    CONFIRM_RATE_LIMIT: str = "20/minute"
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origins(self) -> List[str]:
        """Return CORS origins as a list, parsing comma-separated env string."""
        raw = self.CORS_ORIGINS or os.getenv("CORS_ORIGINS", "") or ""
        return [o.strip() for o in raw.split(",") if o.strip()]

    @property
    def mongodb_database(self) -> str:
        """Database name taken from the URI path, 'vetcare_db' when absent."""
        db_name = self.MONGODB_URI.rsplit("/", 1)[-1].split("?")[0]
        return db_name or "vetcare_db"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
