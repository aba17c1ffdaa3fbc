import os
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://harvest:harvest@db:5432/harvest",
    )
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Wall-clock zone for cutoff checks and "today"/"tomorrow"
    TIMEZONE: str = os.getenv("TIMEZONE", "America/New_York")
    AVAILABILITY_HORIZON_DAYS: int = int(os.getenv("AVAILABILITY_HORIZON_DAYS", "90"))
    SCHEDULE_RESULT_CAP: int = int(os.getenv("SCHEDULE_RESULT_CAP", "30"))

    ORDER_SERVICE_URL: str = os.getenv("ORDER_SERVICE_URL", "http://orders:8000")
    ORDER_SERVICE_TOKEN: str | None = os.getenv("ORDER_SERVICE_TOKEN")
    ORDER_SERVICE_TIMEOUT: float = float(os.getenv("ORDER_SERVICE_TIMEOUT", "10"))

    CRON_SECRET: str | None = os.getenv("CRON_SECRET")
    REMINDER_DAYS_AHEAD: int = int(os.getenv("REMINDER_DAYS_AHEAD", "2"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
