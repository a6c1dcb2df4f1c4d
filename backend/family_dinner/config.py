"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./family_dinner.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Proposed poll slots are entered as wall-clock date + time in this zone
    DEFAULT_TIMEZONE: str = "America/New_York"

    CANCELLATION_CUTOFF_HOURS: int = 24
    MAX_GUESTS_PER_RESERVATION: int = 10
    MAX_EVENT_CAPACITY: int = 50

    FROM_EMAIL: str = "noreply@familydinner.me"
    NOTIFICATIONS_ENABLED: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
