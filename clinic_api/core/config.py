"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: major.minor.patch)
    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str = "sqlite+pysqlite:///./clinic.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Clinic wall clock - all appointment times are stored in this zone
    CLINIC_TIMEZONE: str = "America/Sao_Paulo"

    # Booking policy
    BOOKING_HORIZON_DAYS: int = 90  # Furthest a patient can self-book
    MIN_ADVANCE_HOURS: int = 12  # Closest a patient can self-book
    LATE_CANCELLATION_HOURS: int = 24  # Cancelling inside this window is "late"
    MAX_SLOT_RANGE_DAYS: int = 31  # Max span for slot range queries
    DEFAULT_BOOKING_STATUS: str = "confirmed"

    # Staff endpoints (auth is delegated to the gateway in front of the API)
    ADMIN_API_KEY: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Rate Limiting
    RATE_LIMIT_PUBLIC: str = "10/minute"  # Booking / cancel / reschedule
    RATE_LIMIT_API: int = 120  # General API (requests per minute)

    # Logging
    LOG_LEVEL: str = "INFO"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
