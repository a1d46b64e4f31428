# backend/evbooking/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


_DEV_QR_SIGNING_KEY = "dev-qr-signing-key-not-for-production-use"


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = "development"
    log_level: str = "INFO"

    database_url: str = Field(
        default="sqlite:///./evbooking.db",
        description="SQLAlchemy URL for the booking store",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for distributed station locks (process-local locks when unset)",
    )

    # QR authorization tokens
    qr_signing_key: SecretStr = Field(
        default=SecretStr(_DEV_QR_SIGNING_KEY),
        description="HMAC secret used to sign QR tokens",
    )
    qr_algorithm: str = "HS256"
    qr_post_session_minutes: int = Field(
        default=30, ge=0, description="Token lifetime after the session end"
    )
    qr_early_grace_minutes: int = Field(
        default=15, ge=0, description="Scans accepted this long before the session start"
    )
    qr_late_grace_minutes: int = Field(
        default=30, ge=0, description="Scans accepted this long after the session end"
    )
    qr_clock_skew_seconds: int = Field(default=120, ge=0)

    # Booking policy
    default_facility_timezone: str = Field(
        default="Asia/Colombo",
        description="Facility zone used for stations that do not carry their own zone",
    )
    booking_horizon_days: int = Field(default=7, gt=0)
    modification_cutoff_hours: int = Field(default=12, ge=0)
    default_slot_minutes: int = Field(default=30, gt=0)

    # Station/day serialization
    station_lock_ttl_seconds: int = Field(default=30, gt=0)
    station_lock_wait_seconds: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("redis_url", mode="before")
    @classmethod
    def _blank_redis_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _refuse_dev_key_in_production(self) -> "Settings":
        if (
            self.environment == "production"
            and self.qr_signing_key.get_secret_value() == _DEV_QR_SIGNING_KEY
        ):
            raise ValueError("QR_SIGNING_KEY must be set in production")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
logger.info(
    "[CONFIG] environment=%s facility_timezone=%s redis_locks=%s",
    settings.environment,
    settings.default_facility_timezone,
    bool(settings.redis_url),
)
