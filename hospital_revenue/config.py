"""Application configuration using pydantic-settings."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hospital_revenue.finance.aggregation import UnmatchedDoctorPolicy

PACKAGE_DIR = Path(__file__).resolve().parent


class AppSettings(BaseSettings):
    """Configuration values for the hospital revenue service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HOSPITAL_",
        extra="ignore",
    )

    app_name: str = Field(default="Hospital Revenue Desk")
    currency: str = Field(default="PKR", min_length=3, max_length=3)
    money_places: int = Field(
        default=2,
        ge=2,
        le=4,
        description="Fraction digits shown; never fewer than the 0.01 unit amounts are kept in.",
    )
    reporting_timezone: str = Field(
        default="Asia/Karachi",
        description="IANA zone used for every calendar-day boundary.",
    )
    unmatched_doctor_policy: UnmatchedDoctorPolicy = Field(
        default=UnmatchedDoctorPolicy.ATTRIBUTE_TO_HOSPITAL
    )
    default_doctor_percentage: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Share applied when a doctor row has no percentage for a category.",
    )
    dashboard_password: Optional[SecretStr] = Field(default=None)
    session_duration_hours: int = Field(default=24, ge=1)
    max_login_attempts: int = Field(default=3, ge=1)
    lockout_minutes: int = Field(default=15, ge=1)
    data_file: Optional[Path] = Field(
        default=None,
        description="JSON export of the doctors and patients tables.",
    )
    template_dir: Path = Field(default=PACKAGE_DIR / "templates")
    max_rows_returned: int = Field(default=500)

    @field_validator("currency")
    @classmethod
    def _uppercase_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("reporting_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.reporting_timezone)


_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Return a cached instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = ["AppSettings", "get_settings"]
