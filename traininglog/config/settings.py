"""
Service configuration.

Every field maps to an environment variable of the same name (case
insensitive), optionally read from a local .env file. Two groups matter:

- Snowflake credentials, which are only required outside mock mode
- Streak behaviour: the timezone training days are counted in, how long a
  day's window stays open after its last slot, and how far back a streak
  may reach
"""

from datetime import timedelta, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the Training Log API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API
    api_title: str = "Training Log API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Accepted X-API-Key values, comma separated"
    )
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed browser origins, comma separated, or *"
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    # Snowflake
    snowflake_account: str = Field(default="", description="Account identifier")
    snowflake_user: str = Field(default="", description="Service user")
    snowflake_password: str = Field(default="", description="Password, if not using a key pair")
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="PEM private key file for key-pair auth"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="PEM private key, base64 encoded, for environments without files"
    )
    snowflake_database: str = Field(default="TRAININGLOG")
    snowflake_schema: str = Field(default="PUBLIC")
    snowflake_warehouse: str = Field(default="COMPUTE_WH")
    snowflake_role: Optional[str] = Field(default=None)
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Keep logs, slots and skips in memory instead of Snowflake"
    )

    # Streaks
    schedule_timezone: str = Field(
        default="UTC",
        description="IANA timezone that training days are counted in"
    )
    log_grace_hours: int = Field(
        default=24,
        ge=0,
        description="How long after the day's last slot a log still counts for that day"
    )
    streak_max_periods: int = Field(
        default=366,
        ge=1,
        description="How many training days back a streak may reach"
    )

    @field_validator("schedule_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def api_keys_list(self) -> list[str]:
        return _split_csv(self.api_keys)

    @property
    def cors_origins_list(self) -> list[str]:
        return ["*"] if self.cors_origins.strip() == "*" else _split_csv(self.cors_origins)

    @property
    def schedule_tz(self) -> tzinfo:
        return ZoneInfo(self.schedule_timezone)

    @property
    def log_grace(self) -> timedelta:
        return timedelta(hours=self.log_grace_hours)

    def validate_required_fields(self) -> list[str]:
        """
        Names of the Snowflake settings that still need a value.

        Empty in mock mode. Checked at startup and by the readiness probe
        rather than by pydantic, since what's required depends on the mode.
        """
        if self.snowflake_mock_mode:
            return []

        missing = []
        if not self.snowflake_account:
            missing.append("SNOWFLAKE_ACCOUNT")
        if not self.snowflake_user:
            missing.append("SNOWFLAKE_USER")
        has_key = self.snowflake_private_key_path or self.snowflake_private_key_base64
        if not self.snowflake_password and not has_key:
            missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")
        return missing


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests override the dependency or call cache_clear()."""
    return Settings()
