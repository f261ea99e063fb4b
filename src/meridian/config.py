"""Settings for the exchange-rate service, loaded from the environment."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings (MERIDIAN_BASE_CURRENCY_CODE, MERIDIAN_DATABASE_URL, ...)."""

    model_config = SettingsConfigDict(
        env_prefix="MERIDIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///meridian.db"

    # Currencies
    base_currency_code: str = "USD"
    target_currency_codes: list[str] = []

    # Cache
    rates_cache_ttl_seconds: int = 1800  # 30 minutes
    cache_prefix: str = "meridian.exchange_rate"
    rates_cache_max_items: int = 10_000

    # Provider
    provider_base_url: str = "https://api.frankfurter.dev/v1"
    http_timeout_seconds: float = 10.0
    http_max_retries: int = 1
    http_retry_base_delay: float = 1.0

    # Refresh
    historical_days: int = 90

    @field_validator("base_currency_code")
    @classmethod
    def _check_base_code(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError(f"base_currency_code must be a 3-letter ISO 4217 code, got {value!r}")
        return value

    @field_validator("target_currency_codes")
    @classmethod
    def _upper_targets(cls, value: list[str]) -> list[str]:
        return [code.strip().upper() for code in value if code.strip()]

    @field_validator(
        "rates_cache_ttl_seconds", "rates_cache_max_items", "http_max_retries", "historical_days"
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
