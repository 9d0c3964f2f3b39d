"""
Configuration Management for Split Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine has no external services, so configuration only covers
tolerances and currency precision.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Currencies without 2-digit minor units. Everything else uses the default.
DEFAULT_CURRENCY_EXPONENTS: dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "BHD": 3,
    "JOD": 3,
    "KWD": 3,
    "OMR": 3,
    "TND": 3,
}


class EngineSettings(BaseSettings):
    """
    Split Ledger engine settings.

    Loads configuration from SPLITLEDGER_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Settlement currency used when a caller does not pass one"
    )
    tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Accepted drift for percentage and exact-amount totals"
    )
    percentage_total: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="Total that split percentages must add up to"
    )
    default_minor_unit_exponent: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Decimal places of a currency's minor unit when not listed"
    )
    currency_exponents: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_EXPONENTS),
        description="Per-currency minor unit exponents (JSON in the environment)"
    )
    log_consistency_checks: bool = Field(
        default=True,
        description="Report internal consistency violations to the audit logger"
    )

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator("currency_exponents")
    @classmethod
    def normalize_exponents(cls, v: dict[str, int]) -> dict[str, int]:
        normalized = {}
        for code, exponent in v.items():
            if exponent < 0:
                raise ValueError(f"Minor unit exponent for {code} cannot be negative")
            normalized[code.upper()] = exponent
        return normalized

    def minor_unit_exponent(self, currency: str) -> int:
        """Decimal places used by the smallest unit of a currency."""
        return self.currency_exponents.get(
            currency.upper(),
            self.default_minor_unit_exponent,
        )


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get engine settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return EngineSettings()
