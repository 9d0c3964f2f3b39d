"""Configuration package."""

from splitledger.config.settings import (
    DEFAULT_CURRENCY_EXPONENTS,
    EngineSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_CURRENCY_EXPONENTS",
    "EngineSettings",
    "get_settings",
]
