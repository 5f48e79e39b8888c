# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Every field can be overridden with a ``COINRATE_`` prefixed environment
    variable, e.g. ``COINRATE_REFRESH_INTERVAL_SECONDS=60``. List values are
    given as JSON (``COINRATE_QUOTE_CURRENCIES='["USD","EUR"]'``).
    """

    model_config = SettingsConfigDict(
        env_prefix="COINRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field("coinrate", description="Application name")
    log_level: str = Field("INFO", description="Root log level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Origins allowed by the CORS middleware",
    )

    # Persistence
    database_url: str = Field(
        "sqlite:///./coinrate.db", description="SQLAlchemy database URL"
    )

    # Price source (CoinGecko simple price API)
    price_api_url: str = Field(
        "https://api.coingecko.com", description="Price source base URL"
    )
    fetch_timeout_seconds: float = Field(
        10.0, gt=0, description="Timeout for a single price fetch"
    )

    # Tracked pairs
    base_asset: str = Field("BTC", description="Tracked crypto asset symbol")
    quote_currencies: list[str] = Field(
        default_factory=lambda: ["USD", "EUR"],
        description="Fiat currencies the base asset is quoted in",
    )

    # Refresh scheduling
    refresh_enabled: bool = Field(True, description="Run the background refresh")
    refresh_interval_seconds: float = Field(300.0, gt=0)
    refresh_initial_delay_seconds: float = Field(10.0, ge=0)

    # History
    history_window_hours: int = Field(24, gt=0)

    @field_validator("base_asset")
    @classmethod
    def normalize_base_asset(cls, v: str) -> str:
        """Upper-case the asset symbol."""
        v = v.strip().upper()
        if not v:
            raise ValueError("base_asset must not be empty")
        return v

    @field_validator("quote_currencies")
    @classmethod
    def normalize_quote_currencies(cls, v: list[str]) -> list[str]:
        """Upper-case, de-duplicate and validate quote currency codes."""
        codes: list[str] = []
        for code in v:
            code = code.strip().upper()
            if len(code) != 3 or not code.isalpha():
                raise ValueError(f"Invalid currency code: {code!r}")
            if code not in codes:
                codes.append(code)
        if not codes:
            raise ValueError("At least one quote currency is required")
        return codes

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Return the process settings, loaded once."""
    return Settings()
