# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Rate, conversion and history schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from coinrate.services.conversion_service import ConversionResult
from coinrate.services.rate_store import HistoryEntry, RateRecord
from coinrate.services.refresh_scheduler import RefreshState, RefreshStatus


class CurrenciesResponse(BaseModel):
    """Tracked asset and its quote currencies."""

    base_asset: str
    quote_currencies: list[str]


class RateResponse(BaseModel):
    """Latest rate for a single pair."""

    base_asset: str
    quote_currency: str
    rate: str
    timestamp: datetime

    @classmethod
    def from_record(cls, record: RateRecord) -> "RateResponse":
        return cls(
            base_asset=record.pair.base_asset,
            quote_currency=record.pair.quote_currency,
            rate=str(record.rate),
            timestamp=record.observed_at,
        )


class LatestPricesResponse(BaseModel):
    """Latest rates for every configured quote currency."""

    base_asset: str
    rates: list[RateResponse]


class ConversionRequest(BaseModel):
    """Schema for a conversion request."""

    amount: Decimal
    currencies: list[str] | None = Field(
        None, description="Quote currencies, defaults to all configured"
    )

    @field_validator("currencies")
    @classmethod
    def validate_currencies(cls, v: list[str] | None) -> list[str] | None:
        """Upper-case currency codes and require three letters."""
        if v is None:
            return None
        codes = [code.strip().upper() for code in v]
        for code in codes:
            if len(code) != 3 or not code.isalpha():
                raise ValueError(f"Invalid currency code: {code}")
        return codes or None


class ConversionItem(BaseModel):
    """Conversion into one quote currency."""

    quote_currency: str
    converted_amount: str
    rate: str
    timestamp: datetime

    @classmethod
    def from_result(cls, result: ConversionResult) -> "ConversionItem":
        return cls(
            quote_currency=result.quote_currency,
            converted_amount=str(result.converted_amount),
            rate=str(result.rate),
            timestamp=result.observed_at,
        )


class ConversionResponse(BaseModel):
    """Schema for a conversion response."""

    amount: str
    base_asset: str
    conversions: list[ConversionItem]


class HistoryEntryResponse(BaseModel):
    """One history log entry."""

    id: int | None
    base_asset: str
    rates: dict[str, str]
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(
            id=entry.id,
            base_asset=entry.base_asset,
            rates={quote: str(rate) for quote, rate in entry.rates.items()},
            timestamp=entry.recorded_at,
        )


class HistoryResponse(BaseModel):
    """History entries within a window, oldest first."""

    hours: int
    data: list[HistoryEntryResponse]


class HistoryTotalResponse(BaseModel):
    """Total number of history entries."""

    total: int


class RefreshStatusResponse(BaseModel):
    """Background refresh health."""

    state: RefreshState
    running: bool
    last_success_at: datetime | None
    last_failure_at: datetime | None
    last_error: str | None
    consecutive_failures: int
    cycles_run: int
    cycles_skipped: int

    @classmethod
    def from_status(cls, status: RefreshStatus) -> "RefreshStatusResponse":
        return cls(
            state=status.state,
            running=status.running,
            last_success_at=status.last_success_at,
            last_failure_at=status.last_failure_at,
            last_error=status.last_error,
            consecutive_failures=status.consecutive_failures,
            cycles_run=status.cycles_run,
            cycles_skipped=status.cycles_skipped,
        )
