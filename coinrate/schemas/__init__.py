# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Pydantic schemas package."""
from coinrate.schemas.common import HealthResponse
from coinrate.schemas.rates import (
    ConversionItem,
    ConversionRequest,
    ConversionResponse,
    CurrenciesResponse,
    HistoryEntryResponse,
    HistoryResponse,
    HistoryTotalResponse,
    LatestPricesResponse,
    RateResponse,
    RefreshStatusResponse,
)

__all__ = [
    "ConversionItem",
    "ConversionRequest",
    "ConversionResponse",
    "CurrenciesResponse",
    "HealthResponse",
    "HistoryEntryResponse",
    "HistoryResponse",
    "HistoryTotalResponse",
    "LatestPricesResponse",
    "RateResponse",
    "RefreshStatusResponse",
]
