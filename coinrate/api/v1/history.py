# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Rate history and refresh status endpoints."""

from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from coinrate.api.deps import get_rate_service
from coinrate.schemas.rates import (
    HistoryEntryResponse,
    HistoryResponse,
    HistoryTotalResponse,
    RefreshStatusResponse,
)
from coinrate.services.rate_service import RateService

router = APIRouter()


def _history(service: RateService, hours: int) -> HistoryResponse:
    entries = service.get_history_since(timedelta(hours=hours))
    return HistoryResponse(
        hours=hours,
        data=[HistoryEntryResponse.from_entry(e) for e in entries],
    )


@router.get("/history/last-24h", response_model=HistoryResponse)
def get_last_24_hours(
    service: RateService = Depends(get_rate_service),
) -> HistoryResponse:
    """Get history entries from the configured window (24h by default)."""
    return _history(service, service.settings.history_window_hours)


@router.get("/history/rate-history", response_model=HistoryResponse)
def get_rate_history(
    hours: int = Query(24, ge=1, le=720),
    service: RateService = Depends(get_rate_service),
) -> HistoryResponse:
    """Get history entries from the last ``hours`` hours."""
    return _history(service, hours)


@router.get("/history/total", response_model=HistoryTotalResponse)
def get_history_total(
    service: RateService = Depends(get_rate_service),
) -> HistoryTotalResponse:
    """Get the total number of history entries."""
    return HistoryTotalResponse(total=service.get_history_count())


@router.get("/refresh/status", response_model=RefreshStatusResponse)
def get_refresh_status(
    service: RateService = Depends(get_rate_service),
) -> RefreshStatusResponse:
    """Get the background refresh health."""
    return RefreshStatusResponse.from_status(service.refresh_status())
