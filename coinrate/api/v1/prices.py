# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Latest price and conversion endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from coinrate.api.deps import get_rate_service
from coinrate.schemas.rates import (
    ConversionItem,
    ConversionRequest,
    ConversionResponse,
    CurrenciesResponse,
    LatestPricesResponse,
    RateResponse,
)
from coinrate.services.errors import (
    InvalidAmountError,
    InvalidCurrencyError,
    NoRateDataError,
)
from coinrate.services.rate_service import RateService
from coinrate.services.rate_store import RatePair

router = APIRouter()


@router.get("/currencies", response_model=CurrenciesResponse)
def list_currencies(
    service: RateService = Depends(get_rate_service),
) -> CurrenciesResponse:
    """Get the tracked asset and its quote currencies."""
    return CurrenciesResponse(
        base_asset=service.base_asset,
        quote_currencies=service.quote_currencies,
    )


@router.get("/prices/latest", response_model=LatestPricesResponse)
def get_latest_prices(
    service: RateService = Depends(get_rate_service),
) -> LatestPricesResponse:
    """Get the latest stored rate for every quote currency."""
    records = service.get_latest_prices()
    if not records:
        raise HTTPException(
            status_code=404,
            detail="No price data available",
        )
    return LatestPricesResponse(
        base_asset=service.base_asset,
        rates=[RateResponse.from_record(r) for r in records.values()],
    )


@router.get("/rates/{quote_currency}", response_model=RateResponse)
def get_latest_rate(
    quote_currency: str,
    service: RateService = Depends(get_rate_service),
) -> RateResponse:
    """Get the latest stored rate for a single quote currency."""
    record = service.get_latest_rate(RatePair(service.base_asset, quote_currency))
    if record is None:
        raise HTTPException(
            status_code=404,
            detail=f"No rate for {service.base_asset}/{quote_currency.upper()}",
        )
    return RateResponse.from_record(record)


@router.post("/convert", response_model=ConversionResponse)
async def convert(
    data: ConversionRequest,
    service: RateService = Depends(get_rate_service),
) -> ConversionResponse:
    """Convert an amount of the tracked asset into quote currencies."""
    try:
        results = await service.convert_many(data.amount, data.currencies)
    except (InvalidAmountError, InvalidCurrencyError) as e:
        raise HTTPException(
            status_code=422,
            detail=str(e),
        ) from e
    except NoRateDataError as e:
        raise HTTPException(
            status_code=503,
            detail=str(e),
        ) from e

    return ConversionResponse(
        amount=str(data.amount),
        base_asset=service.base_asset,
        conversions=[ConversionItem.from_result(r) for r in results.values()],
    )
