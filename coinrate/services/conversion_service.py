# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Conversion of crypto amounts into fiat using cached rates."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from coinrate.services.errors import (
    InvalidAmountError,
    InvalidCurrencyError,
    NoRateDataError,
    RateUnavailableError,
)
from coinrate.services.rate_cache import RateCache
from coinrate.services.rate_store import RatePair

logger = logging.getLogger(__name__)

# Fiat amounts are rounded half-up to cents
CURRENCY_PRECISION = Decimal("0.01")


@dataclass
class ConversionResult:
    """Result of a crypto to fiat conversion."""

    original_amount: Decimal
    base_asset: str
    converted_amount: Decimal
    quote_currency: str
    rate: Decimal
    observed_at: datetime


class ConversionEngine:
    """Converts amounts of the tracked asset into quote currencies."""

    def __init__(self, cache: RateCache, base_asset: str) -> None:
        self.cache = cache
        self.base_asset = base_asset.upper()

    async def convert(self, amount: Decimal, quote_currency: str) -> ConversionResult:
        """Convert ``amount`` of the base asset into ``quote_currency``.

        Args:
            amount: Amount of the base asset, must be greater than zero.
            quote_currency: Target currency code.

        Returns:
            ConversionResult carrying the observation time of the rate used.

        Raises:
            InvalidAmountError: If amount is not a positive finite number.
            InvalidCurrencyError: If quote_currency is not a valid code.
            NoRateDataError: If no rate could be obtained.
        """
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmountError(f"Amount must be greater than 0, got {amount}")

        pair = RatePair(self.base_asset, quote_currency)
        if len(pair.quote_currency) != 3 or not pair.quote_currency.isalpha():
            raise InvalidCurrencyError(f"Invalid currency code: {quote_currency!r}")
        try:
            record = await self.cache.get(pair)
        except RateUnavailableError as e:
            logger.error(f"Conversion failed for {amount} {pair}: {e}")
            raise NoRateDataError(f"No price data available for {pair}") from e

        converted = (amount * record.rate).quantize(
            CURRENCY_PRECISION, rounding=ROUND_HALF_UP
        )
        logger.info(f"Converted {amount} {pair.base_asset} to {converted} {pair.quote_currency}")

        return ConversionResult(
            original_amount=amount,
            base_asset=pair.base_asset,
            converted_amount=converted,
            quote_currency=pair.quote_currency,
            rate=record.rate,
            observed_at=record.observed_at,
        )

    async def convert_many(
        self,
        amount: Decimal,
        quote_currencies: Iterable[str],
    ) -> dict[str, ConversionResult]:
        """Convert ``amount`` into several quote currencies at once.

        Raises:
            InvalidAmountError: If amount is not a positive finite number.
            InvalidCurrencyError: If a quote is not a valid code.
            NoRateDataError: If any of the quotes has no rate.
        """
        results: dict[str, ConversionResult] = {}
        for quote in quote_currencies:
            result = await self.convert(amount, quote)
            results[result.quote_currency] = result
        return results
