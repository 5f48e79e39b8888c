# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Crypto price fetching from the CoinGecko simple price API."""

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

import httpx

from coinrate.services.errors import FetchError, FetchErrorReason

logger = logging.getLogger(__name__)

# CoinGecko API base URL (free tier, no API key needed)
COINGECKO_API_URL = "https://api.coingecko.com"

SIMPLE_PRICE_PATH = "/api/v3/simple/price"

# Ticker symbol to CoinGecko coin id
COIN_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "LTC": "litecoin",
    "XMR": "monero",
}


def coin_id_for(asset: str) -> str:
    """Map an asset symbol to the id the price source expects."""
    return COIN_IDS.get(asset.upper(), asset.lower())


def _normalize_quotes(quote_currencies: Iterable[str]) -> list[str]:
    quotes = sorted({q.strip().upper() for q in quote_currencies})
    if not quotes:
        raise ValueError("At least one quote currency is required")
    for quote in quotes:
        if len(quote) != 3 or not quote.isalpha():
            raise ValueError(f"Invalid currency code: {quote!r}")
    return quotes


def _parse_rate(value: object) -> Decimal | None:
    """Convert an upstream number to a positive finite Decimal."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return rate


class RateFetcher:
    """Fetches the price of one crypto asset in several fiat currencies.

    Holds no state besides a reusable HTTP client. Does not retry; callers
    decide when to try again.
    """

    def __init__(
        self,
        base_url: str = COINGECKO_API_URL,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            base_url: Price source base URL.
            timeout: Timeout in seconds applied to every request.
        """
        self.base_url = base_url
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def fetch(
        self,
        base_asset: str,
        quote_currencies: Iterable[str],
    ) -> dict[str, Decimal]:
        """Fetch current rates for ``base_asset``.

        Args:
            base_asset: Crypto asset symbol (e.g., "BTC").
            quote_currencies: Fiat currency codes (e.g., {"USD", "EUR"}).

        Returns:
            Mapping of upper-cased quote currency to rate. Quotes the source
            did not report are absent, never zero.

        Raises:
            ValueError: If no quote currencies or an invalid code is given.
            FetchError: On transport failure, timeout, non-2xx status or a
                response without the asset key.
        """
        quotes = _normalize_quotes(quote_currencies)
        coin_id = coin_id_for(base_asset)

        try:
            client = await self._get_client()
            response = await client.get(
                SIMPLE_PRICE_PATH,
                params={
                    "ids": coin_id,
                    "vs_currencies": ",".join(q.lower() for q in quotes),
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                logger.warning(f"Price source rate limit hit for {base_asset}")
                raise FetchError(
                    FetchErrorReason.RATE_LIMITED, "Price source rate limit exceeded"
                ) from e
            logger.error(f"Price source error fetching {base_asset}: {e}")
            raise FetchError(FetchErrorReason.NETWORK, f"API error: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {base_asset} price: {e}")
            raise FetchError(
                FetchErrorReason.NETWORK, f"Failed to fetch price: {e}"
            ) from e
        except ValueError as e:
            logger.error(f"Invalid price source response: {e}")
            raise FetchError(
                FetchErrorReason.MALFORMED_RESPONSE, f"Invalid API response: {e}"
            ) from e

        # API returns: {"bitcoin": {"usd": 50000.0, "eur": 45000.0}}
        if not isinstance(data, dict) or not isinstance(data.get(coin_id), dict):
            raise FetchError(
                FetchErrorReason.MALFORMED_RESPONSE,
                f"Response is missing the '{coin_id}' key",
            )
        prices = data[coin_id]

        rates: dict[str, Decimal] = {}
        for quote in quotes:
            rate = _parse_rate(prices.get(quote.lower()))
            if rate is None:
                logger.debug(f"No usable {base_asset}/{quote} rate in response")
                continue
            rates[quote] = rate
        return rates
