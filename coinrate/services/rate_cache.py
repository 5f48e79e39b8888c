# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Read-through cache of latest rates with a single fetch-on-miss."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from coinrate.models.base import utcnow
from coinrate.services.errors import FetchError, RateUnavailableError
from coinrate.services.rate_fetcher import RateFetcher
from coinrate.services.rate_store import RatePair, RateRecord, RateStore

logger = logging.getLogger(__name__)


class RateCache:
    """Latest-rate accessor backed by a RateStore."""

    def __init__(
        self,
        store: RateStore,
        fetcher: RateFetcher,
        quote_currencies: Iterable[str],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Store holding the latest records.
            fetcher: Fetcher used when a pair is missing.
            quote_currencies: Quotes fetched together on a miss.
            clock: Source of observation timestamps.
        """
        self.store = store
        self.fetcher = fetcher
        self.quote_currencies = {q.upper() for q in quote_currencies}
        self._clock = clock

    async def get(self, pair: RatePair) -> RateRecord:
        """Get the latest record for ``pair``.

        A stored record is returned without touching the network. On a miss
        the base asset is fetched once for every configured quote plus the
        requested one, the results are stored, and the store is read again.

        Raises:
            RateUnavailableError: If the pair is still missing after the fetch.
        """
        record = self.store.get_latest(pair)
        if record is not None:
            return record

        logger.warning(f"No cached rate for {pair}, fetching fresh")
        quotes = self.quote_currencies | {pair.quote_currency}
        try:
            rates = await self.fetcher.fetch(pair.base_asset, quotes)
        except FetchError as e:
            raise RateUnavailableError(f"No rate available for {pair}: {e}") from e

        observed_at = self._clock()
        for quote, rate in rates.items():
            self.store.upsert_latest(RatePair(pair.base_asset, quote), rate, observed_at)

        record = self.store.get_latest(pair)
        if record is None:
            raise RateUnavailableError(f"Price source did not report {pair}")
        return record
