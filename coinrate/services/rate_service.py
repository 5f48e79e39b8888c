# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application-scoped container for the rate components."""

import logging
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from coinrate.config import Settings
from coinrate.database import create_db_engine, create_session_factory
from coinrate.models import Base
from coinrate.models.base import utcnow
from coinrate.services.conversion_service import ConversionEngine, ConversionResult
from coinrate.services.rate_cache import RateCache
from coinrate.services.rate_fetcher import RateFetcher
from coinrate.services.rate_store import HistoryEntry, RatePair, RateRecord, RateStore
from coinrate.services.refresh_scheduler import RateRefreshScheduler, RefreshStatus

logger = logging.getLogger(__name__)


class RateService:
    """Owns the store, fetcher, cache, scheduler and conversion engine.

    One instance lives for the lifetime of the application; it is created at
    startup and closed at shutdown.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        fetcher: RateFetcher | None = None,
    ) -> None:
        self.settings = settings
        self.base_asset = settings.base_asset
        self.quote_currencies = list(settings.quote_currencies)

        self.store = RateStore(session_factory)
        self.fetcher = fetcher or RateFetcher(
            base_url=settings.price_api_url,
            timeout=settings.fetch_timeout_seconds,
        )
        self.cache = RateCache(self.store, self.fetcher, self.quote_currencies)
        self.scheduler = RateRefreshScheduler(
            self.store,
            self.fetcher,
            base_asset=self.base_asset,
            quote_currencies=self.quote_currencies,
            interval_seconds=settings.refresh_interval_seconds,
            initial_delay_seconds=settings.refresh_initial_delay_seconds,
        )
        self.converter = ConversionEngine(self.cache, self.base_asset)

    async def start(self) -> None:
        """Start background refresh if enabled."""
        if self.settings.refresh_enabled:
            self.scheduler.start()
        else:
            logger.info("Background rate refresh disabled")

    async def close(self) -> None:
        """Stop background refresh and release the HTTP client."""
        await self.scheduler.stop()
        await self.fetcher.close()

    def get_latest_rate(self, pair: RatePair) -> RateRecord | None:
        """Get the stored rate for ``pair`` without fetching."""
        return self.store.get_latest(pair)

    def get_latest_prices(self) -> dict[str, RateRecord]:
        """Get stored rates for every configured quote currency."""
        rates = self.store.latest_rates(self.base_asset)
        return {q: rates[q] for q in self.quote_currencies if q in rates}

    async def convert(self, amount: Decimal, quote_currency: str) -> ConversionResult:
        return await self.converter.convert(amount, quote_currency)

    async def convert_many(
        self, amount: Decimal, quote_currencies: list[str] | None = None
    ) -> dict[str, ConversionResult]:
        return await self.converter.convert_many(
            amount, quote_currencies or self.quote_currencies
        )

    def get_history_since(self, duration: timedelta) -> list[HistoryEntry]:
        """Get history entries recorded within ``duration`` of now."""
        return self.store.history_since(utcnow() - duration)

    def get_history_count(self) -> int:
        return self.store.count_history()

    def refresh_status(self) -> RefreshStatus:
        return self.scheduler.status()


def build_rate_service(
    settings: Settings,
    engine: Engine | None = None,
    fetcher: RateFetcher | None = None,
) -> RateService:
    """Create the database schema and a RateService for ``settings``."""
    if engine is None:
        engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    return RateService(settings, create_session_factory(engine), fetcher=fetcher)
