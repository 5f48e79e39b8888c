# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import asyncio
import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

# Set test environment before importing the app
os.environ["COINRATE_DATABASE_URL"] = "sqlite://"
os.environ["COINRATE_REFRESH_ENABLED"] = "false"

from coinrate.config import Settings
from coinrate.database import create_db_engine, create_session_factory
from coinrate.models import Base
from coinrate.services.rate_fetcher import RateFetcher
from coinrate.services.rate_store import RateStore


class FakeClock:
    """Clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 12, 0, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current += timedelta(seconds=1)
        return now


class FakeFetcher:
    """Stand-in for RateFetcher that records calls.

    ``results`` is consumed one item per call; an exception item is raised.
    When ``gate`` is set, each fetch waits for it before returning.
    """

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, set[str]]] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def fetch(self, base_asset, quote_currencies) -> dict[str, Decimal]:
        self.calls.append((base_asset, set(quote_currencies)))
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return dict(result)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def rate_store(session_factory) -> RateStore:
    return RateStore(session_factory)


@pytest.fixture
def rate_fetcher() -> RateFetcher:
    return RateFetcher(timeout=2.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        refresh_enabled=False,
        base_asset="BTC",
        quote_currencies=["USD", "EUR"],
    )


@pytest.fixture
def make_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher
