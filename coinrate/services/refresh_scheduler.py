# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Periodic background refresh of the latest rates and history log."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from coinrate.models.base import utcnow
from coinrate.services.errors import FetchError
from coinrate.services.rate_fetcher import RateFetcher
from coinrate.services.rate_store import HistoryEntry, RatePair, RateStore

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    """Phase of the refresh cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    COMMITTING = "committing"
    FAILED = "failed"


class CycleOutcome(str, Enum):
    """Result of a single refresh cycle."""

    COMPLETE = "complete"  # all quotes stored, history appended
    PARTIAL = "partial"  # some quotes stored, no history
    FAILED = "failed"  # nothing stored


@dataclass
class RefreshStatus:
    """Health snapshot of the scheduler."""

    state: RefreshState
    running: bool
    last_success_at: datetime | None
    last_failure_at: datetime | None
    last_error: str | None
    consecutive_failures: int
    cycles_run: int
    cycles_skipped: int


class RateRefreshScheduler:
    """Drives the fetcher on a fixed period and writes the results.

    Only one cycle is ever in flight; a tick that arrives while a cycle is
    still running is skipped. Failures are logged and never stop the loop.
    """

    def __init__(
        self,
        store: RateStore,
        fetcher: RateFetcher,
        base_asset: str,
        quote_currencies: Iterable[str],
        interval_seconds: float = 300.0,
        initial_delay_seconds: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the scheduler.

        Args:
            store: Store receiving latest rates and history entries.
            fetcher: Price fetcher.
            base_asset: Tracked asset symbol.
            quote_currencies: Quotes fetched every cycle.
            interval_seconds: Period between ticks.
            initial_delay_seconds: Delay before the first tick.
            clock: Source of observation timestamps.
        """
        self.store = store
        self.fetcher = fetcher
        self.base_asset = base_asset.upper()
        self.quote_currencies = [q.upper() for q in quote_currencies]
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self._clock = clock

        self._loop_task: asyncio.Task[None] | None = None
        self._cycle_task: asyncio.Task[CycleOutcome] | None = None

        self._state = RefreshState.IDLE
        self._last_success_at: datetime | None = None
        self._last_failure_at: datetime | None = None
        self._last_error: str | None = None
        self._consecutive_failures = 0
        self._cycles_run = 0
        self._cycles_skipped = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def cycle_in_flight(self) -> bool:
        return self._cycle_task is not None and not self._cycle_task.done()

    def status(self) -> RefreshStatus:
        """Return the current health snapshot."""
        return RefreshStatus(
            state=self._state,
            running=self.running,
            last_success_at=self._last_success_at,
            last_failure_at=self._last_failure_at,
            last_error=self._last_error,
            consecutive_failures=self._consecutive_failures,
            cycles_run=self._cycles_run,
            cycles_skipped=self._cycles_skipped,
        )

    def start(self) -> None:
        """Start the periodic loop on the running event loop."""
        if self.running:
            return
        logger.info(
            f"Starting rate refresh for {self.base_asset} "
            f"every {self.interval_seconds}s "
            f"(first run in {self.initial_delay_seconds}s)"
        )
        self._loop_task = asyncio.create_task(self._run_loop(), name="rate-refresh")

    async def stop(self) -> None:
        """Cancel the loop and any in-flight cycle."""
        tasks = [t for t in (self._loop_task, self._cycle_task) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._cycle_task = None
        self._state = RefreshState.IDLE
        logger.info("Rate refresh stopped")

    async def _run_loop(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            self.tick()
            await asyncio.sleep(self.interval_seconds)

    def tick(self) -> bool:
        """Launch a cycle unless one is already in flight.

        Returns:
            True if a cycle was started, False if the tick was skipped.
        """
        if self.cycle_in_flight:
            self._cycles_skipped += 1
            logger.warning("Previous rate refresh still running, skipping tick")
            return False
        self._cycle_task = asyncio.create_task(self.run_cycle())
        self._cycle_task.add_done_callback(self._on_cycle_done)
        return True

    def _on_cycle_done(self, task: asyncio.Task[CycleOutcome]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Rate refresh cycle crashed", exc_info=exc)
            self._fail(f"Unexpected error: {exc}")

    async def run_cycle(self) -> CycleOutcome:
        """Fetch once and commit the results.

        Every obtained quote is upserted. A history entry is appended only
        when all configured quotes were obtained.
        """
        self._cycles_run += 1
        logger.info(f"Refreshing {self.base_asset} prices...")

        self._state = RefreshState.FETCHING
        try:
            rates = await self.fetcher.fetch(self.base_asset, self.quote_currencies)
        except FetchError as e:
            return self._fail(f"Price fetch failed: {e}")
        if not rates:
            return self._fail("Price source returned no usable rates")

        self._state = RefreshState.COMMITTING
        observed_at = self._clock()
        try:
            for quote, rate in rates.items():
                self.store.upsert_latest(RatePair(self.base_asset, quote), rate, observed_at)
                logger.info(f"Updated {self.base_asset}/{quote} rate: {rate}")
        except SQLAlchemyError as e:
            logger.exception("Failed to store latest rates")
            return self._fail(f"Storing latest rates failed: {e}")

        missing = [q for q in self.quote_currencies if q not in rates]
        if missing:
            logger.warning(
                f"Price source omitted {', '.join(missing)}; skipping history entry"
            )
            self._succeed()
            return CycleOutcome.PARTIAL

        try:
            entry = self.store.append_history(
                HistoryEntry(
                    base_asset=self.base_asset,
                    rates={q: rates[q] for q in self.quote_currencies},
                    recorded_at=observed_at,
                )
            )
        except SQLAlchemyError as e:
            logger.exception("Failed to append rate history")
            return self._fail(f"Appending history failed: {e}")

        logger.info(f"Saved to history at {entry.recorded_at}: {entry.rates}")
        self._succeed()
        return CycleOutcome.COMPLETE

    def _succeed(self) -> None:
        self._state = RefreshState.IDLE
        self._last_success_at = self._clock()
        self._consecutive_failures = 0
        self._last_error = None

    def _fail(self, message: str) -> CycleOutcome:
        logger.error(message)
        self._state = RefreshState.FAILED
        self._last_failure_at = self._clock()
        self._last_error = message
        self._consecutive_failures += 1
        return CycleOutcome.FAILED
