# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Durable storage for latest rates and the rate history log."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from coinrate.models import ExchangeRate, RateHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatePair:
    """Currency pair key, upper-cased on construction."""

    base_asset: str
    quote_currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_asset", self.base_asset.strip().upper())
        object.__setattr__(self, "quote_currency", self.quote_currency.strip().upper())

    def __str__(self) -> str:
        return f"{self.base_asset}/{self.quote_currency}"


@dataclass(frozen=True)
class RateRecord:
    """Latest observed rate for a pair."""

    pair: RatePair
    rate: Decimal
    observed_at: datetime


@dataclass(frozen=True)
class HistoryEntry:
    """A complete set of quote rates recorded at one instant."""

    base_asset: str
    rates: dict[str, Decimal]
    recorded_at: datetime
    id: int | None = field(default=None, compare=False)


def _to_record(row: ExchangeRate) -> RateRecord:
    return RateRecord(
        pair=RatePair(row.base_asset, row.quote_currency),
        rate=row.rate,
        observed_at=row.observed_at,
    )


def _to_entry(row: RateHistory) -> HistoryEntry:
    return HistoryEntry(
        id=row.id,
        base_asset=row.base_asset,
        rates={quote: Decimal(value) for quote, value in row.rates.items()},
        recorded_at=row.recorded_at,
    )


class RateStore:
    """Key-value view over the ``exchange_rates`` and ``rate_history`` tables.

    Holds exactly one current record per pair. Every public method runs in
    its own short session, so a failed history write never affects the
    latest-rate table and vice versa.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory producing database sessions.
        """
        self._session_factory = session_factory
        self._history_lock = threading.Lock()
        self._upsert_lock = threading.Lock()

    def get_latest(self, pair: RatePair) -> RateRecord | None:
        """Get the current record for ``pair``, or None if there is none."""
        with self._session_factory() as db:
            row = db.scalars(
                select(ExchangeRate).where(
                    ExchangeRate.base_asset == pair.base_asset,
                    ExchangeRate.quote_currency == pair.quote_currency,
                )
            ).first()
            return _to_record(row) if row is not None else None

    def latest_rates(self, base_asset: str) -> dict[str, RateRecord]:
        """Get all current records for ``base_asset`` keyed by quote currency."""
        with self._session_factory() as db:
            rows = db.scalars(
                select(ExchangeRate)
                .where(ExchangeRate.base_asset == base_asset.upper())
                .order_by(ExchangeRate.quote_currency)
            ).all()
            return {row.quote_currency: _to_record(row) for row in rows}

    def upsert_latest(
        self,
        pair: RatePair,
        rate: Decimal,
        observed_at: datetime,
    ) -> RateRecord:
        """Replace the record for ``pair`` in a single statement.

        The stored rate and timestamp always come from the same writer. A
        write older than the stored ``observed_at`` is ignored so the record
        never regresses.

        Returns:
            The record stored after the write.
        """
        if not rate.is_finite() or rate <= 0:
            raise ValueError(f"Rate must be a positive finite number, got {rate}")

        values = {
            "base_asset": pair.base_asset,
            "quote_currency": pair.quote_currency,
            "rate": rate,
            "observed_at": observed_at,
        }
        with self._session_factory() as db:
            dialect = db.get_bind().dialect.name
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(ExchangeRate).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["base_asset", "quote_currency"],
                    set_={
                        "rate": stmt.excluded.rate,
                        "observed_at": stmt.excluded.observed_at,
                    },
                    where=ExchangeRate.observed_at <= stmt.excluded.observed_at,
                )
                db.execute(stmt)
                db.commit()
            else:
                self._upsert_fallback(db, values)

            row = db.scalars(
                select(ExchangeRate).where(
                    ExchangeRate.base_asset == pair.base_asset,
                    ExchangeRate.quote_currency == pair.quote_currency,
                )
            ).one()
            record = _to_record(row)

        logger.debug(f"Upserted {pair} rate {rate} observed at {observed_at}")
        return record

    def _upsert_fallback(self, db: Session, values: dict) -> None:
        """Serialized read-then-write for dialects without ON CONFLICT."""
        with self._upsert_lock:
            existing = db.scalars(
                select(ExchangeRate)
                .where(
                    ExchangeRate.base_asset == values["base_asset"],
                    ExchangeRate.quote_currency == values["quote_currency"],
                )
                .with_for_update()
            ).first()
            if existing is None:
                db.add(ExchangeRate(**values))
            elif existing.observed_at <= values["observed_at"]:
                existing.rate = values["rate"]
                existing.observed_at = values["observed_at"]
            db.commit()

    def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        """Append an entry to the history log.

        Entries are never deduplicated. ``recorded_at`` is clamped to the
        newest existing timestamp for the asset so the log stays ordered.
        """
        with self._history_lock, self._session_factory() as db:
            newest = db.scalar(
                select(func.max(RateHistory.recorded_at)).where(
                    RateHistory.base_asset == entry.base_asset
                )
            )
            recorded_at = entry.recorded_at
            if newest is not None and recorded_at < newest:
                logger.warning(
                    f"History timestamp {recorded_at} precedes {newest}; clamping"
                )
                recorded_at = newest

            row = RateHistory(
                base_asset=entry.base_asset,
                rates={quote: str(rate) for quote, rate in entry.rates.items()},
                recorded_at=recorded_at,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_entry(row)

    def count_history(self) -> int:
        """Count all history entries."""
        with self._session_factory() as db:
            return db.scalar(select(func.count()).select_from(RateHistory)) or 0

    def history_since(self, cutoff: datetime) -> list[HistoryEntry]:
        """Get history entries newer than ``cutoff``, oldest first."""
        with self._session_factory() as db:
            rows = db.scalars(
                select(RateHistory)
                .where(RateHistory.recorded_at > cutoff)
                .order_by(RateHistory.recorded_at.asc(), RateHistory.id.asc())
            ).all()
            return [_to_entry(row) for row in rows]
