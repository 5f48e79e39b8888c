# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for rate_store."""

import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from coinrate.database import create_db_engine, create_session_factory
from coinrate.models import Base
from coinrate.services.rate_store import HistoryEntry, RatePair, RateStore

NOW = datetime(2025, 1, 15, 12, 0, 0)
BTC_USD = RatePair("BTC", "USD")
BTC_EUR = RatePair("BTC", "EUR")


class TestRatePair:
    """Tests for RatePair."""

    def test_normalizes_case(self):
        assert RatePair("btc", " usd ") == BTC_USD
        assert str(RatePair("btc", "eur")) == "BTC/EUR"

    def test_hashable_key(self):
        assert {RatePair("btc", "usd"): 1}[BTC_USD] == 1


class TestLatest:
    """Tests for get_latest and upsert_latest."""

    def test_missing_pair_returns_none(self, rate_store):
        assert rate_store.get_latest(BTC_USD) is None

    def test_upsert_then_get(self, rate_store):
        """A stored tuple is returned exactly."""
        rate_store.upsert_latest(BTC_USD, Decimal("50000.00"), NOW)

        record = rate_store.get_latest(BTC_USD)

        assert record is not None
        assert record.pair == BTC_USD
        assert record.rate == Decimal("50000.00")
        assert record.observed_at == NOW

    def test_upsert_returns_stored_record(self, rate_store):
        record = rate_store.upsert_latest(BTC_USD, Decimal("50000.00"), NOW)

        assert record.rate == Decimal("50000.00")
        assert record.observed_at == NOW

    def test_upsert_replaces_previous(self, rate_store):
        """A newer write replaces the whole record."""
        rate_store.upsert_latest(BTC_USD, Decimal("50000.00"), NOW)
        later = NOW + timedelta(minutes=5)
        rate_store.upsert_latest(BTC_USD, Decimal("51000.50"), later)

        record = rate_store.get_latest(BTC_USD)

        assert record.rate == Decimal("51000.50")
        assert record.observed_at == later
        assert len(rate_store.latest_rates("BTC")) == 1

    def test_older_write_does_not_regress(self, rate_store):
        """A write older than the stored record is ignored."""
        later = NOW + timedelta(minutes=5)
        rate_store.upsert_latest(BTC_USD, Decimal("51000.00"), later)

        record = rate_store.upsert_latest(BTC_USD, Decimal("49000.00"), NOW)

        assert record.rate == Decimal("51000.00")
        assert record.observed_at == later

    def test_pairs_are_independent(self, rate_store):
        rate_store.upsert_latest(BTC_USD, Decimal("50000"), NOW)
        rate_store.upsert_latest(BTC_EUR, Decimal("45000"), NOW)

        assert rate_store.get_latest(BTC_USD).rate == Decimal("50000")
        assert rate_store.get_latest(BTC_EUR).rate == Decimal("45000")

    @pytest.mark.parametrize("rate", ["0", "-1", "NaN", "Infinity"])
    def test_rejects_invalid_rate(self, rate_store, rate):
        with pytest.raises(ValueError):
            rate_store.upsert_latest(BTC_USD, Decimal(rate), NOW)
        assert rate_store.get_latest(BTC_USD) is None

    def test_latest_rates_by_base(self, rate_store):
        rate_store.upsert_latest(BTC_USD, Decimal("50000"), NOW)
        rate_store.upsert_latest(BTC_EUR, Decimal("45000"), NOW)
        rate_store.upsert_latest(RatePair("ETH", "USD"), Decimal("3000"), NOW)

        rates = rate_store.latest_rates("btc")

        assert sorted(rates) == ["EUR", "USD"]
        assert rates["EUR"].rate == Decimal("45000")

    @pytest.mark.parametrize(
        "rate",
        ["0.123456789", "0.000000004", "50000.123456789012", "1E-12", "98765432101234.5"],
    )
    def test_rate_round_trips_exactly(self, rate_store, rate):
        """The stored rate is returned digit for digit."""
        rate_store.upsert_latest(BTC_USD, Decimal(rate), NOW)

        record = rate_store.get_latest(BTC_USD)

        assert record.rate == Decimal(rate)
        assert record.rate > 0

    def test_latest_and_history_agree(self, rate_store):
        rate = Decimal("0.000000004")
        rate_store.upsert_latest(BTC_USD, rate, NOW)
        rate_store.append_history(
            HistoryEntry(base_asset="BTC", rates={"USD": rate}, recorded_at=NOW)
        )

        [entry] = rate_store.history_since(NOW - timedelta(hours=1))

        assert rate_store.get_latest(BTC_USD).rate == entry.rates["USD"] == rate


class TestHistory:
    """Tests for the history log."""

    def _entry(self, recorded_at, usd="50000", eur="45000"):
        return HistoryEntry(
            base_asset="BTC",
            rates={"USD": Decimal(usd), "EUR": Decimal(eur)},
            recorded_at=recorded_at,
        )

    def test_append_and_count(self, rate_store):
        assert rate_store.count_history() == 0

        stored = rate_store.append_history(self._entry(NOW))

        assert stored.id is not None
        assert stored.rates == {"USD": Decimal("50000"), "EUR": Decimal("45000")}
        assert rate_store.count_history() == 1

    def test_duplicates_are_kept(self, rate_store):
        rate_store.append_history(self._entry(NOW))
        rate_store.append_history(self._entry(NOW))

        assert rate_store.count_history() == 2

    def test_preserves_decimal_precision(self, rate_store):
        rate_store.append_history(self._entry(NOW, usd="50000.12345678"))

        [entry] = rate_store.history_since(NOW - timedelta(hours=1))

        assert entry.rates["USD"] == Decimal("50000.12345678")

    def test_history_since_ascending_and_excludes_old(self, rate_store):
        """Entries come back oldest first, older than cutoff excluded."""
        rate_store.append_history(self._entry(NOW - timedelta(hours=30)))
        rate_store.append_history(self._entry(NOW - timedelta(hours=2), usd="1"))
        rate_store.append_history(self._entry(NOW - timedelta(hours=1), usd="2"))
        rate_store.append_history(self._entry(NOW, usd="3"))

        entries = rate_store.history_since(NOW - timedelta(hours=24))

        assert [e.rates["USD"] for e in entries] == [Decimal("1"), Decimal("2"), Decimal("3")]
        timestamps = [e.recorded_at for e in entries]
        assert timestamps == sorted(timestamps)

    def test_recorded_at_never_decreases(self, rate_store):
        """An entry older than the newest one is clamped forward."""
        rate_store.append_history(self._entry(NOW))

        stored = rate_store.append_history(self._entry(NOW - timedelta(minutes=10)))

        assert stored.recorded_at == NOW


class TestUpsertFallback:
    """Tests for the read-then-write path used without ON CONFLICT support."""

    def _values(self, rate, observed_at):
        return {
            "base_asset": "BTC",
            "quote_currency": "USD",
            "rate": Decimal(rate),
            "observed_at": observed_at,
        }

    def test_inserts_and_replaces(self, rate_store, session_factory):
        later = NOW + timedelta(minutes=5)
        with session_factory() as db:
            rate_store._upsert_fallback(db, self._values("50000", NOW))
        with session_factory() as db:
            rate_store._upsert_fallback(db, self._values("51000", later))

        record = rate_store.get_latest(BTC_USD)
        assert record.rate == Decimal("51000")
        assert record.observed_at == later

    def test_ignores_older_write(self, rate_store, session_factory):
        with session_factory() as db:
            rate_store._upsert_fallback(db, self._values("50000", NOW))
        with session_factory() as db:
            rate_store._upsert_fallback(
                db, self._values("1", NOW - timedelta(minutes=5))
            )

        assert rate_store.get_latest(BTC_USD).rate == Decimal("50000")


@pytest.fixture
def file_store(tmp_path):
    """Store over a file-backed database with a real connection pool."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'rates.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield RateStore(create_session_factory(engine))
    finally:
        engine.dispose()


class TestConcurrentWrites:
    """Tests for writes racing from several threads."""

    def test_concurrent_upserts_keep_newest_tuple(self, file_store):
        """Racing writers leave one writer's full tuple, the newest one."""
        writes = [
            (Decimal(f"{50000 + i}.{i:04d}"), NOW + timedelta(seconds=i))
            for i in range(40)
        ]
        random.Random(7).shuffle(writes)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(
                pool.map(
                    lambda w: file_store.upsert_latest(BTC_USD, w[0], w[1]), writes
                )
            )

        record = file_store.get_latest(BTC_USD)
        assert (record.rate, record.observed_at) in writes
        assert (record.rate, record.observed_at) == max(writes, key=lambda w: w[1])
        assert len(file_store.latest_rates("BTC")) == 1

    def test_concurrent_appends_stay_ordered(self, file_store):
        """Every append is kept and ids follow recorded_at order."""
        timestamps = [NOW + timedelta(seconds=i) for i in range(30)]
        random.Random(11).shuffle(timestamps)

        def append(recorded_at):
            return file_store.append_history(
                HistoryEntry(
                    base_asset="BTC",
                    rates={"USD": Decimal("50000")},
                    recorded_at=recorded_at,
                )
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(append, timestamps))

        assert file_store.count_history() == len(timestamps)
        entries = sorted(
            file_store.history_since(NOW - timedelta(hours=1)), key=lambda e: e.id
        )
        recorded = [e.recorded_at for e in entries]
        assert recorded == sorted(recorded)
