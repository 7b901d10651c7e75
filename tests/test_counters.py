"""Tests de incidenthook.services.counters: contador por (source, ventana)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from incidenthook.errors import PersistenceError
from incidenthook.models import AttemptCounter as CounterRow
from incidenthook.services.counters import AttemptCounter, counter_key, window_start_for

T0 = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["atomic", "read_write"])
def counter(request, session_factory):
    return AttemptCounter(session_factory, window_seconds=300, strategy=request.param)


def stored_count(session_factory, source, now=T0):
    db = session_factory()
    try:
        row = db.get(CounterRow, counter_key(source, window_start_for(now, 300)))
        return row.count if row else 0
    finally:
        db.close()


# ═══════════════════════════════════════════════════════════════════════════
#  Cálculo de ventana
# ═══════════════════════════════════════════════════════════════════════════


class TestWindow:
    def test_window_start_is_floor_of_width(self):
        start = window_start_for(T0 + timedelta(seconds=299), 300)
        assert start == int(T0.timestamp())
        assert start % 300 == 0

    def test_next_bucket(self):
        assert window_start_for(T0 + timedelta(seconds=300), 300) == int(T0.timestamp()) + 300

    def test_naive_datetime_is_utc(self):
        assert window_start_for(T0.replace(tzinfo=None), 300) == window_start_for(T0, 300)

    def test_counter_key(self):
        assert counter_key("10.0.0.1", 1700000100) == "10.0.0.1-1700000100"


# ═══════════════════════════════════════════════════════════════════════════
#  increment()
# ═══════════════════════════════════════════════════════════════════════════


class TestIncrement:
    def test_sequential_calls_count_up(self, counter):
        got = [counter.increment("203.0.113.10", T0 + timedelta(seconds=i)) for i in range(5)]
        assert got == [1, 2, 3, 4, 5]

    def test_new_window_starts_new_row(self, counter):
        assert counter.increment("203.0.113.10", T0) == 1
        assert counter.increment("203.0.113.10", T0 + timedelta(seconds=10)) == 2
        assert counter.increment("203.0.113.10", T0 + timedelta(minutes=5)) == 1

    def test_sources_are_independent(self, counter, session_factory):
        counter.increment("10.0.0.1", T0)
        counter.increment("10.0.0.1", T0)
        assert counter.increment("10.0.0.2", T0) == 1
        assert stored_count(session_factory, "10.0.0.1") == 2

    def test_row_fields(self, counter, session_factory):
        counter.increment("10.0.0.1", T0)
        last = T0 + timedelta(seconds=42)
        counter.increment("10.0.0.1", last)

        key = counter_key("10.0.0.1", window_start_for(T0, 300))
        db = session_factory()
        try:
            row = db.get(CounterRow, key)
            assert row.ip == "10.0.0.1"
            assert row.window_start == int(T0.timestamp())
            assert row.count == 2
            assert row.last_seen.replace(tzinfo=timezone.utc) == last
        finally:
            db.close()

    def test_no_row_before_first_increment(self, counter, session_factory):
        assert stored_count(session_factory, "192.0.2.1") == 0


class TestStrategy:
    def test_auto_uses_atomic_on_sqlite(self, session_factory):
        counter = AttemptCounter(session_factory)
        db = session_factory()
        try:
            assert counter._resolve_strategy(db) == "atomic"
        finally:
            db.close()

    def test_invalid_strategy(self, session_factory):
        with pytest.raises(ValueError):
            AttemptCounter(session_factory, strategy="magic")

    def test_invalid_window(self, session_factory):
        with pytest.raises(ValueError):
            AttemptCounter(session_factory, window_seconds=0)

    def test_store_failure_raises_persistence_error(self):
        from incidenthook.database import make_engine, make_session_factory

        # sin create_all: la tabla no existe
        engine = make_engine("sqlite://")
        counter = AttemptCounter(make_session_factory(engine), strategy="read_write")
        with pytest.raises(PersistenceError):
            counter.increment("10.0.0.1", T0)
        engine.dispose()
