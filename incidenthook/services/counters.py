# incidenthook/services/counters.py
import math
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from incidenthook.errors import PersistenceError
from incidenthook.models import AttemptCounter as CounterRow

log = logging.getLogger(__name__)

STRATEGIES = ("auto", "atomic", "read_write")

_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _as_utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def window_start_for(now: datetime, window_seconds: int) -> int:
    """Inicio (epoch, s) del bucket fijo que contiene `now`."""
    ts = _as_utc(now).timestamp()
    return int(math.floor(ts / window_seconds)) * window_seconds


def counter_key(source: str, window_start: int) -> str:
    return f"{source}-{window_start}"


class AttemptCounter:
    """
    Cuenta intentos fallidos por (source, ventana fija).

    "atomic": un solo INSERT ... ON CONFLICT DO UPDATE count = count + 1
    (SQLite/PostgreSQL). "read_write": select y después insert/update; dos
    requests concurrentes de la misma IP pueden leer el mismo valor y perder
    un incremento. Ese race queda aceptado para dialectos sin upsert.
    """

    def __init__(self, session_factory: sessionmaker, window_seconds: int = 300, strategy: str = "auto"):
        if strategy not in STRATEGIES:
            raise ValueError(f"COUNTER_STRATEGY inválido: {strategy!r}")
        if window_seconds <= 0:
            raise ValueError("window_seconds debe ser > 0")
        self.session_factory = session_factory
        self.window_seconds = window_seconds
        self.strategy = strategy

    def _dialect(self, db) -> str:
        return db.get_bind().dialect.name

    def _resolve_strategy(self, db) -> str:
        if self.strategy != "auto":
            return self.strategy
        return "atomic" if self._dialect(db) in _UPSERT_INSERTS else "read_write"

    def increment(self, source: str, now: Optional[datetime] = None) -> int:
        now = _as_utc(now)
        start = window_start_for(now, self.window_seconds)
        key = counter_key(source, start)

        db = self.session_factory()
        try:
            if self._resolve_strategy(db) == "atomic":
                count = self._increment_atomic(db, key, source, start, now)
            else:
                count = self._increment_read_write(db, key, source, start, now)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.warning("[counter] increment %s failed: %s", key, e)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

        log.debug("[counter] %s -> %d", key, count)
        return count

    def _increment_atomic(self, db, key, source, start, now) -> int:
        insert = _UPSERT_INSERTS.get(self._dialect(db))
        if insert is None:
            raise PersistenceError(f"upsert no soportado en {self._dialect(db)}")
        stmt = insert(CounterRow).values(
            counter_id=key, ip=source, window_start=start, count=1, last_seen=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CounterRow.counter_id],
            set_={"count": CounterRow.count + 1, "last_seen": now},
        )
        db.execute(stmt)
        # misma transacción: la fila queda bloqueada por nosotros hasta el commit
        return int(db.execute(select(CounterRow.count).where(CounterRow.counter_id == key)).scalar_one())

    def _increment_read_write(self, db, key, source, start, now) -> int:
        existing = db.get(CounterRow, key)
        if existing is None:
            db.add(CounterRow(counter_id=key, ip=source, window_start=start, count=1, last_seen=now))
            return 1
        existing.count = (existing.count or 0) + 1
        existing.last_seen = now
        return existing.count
