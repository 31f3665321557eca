"""SQLite adapters — durable хранилища котировок и переговоров.

Чистый слой DB I/O:
- котировки: upsert по составному ключу (INSERT ... ON CONFLICT DO UPDATE)
- переговоры: compare-and-set через UPDATE ... WHERE id = ? AND version = ?

Все даты хранятся строками ISO 8601.
"""

import logging
import sqlite3
import threading
import uuid
from typing import Any, Final

from mandi_floor.core.domain.market_price import MarketPriceRecord
from mandi_floor.core.domain.negotiation import ActorRole, Negotiation
from mandi_floor.storage.ports import (
    NegotiationStore,
    UpdateResult,
    UpdateStatus,
    apply_patch,
    check_patch,
)
from mandi_floor.storage.subscriptions import Subscription, SubscriptionHub

logger = logging.getLogger(__name__)


MARKET_PRICES_DDL: Final[str] = """
CREATE TABLE IF NOT EXISTS market_prices (
    record_key   TEXT PRIMARY KEY,
    state        TEXT NOT NULL,
    district     TEXT NOT NULL,
    market       TEXT NOT NULL,
    commodity    TEXT NOT NULL,
    variety      TEXT NOT NULL DEFAULT '',
    grade        TEXT NOT NULL DEFAULT '',
    min_price    REAL,
    max_price    REAL,
    modal_price  REAL,
    price_unit   TEXT NOT NULL,
    report_date  TEXT NOT NULL DEFAULT '',
    source       TEXT NOT NULL,
    source_url   TEXT,
    is_verified  INTEGER NOT NULL,
    last_updated TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_market_prices_region
    ON market_prices (state COLLATE NOCASE, district COLLATE NOCASE);
"""

NEGOTIATIONS_DDL: Final[str] = """
CREATE TABLE IF NOT EXISTS negotiations (
    id             TEXT PRIMARY KEY,
    product_id     TEXT NOT NULL,
    buyer_id       TEXT NOT NULL,
    farmer_id      TEXT NOT NULL,
    initial_price  REAL NOT NULL,
    offered_price  REAL NOT NULL,
    counter_price  REAL,
    quantity       REAL NOT NULL,
    status         TEXT NOT NULL,
    floor_price    REAL NOT NULL,
    target_price   REAL NOT NULL,
    price_source   TEXT NOT NULL,
    price_verified INTEGER NOT NULL,
    quality_grade  TEXT NOT NULL,
    notes          TEXT NOT NULL DEFAULT '',
    last_updated   TEXT NOT NULL,
    version        INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_negotiations_buyer ON negotiations (buyer_id);
CREATE INDEX IF NOT EXISTS idx_negotiations_farmer ON negotiations (farmer_id);
"""

_MARKET_COLUMNS: Final[tuple[str, ...]] = (
    "state", "district", "market", "commodity", "variety", "grade",
    "min_price", "max_price", "modal_price", "price_unit", "report_date",
    "source", "source_url", "is_verified", "last_updated",
)

_NEGOTIATION_COLUMNS: Final[tuple[str, ...]] = (
    "id", "product_id", "buyer_id", "farmer_id", "initial_price", "offered_price",
    "counter_price", "quantity", "status", "floor_price", "target_price",
    "price_source", "price_verified", "quality_grade", "notes", "last_updated",
    "version",
)

# Поля, которые может менять update_if_version (помимо version)
_MUTABLE_COLUMNS: Final[tuple[str, ...]] = (
    "offered_price", "counter_price", "quantity", "status", "notes", "last_updated",
)


def connect(path: str = ":memory:") -> sqlite3.Connection:
    """Соединение для адаптеров (Row factory, доступ из разных потоков)."""
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def _negotiation_to_row(n: Negotiation) -> dict[str, Any]:
    data = n.model_dump(mode="json")
    data["price_verified"] = int(n.price_verified)
    return {col: data[col] for col in _NEGOTIATION_COLUMNS}


def _row_to_negotiation(row: sqlite3.Row) -> Negotiation:
    data = {col: row[col] for col in _NEGOTIATION_COLUMNS}
    data["price_verified"] = bool(data["price_verified"])
    # status проходит через legacy-нормализацию модели
    return Negotiation.model_validate(data)


def _row_to_market_record(row: sqlite3.Row) -> MarketPriceRecord:
    data = {col: row[col] for col in _MARKET_COLUMNS}
    data["is_verified"] = bool(data["is_verified"])
    return MarketPriceRecord.model_validate(data)


# ---------------------------------------------------------------------------
# Market prices
# ---------------------------------------------------------------------------


class SqliteMarketPriceStore:
    """Котировки в SQLite; read-many / write-rarely."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        self._lock = threading.Lock()
        with self._lock:
            self._conn.executescript(MARKET_PRICES_DDL)
            self._conn.commit()

    def upsert(self, record: MarketPriceRecord) -> str:
        """Вставка или перезапись по составному ключу."""
        data = record.model_dump(mode="json")
        data["is_verified"] = int(record.is_verified)
        cols = ", ".join(_MARKET_COLUMNS)
        params = ", ".join(f":{c}" for c in _MARKET_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _MARKET_COLUMNS)
        sql = (
            f"INSERT INTO market_prices (record_key, {cols}) VALUES (:record_key, {params}) "
            f"ON CONFLICT(record_key) DO UPDATE SET {updates}"
        )
        with self._lock:
            self._conn.execute(sql, {"record_key": record.record_key, **data})
            self._conn.commit()
        return record.record_key

    def find_by_region(
        self, state: str, district: str, limit: int
    ) -> list[MarketPriceRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM market_prices "
                "WHERE state = ? COLLATE NOCASE AND district = ? COLLATE NOCASE "
                "ORDER BY last_updated DESC LIMIT ?",
                (state.strip(), district.strip(), int(limit)),
            ).fetchall()
        return [_row_to_market_record(r) for r in rows]


# ---------------------------------------------------------------------------
# Negotiations
# ---------------------------------------------------------------------------


class SqliteNegotiationStore(NegotiationStore):
    """Переговоры в SQLite.

    Арбитраж конкурирующих писателей: UPDATE ... WHERE version = ?;
    rowcount == 0 означает CONFLICT (или NOT_FOUND), записи не происходит.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        # sqlite3.Connection не допускает параллельного использования
        self._lock = threading.Lock()
        self._hub = SubscriptionHub()
        with self._lock:
            self._conn.executescript(NEGOTIATIONS_DDL)
            self._conn.commit()

    def _fetch(self, negotiation_id: str) -> Negotiation | None:
        row = self._conn.execute(
            "SELECT * FROM negotiations WHERE id = ?", (negotiation_id,)
        ).fetchone()
        return _row_to_negotiation(row) if row is not None else None

    def get_by_id(self, negotiation_id: str) -> Negotiation | None:
        with self._lock:
            return self._fetch(negotiation_id)

    def insert(self, record: Negotiation) -> str:
        negotiation_id = record.id or uuid.uuid4().hex
        stored = record.model_copy(update={"id": negotiation_id})
        row = _negotiation_to_row(stored)
        cols = ", ".join(_NEGOTIATION_COLUMNS)
        params = ", ".join(f":{c}" for c in _NEGOTIATION_COLUMNS)
        with self._lock:
            try:
                self._conn.execute(f"INSERT INTO negotiations ({cols}) VALUES ({params})", row)
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise ValueError(f"negotiation {negotiation_id} already exists") from e
            self._conn.commit()
            self._hub.publish(stored)
        return negotiation_id

    def update_if_version(
        self, negotiation_id: str, expected_version: int, patch: dict[str, Any]
    ) -> UpdateResult:
        check_patch(patch)
        with self._lock:
            current = self._fetch(negotiation_id)
            if current is None:
                return UpdateResult(UpdateStatus.NOT_FOUND)
            if current.version != expected_version:
                return self._conflict(negotiation_id, expected_version, current)

            # Валидация патча до записи: невалидный патч не доходит до БД
            updated = apply_patch(current, patch)
            row = _negotiation_to_row(updated)
            assignments = ", ".join(f"{c} = :{c}" for c in _MUTABLE_COLUMNS)
            cur = self._conn.execute(
                f"UPDATE negotiations SET {assignments}, version = version + 1 "
                f"WHERE id = :id AND version = :expected_version",
                {**{c: row[c] for c in _MUTABLE_COLUMNS},
                 "id": negotiation_id, "expected_version": expected_version},
            )
            if cur.rowcount == 0:
                # Строку изменил другой процесс между SELECT и UPDATE
                self._conn.rollback()
                return self._conflict(
                    negotiation_id, expected_version, self._fetch(negotiation_id)
                )
            self._conn.commit()
            self._hub.publish(updated)
        return UpdateResult(UpdateStatus.OK, updated)

    @staticmethod
    def _conflict(
        negotiation_id: str, expected_version: int, current: Negotiation | None
    ) -> UpdateResult:
        if current is None:
            return UpdateResult(UpdateStatus.NOT_FOUND)
        logger.debug(
            "version conflict id=%s expected=%d stored=%d",
            negotiation_id, expected_version, current.version,
        )
        return UpdateResult(UpdateStatus.CONFLICT, current)

    def subscribe_by_participant(
        self, participant_id: str, role: ActorRole
    ) -> Subscription:
        column = "buyer_id" if ActorRole(role) == ActorRole.BUYER else "farmer_id"
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM negotiations WHERE {column} = ?", (participant_id,)
            ).fetchall()
            replay = [_row_to_negotiation(r) for r in rows]
            return self._hub.open(participant_id, role, replay)
