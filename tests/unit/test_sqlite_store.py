"""
Тесты для SQLite адаптеров

Проверяет:
- upsert котировок через ON CONFLICT(record_key)
- Поиск по региону без учёта регистра, свежие записи первыми
- Compare-and-set через UPDATE ... WHERE version = ?
- Чтение устаревшего статуса из БД
- Ровно один победитель среди конкурирующих писателей
"""

import threading
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from mandi_floor.core.domain import (
    ActorRole,
    MarketPriceRecord,
    Negotiation,
    NegotiationStatus,
)
from mandi_floor.storage import (
    SqliteMarketPriceStore,
    SqliteNegotiationStore,
    UpdateStatus,
    connect,
)

T0 = datetime(2025, 1, 10, 6, 0, tzinfo=timezone.utc)


def _negotiation(**overrides) -> Negotiation:
    data = {
        "product_id": "p1",
        "buyer_id": "b1",
        "farmer_id": "f1",
        "initial_price": 30.0,
        "offered_price": 30.0,
        "quantity": 500.0,
        "floor_price": 27.3,
        "target_price": 31.4,
        "price_source": "Sealdah, Kolkata",
        "price_verified": True,
        "last_updated": T0,
    }
    data.update(overrides)
    return Negotiation(**data)


@pytest.fixture
def conn():
    connection = connect(":memory:")
    yield connection
    connection.close()


class TestSqliteMarketPriceStore:
    """Тесты котировок в SQLite"""

    def test_upsert_and_find(self, conn) -> None:
        store = SqliteMarketPriceStore(conn)
        store.upsert(MarketPriceRecord(
            state="West Bengal", district="Kolkata", market="Sealdah", commodity="Rice",
            min_price=3000.0, modal_price=3200.0, last_updated="2025-01-10T06:00:00Z",
        ))
        [record] = store.find_by_region("west bengal", "KOLKATA", 20)
        assert record.modal_price == 3200.0
        assert record.max_price is None
        assert record.is_verified is True

    def test_upsert_overwrites_same_key(self, conn) -> None:
        store = SqliteMarketPriceStore(conn)
        for price in (3200.0, 3350.0):
            store.upsert(MarketPriceRecord(
                state="West Bengal", district="Kolkata", market="Sealdah (Koley)",
                commodity="Rice", modal_price=price,
            ))
        records = store.find_by_region("West Bengal", "Kolkata", 20)
        assert len(records) == 1
        assert records[0].modal_price == 3350.0

    def test_freshest_first_and_limit(self, conn) -> None:
        store = SqliteMarketPriceStore(conn)
        for day in (8, 10, 9):
            store.upsert(MarketPriceRecord(
                state="Punjab", district="Ludhiana", market=f"Mandi {day}", commodity="Wheat",
                modal_price=2800.0, last_updated=f"2025-01-{day:02d}T00:00:00Z",
            ))
        records = store.find_by_region("Punjab", "Ludhiana", 2)
        assert [r.market for r in records] == ["Mandi 10", "Mandi 9"]


class TestSqliteNegotiationStore:
    """Тесты переговоров в SQLite"""

    def test_insert_and_get(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation())
        stored = store.get_by_id(negotiation_id)
        assert stored.id == negotiation_id
        assert stored.status == NegotiationStatus.PENDING
        assert stored.price_verified is True
        assert stored.last_updated == T0

    def test_duplicate_insert_rejected(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        store.insert(_negotiation(id="n1"))
        with pytest.raises(ValueError, match="already exists"):
            store.insert(_negotiation(id="n1"))

    def test_update_ok(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation())
        result = store.update_if_version(
            negotiation_id, 1,
            {"status": NegotiationStatus.COUNTER_BY_BUYER, "offered_price": 29.0, "counter_price": 29.0},
        )
        assert result.ok
        stored = store.get_by_id(negotiation_id)
        assert stored.version == 2
        assert stored.status == NegotiationStatus.COUNTER_BY_BUYER
        assert stored.counter_price == 29.0
        assert stored.model_dump() == result.negotiation.model_dump()

    def test_update_conflict(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation())
        result = store.update_if_version(negotiation_id, 2, {"offered_price": 40.0})
        assert result.status == UpdateStatus.CONFLICT
        assert store.get_by_id(negotiation_id).offered_price == 30.0

    def test_update_not_found(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        assert store.update_if_version("missing", 1, {"notes": "x"}).status == UpdateStatus.NOT_FOUND

    def test_invalid_patch_not_written(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation())
        with pytest.raises(ValidationError):
            store.update_if_version(negotiation_id, 1, {"offered_price": -1.0})
        assert store.get_by_id(negotiation_id).version == 1

    def test_legacy_status_row_read_as_counter_by_farmer(self, conn) -> None:
        """Строка со старым "Counter-Offer" читается, но не переписывается"""
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation(id="legacy"))
        conn.execute("UPDATE negotiations SET status = 'Counter-Offer' WHERE id = ?", (negotiation_id,))
        conn.commit()

        stored = store.get_by_id(negotiation_id)
        assert stored.status == NegotiationStatus.COUNTER_BY_FARMER

        store.update_if_version(negotiation_id, 1, {"notes": "seen"})
        raw = conn.execute("SELECT status FROM negotiations WHERE id = ?", (negotiation_id,)).fetchone()
        assert raw["status"] == "Counter-By-Farmer"

    def test_concurrent_writers_one_winner(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation())
        barrier = threading.Barrier(4)
        results = []
        lock = threading.Lock()

        def writer(price: float) -> None:
            barrier.wait()
            result = store.update_if_version(negotiation_id, 1, {"offered_price": price})
            with lock:
                results.append(result.status)

        threads = [threading.Thread(target=writer, args=(31.0 + i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(UpdateStatus.OK) == 1
        assert results.count(UpdateStatus.CONFLICT) == 3

    def test_subscription_replay_and_live(self, conn) -> None:
        store = SqliteNegotiationStore(conn)
        negotiation_id = store.insert(_negotiation(id="n1"))
        with store.subscribe_by_participant("f1", ActorRole.FARMER) as sub:
            assert sub.get(timeout=1.0).id == "n1"
            store.update_if_version(negotiation_id, 1, {"offered_price": 33.0})
            update = sub.get(timeout=1.0)
            assert update.version == 2
            assert update.offered_price == 33.0
