"""
Тесты для in-memory хранилищ и подписок

Проверяет:
- upsert котировок по составному ключу (перезапись, без дублей)
- Version-checked запись переговоров (OK / CONFLICT / NOT_FOUND)
- Неизменность записи при отклонённом патче
- Подписки: replay (новые сверху), live-обновления, отмена
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from mandi_floor.core.domain import (
    ActorRole,
    MarketPriceRecord,
    Negotiation,
    NegotiationStatus,
)
from mandi_floor.storage import (
    InMemoryMarketPriceStore,
    InMemoryNegotiationStore,
    UpdateStatus,
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


# =============================================================================
# MARKET PRICES
# =============================================================================


class TestInMemoryMarketPriceStore:
    """Тесты хранилища котировок"""

    def test_upsert_overwrites_same_key(self) -> None:
        store = InMemoryMarketPriceStore()
        store.upsert(MarketPriceRecord(
            state="West Bengal", district="Kolkata", market="Sealdah", commodity="Rice",
            modal_price=3200.0,
        ))
        store.upsert(MarketPriceRecord(
            state="WEST BENGAL", district="kolkata", market="Sealdah", commodity="rice",
            modal_price=3300.0,
        ))
        [record] = store.find_by_region("West Bengal", "Kolkata", 20)
        assert record.modal_price == 3300.0

    def test_find_by_region_case_insensitive_and_limited(self) -> None:
        store = InMemoryMarketPriceStore([
            MarketPriceRecord(
                state="Punjab", district="Ludhiana", market=f"M{i}", commodity="Wheat",
                modal_price=2800.0,
            )
            for i in range(5)
        ])
        assert len(store.find_by_region(" punjab ", "LUDHIANA", 3)) == 3
        assert store.find_by_region("Punjab", "Amritsar", 20) == []


# =============================================================================
# NEGOTIATIONS
# =============================================================================


@pytest.fixture
def store() -> InMemoryNegotiationStore:
    return InMemoryNegotiationStore()


class TestInMemoryNegotiationStore:
    """Тесты хранилища переговоров"""

    def test_insert_assigns_id(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        assert negotiation_id
        assert store.get_by_id(negotiation_id).id == negotiation_id

    def test_insert_keeps_explicit_id(self, store) -> None:
        assert store.insert(_negotiation(id="n1")) == "n1"

    def test_duplicate_insert_rejected(self, store) -> None:
        store.insert(_negotiation(id="n1"))
        with pytest.raises(ValueError, match="already exists"):
            store.insert(_negotiation(id="n1"))

    def test_get_missing(self, store) -> None:
        assert store.get_by_id("missing") is None

    def test_update_ok_bumps_version(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        result = store.update_if_version(
            negotiation_id, 1, {"status": NegotiationStatus.COUNTER_BY_FARMER, "counter_price": 35.0}
        )
        assert result.ok
        assert result.negotiation.version == 2
        assert store.get_by_id(negotiation_id).counter_price == 35.0

    def test_update_conflict_leaves_record_unchanged(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        before = store.get_by_id(negotiation_id)

        result = store.update_if_version(negotiation_id, 7, {"offered_price": 40.0})

        assert result.status == UpdateStatus.CONFLICT
        assert result.negotiation == before
        assert store.get_by_id(negotiation_id) == before

    def test_update_not_found(self, store) -> None:
        result = store.update_if_version("missing", 1, {"offered_price": 40.0})
        assert result.status == UpdateStatus.NOT_FOUND
        assert result.negotiation is None

    def test_frozen_fields_cannot_be_patched(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        with pytest.raises(ValueError, match="frozen"):
            store.update_if_version(negotiation_id, 1, {"floor_price": 1.0})
        assert store.get_by_id(negotiation_id).floor_price == 27.3

    def test_invalid_patch_leaves_record_unchanged(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        with pytest.raises(ValidationError):
            store.update_if_version(negotiation_id, 1, {"quantity": -5.0})
        stored = store.get_by_id(negotiation_id)
        assert stored.quantity == 500.0
        assert stored.version == 1

    def test_concurrent_writers_one_winner(self, store) -> None:
        """Из N писателей одной версии выигрывает ровно один"""
        negotiation_id = store.insert(_negotiation())
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def writer(price: float) -> None:
            barrier.wait()
            result = store.update_if_version(negotiation_id, 1, {"offered_price": price})
            with lock:
                results.append(result.status)

        threads = [threading.Thread(target=writer, args=(30.0 + i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(UpdateStatus.OK) == 1
        assert results.count(UpdateStatus.CONFLICT) == 7
        assert store.get_by_id(negotiation_id).version == 2


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


class TestSubscriptions:
    """Тесты push-подписок"""

    def test_replay_newest_first(self, store) -> None:
        store.insert(_negotiation(id="old", last_updated=T0))
        store.insert(_negotiation(id="new", last_updated=T0 + timedelta(hours=1)))
        store.insert(_negotiation(id="other", buyer_id="b2"))

        with store.subscribe_by_participant("b1", ActorRole.BUYER) as sub:
            assert [n.id for n in sub.drain()] == ["new", "old"]

    def test_live_updates_in_write_order(self, store) -> None:
        negotiation_id = store.insert(_negotiation(id="n1"))
        sub = store.subscribe_by_participant("f1", ActorRole.FARMER)
        assert sub.get(timeout=1.0).version == 1  # replay

        store.update_if_version(negotiation_id, 1, {"offered_price": 31.0})
        store.update_if_version(negotiation_id, 2, {"offered_price": 32.0})

        assert sub.get(timeout=1.0).version == 2
        assert sub.get(timeout=1.0).version == 3
        sub.cancel()

    def test_other_participants_not_delivered(self, store) -> None:
        sub = store.subscribe_by_participant("b2", ActorRole.BUYER)
        store.insert(_negotiation(buyer_id="b1"))
        assert sub.get(timeout=0.05) is None
        sub.cancel()

    def test_role_selects_field(self, store) -> None:
        """"f1" как покупатель не совпадает с farmer_id"""
        store.insert(_negotiation())
        sub = store.subscribe_by_participant("f1", ActorRole.BUYER)
        assert sub.drain() == []
        sub.cancel()

    def test_conflict_not_published(self, store) -> None:
        negotiation_id = store.insert(_negotiation())
        sub = store.subscribe_by_participant("b1", ActorRole.BUYER)
        sub.drain()
        store.update_if_version(negotiation_id, 5, {"offered_price": 40.0})
        assert sub.drain() == []
        sub.cancel()

    def test_cancel_ends_iteration(self, store) -> None:
        store.insert(_negotiation())
        sub = store.subscribe_by_participant("b1", ActorRole.BUYER)
        received = []

        def consume() -> None:
            for snapshot in sub:
                received.append(snapshot)

        consumer = threading.Thread(target=consume)
        consumer.start()
        sub.cancel()
        consumer.join(timeout=2.0)

        assert not consumer.is_alive()
        assert sub.cancelled
        assert len(received) <= 1

    def test_cancelled_subscription_receives_nothing(self, store) -> None:
        sub = store.subscribe_by_participant("b1", ActorRole.BUYER)
        sub.cancel()
        store.insert(_negotiation())
        assert sub.get(timeout=0.05) is None
