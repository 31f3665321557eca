"""
Тесты для модели Negotiation

Проверяет:
- Устаревший статус "Counter-Offer" читается как Counter-By-Farmer
- Неизменяемость и валидацию полей
- Восстановление коридора из замороженных полей
- Снапшот в camelCase и обратное чтение
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from mandi_floor.core.domain import (
    LEGACY_COUNTER_OFFER_STATUS,
    Negotiation,
    NegotiationStatus,
)


def _negotiation(**overrides) -> Negotiation:
    data = {
        "id": "n1",
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
        "quality_grade": "B",
        "last_updated": datetime(2025, 1, 10, 6, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return Negotiation(**data)


class TestNegotiationStatus:
    """Тесты статусов"""

    def test_wire_values(self) -> None:
        assert [s.value for s in NegotiationStatus] == [
            "Pending",
            "Counter-By-Farmer",
            "Counter-By-Buyer",
            "Accepted",
            "Rejected",
        ]

    def test_legacy_status_parsed_as_counter_by_farmer(self) -> None:
        assert NegotiationStatus.parse(LEGACY_COUNTER_OFFER_STATUS) == NegotiationStatus.COUNTER_BY_FARMER

    def test_legacy_value_is_not_a_member(self) -> None:
        """Устаревшее значение только читается: отдельного варианта нет"""
        assert "Counter-Offer" not in {s.value for s in NegotiationStatus}

    def test_terminal(self) -> None:
        assert NegotiationStatus.ACCEPTED.is_terminal
        assert NegotiationStatus.REJECTED.is_terminal
        assert not NegotiationStatus.PENDING.is_terminal
        assert not NegotiationStatus.COUNTER_BY_BUYER.is_terminal

    def test_unknown_status_raises(self) -> None:
        with pytest.raises(ValueError):
            NegotiationStatus.parse("Cancelled")


class TestNegotiationModel:
    """Тесты модели"""

    def test_defaults(self) -> None:
        negotiation = _negotiation()
        assert negotiation.status == NegotiationStatus.PENDING
        assert negotiation.version == 1
        assert negotiation.counter_price is None
        assert negotiation.notes == ""

    def test_legacy_status_normalized_on_read(self) -> None:
        negotiation = _negotiation(status="Counter-Offer")
        assert negotiation.status == NegotiationStatus.COUNTER_BY_FARMER

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _negotiation(status="Cancelled")

    def test_frozen(self) -> None:
        negotiation = _negotiation()
        with pytest.raises(ValidationError):
            negotiation.floor_price = 1.0

    def test_model_copy_creates_new_instance(self) -> None:
        negotiation = _negotiation()
        updated = negotiation.model_copy(update={"offered_price": 32.0})
        assert negotiation.offered_price == 30.0
        assert updated.offered_price == 32.0

    @pytest.mark.parametrize("quantity", [0.0, -10.0])
    def test_non_positive_quantity_rejected(self, quantity) -> None:
        with pytest.raises(ValidationError):
            _negotiation(quantity=quantity)

    def test_version_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            _negotiation(version=0)

    def test_band_rebuilt_from_frozen_fields(self) -> None:
        band = _negotiation().band()
        assert band.floor_price == 27.3
        assert band.target_price == 31.4
        assert band.stretch_price == 34.54
        assert band.is_verified is True
        assert band.price_source == "Sealdah, Kolkata"


class TestSnapshot:
    """Тесты снапшота в camelCase"""

    def test_to_snapshot(self) -> None:
        snapshot = _negotiation(status="Counter-Offer", counter_price=33.0).to_snapshot()
        assert snapshot["id"] == "n1"
        assert snapshot["buyerId"] == "b1"
        assert snapshot["floorPrice"] == 27.3
        assert snapshot["counterPrice"] == 33.0
        assert snapshot["status"] == "Counter-By-Farmer"
        assert snapshot["priceVerified"] is True
        assert isinstance(snapshot["lastUpdated"], str)

    def test_from_snapshot_roundtrip(self) -> None:
        original = _negotiation(counter_price=33.0, version=4)
        assert Negotiation.from_snapshot(original.to_snapshot()).model_dump() == original.model_dump()

    def test_from_legacy_document(self) -> None:
        """Старый документ: legacy статус, без version и грейда"""
        negotiation = Negotiation.from_snapshot(
            {
                "id": "legacy-1",
                "productId": "p1",
                "buyerId": "b1",
                "farmerId": "f1",
                "initialPrice": 30,
                "offeredPrice": 29,
                "counterPrice": 35,
                "quantity": 200,
                "status": "Counter-Offer",
                "floorPrice": 27.3,
                "targetPrice": 31.4,
                "priceSource": "National Average",
                "priceVerified": False,
            }
        )
        assert negotiation.status == NegotiationStatus.COUNTER_BY_FARMER
        assert negotiation.version == 1
        assert negotiation.quality_grade == "B"
