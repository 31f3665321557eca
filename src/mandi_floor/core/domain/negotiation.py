"""
Negotiation — Модель переговоров покупателя и фермера

Immutable Pydantic модель. Любая мутация создаёт новый экземпляр
(model_copy), а запись в хранилище идёт только через version-checked update.

Инварианты:
- quantity >= bulk minimum
- любая цена покупателя >= floor_price
- status движется только вперёд; терминальные состояния неизменяемы
- поля коридора (floor/target/source/verified/grade) заморожены при создании
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, Field, field_validator

from mandi_floor.core.domain.price_band import PriceBand
from mandi_floor.core.math.money import quantize_money, to_decimal


# =============================================================================
# ENUMS
# =============================================================================


class ActorRole(str, Enum):
    """Сторона переговоров"""

    BUYER = "Buyer"
    FARMER = "Farmer"


class Decision(str, Enum):
    """Ответ на предложение"""

    ACCEPT = "Accept"
    REJECT = "Reject"


class NegotiationStatus(str, Enum):
    """
    Состояние переговоров.

    Pending → CounterByFarmer | CounterByBuyer → Accepted | Rejected
    """

    PENDING = "Pending"
    COUNTER_BY_FARMER = "Counter-By-Farmer"
    COUNTER_BY_BUYER = "Counter-By-Buyer"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"

    @classmethod
    def parse(cls, value: "str | NegotiationStatus") -> "NegotiationStatus":
        """
        Разбор статуса с поддержкой устаревшего значения.

        "Counter-Offer" (legacy) читается как COUNTER_BY_FARMER и никогда
        не записывается обратно.
        """
        if isinstance(value, cls):
            return value
        if value == LEGACY_COUNTER_OFFER_STATUS:
            return cls.COUNTER_BY_FARMER
        return cls(value)

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# Устаревшее значение статуса «встречное предложение фермера»
LEGACY_COUNTER_OFFER_STATUS: Final[str] = "Counter-Offer"

TERMINAL_STATUSES: Final[frozenset[NegotiationStatus]] = frozenset(
    {NegotiationStatus.ACCEPTED, NegotiationStatus.REJECTED}
)

# Статус встречного предложения по стороне
COUNTER_STATUS_BY_ROLE: Final[dict[ActorRole, NegotiationStatus]] = {
    ActorRole.BUYER: NegotiationStatus.COUNTER_BY_BUYER,
    ActorRole.FARMER: NegotiationStatus.COUNTER_BY_FARMER,
}

# Маппинг snake_case полей → camelCase snapshot контракта
_SNAPSHOT_FIELDS: Final[dict[str, str]] = {
    "id": "id",
    "product_id": "productId",
    "buyer_id": "buyerId",
    "farmer_id": "farmerId",
    "initial_price": "initialPrice",
    "offered_price": "offeredPrice",
    "counter_price": "counterPrice",
    "quantity": "quantity",
    "status": "status",
    "floor_price": "floorPrice",
    "target_price": "targetPrice",
    "price_source": "priceSource",
    "price_verified": "priceVerified",
    "quality_grade": "qualityGrade",
    "notes": "notes",
    "last_updated": "lastUpdated",
    "version": "version",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# NEGOTIATION MODEL
# =============================================================================


class Negotiation(BaseModel):
    """
    Снапшот переговоров.

    Все цены в ₹/кг, quantity в кг.
    """

    # Идентификация
    id: str = Field(default="", description="Идентификатор (присваивает хранилище)")
    product_id: str = Field(..., min_length=1, description="Листинг товара")
    buyer_id: str = Field(..., min_length=1, description="Покупатель")
    farmer_id: str = Field(..., min_length=1, description="Фермер")

    # Цены
    initial_price: float = Field(..., ge=0, description="Цена листинга на момент открытия")
    offered_price: float = Field(..., ge=0, description="Текущее предложение")
    counter_price: float | None = Field(None, ge=0, description="Последнее встречное")
    quantity: float = Field(..., gt=0, description="Объём (кг)")

    status: NegotiationStatus = Field(
        default=NegotiationStatus.PENDING, description="Состояние переговоров"
    )

    # Замороженный коридор
    floor_price: float = Field(..., ge=0, description="Floor на момент создания")
    target_price: float = Field(..., ge=0, description="Target на момент создания")
    price_source: str = Field(..., description="Источник опорной цены")
    price_verified: bool = Field(..., description="Опорная цена подтверждена рынком")
    quality_grade: str = Field(default="B", description="Грейд качества")

    notes: str = Field(default="", description="Комментарий последнего хода")
    last_updated: datetime = Field(default_factory=utc_now, description="Время изменения")
    version: int = Field(default=1, ge=1, description="Версия для optimistic concurrency")

    model_config = {"frozen": True}

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, v: Any) -> Any:
        """Устаревший "Counter-Offer" → COUNTER_BY_FARMER при чтении."""
        if isinstance(v, str):
            return NegotiationStatus.parse(v)
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def band(self, stretch_markup: float = 1.1) -> PriceBand:
        """
        Коридор, восстановленный из замороженных полей.

        stretch пересчитывается из замороженного target; опорная цена
        в Negotiation не хранится (base_reference_price=0).
        """
        stretch = quantize_money(to_decimal(self.target_price) * to_decimal(stretch_markup))
        return PriceBand(
            floor_price=self.floor_price,
            target_price=self.target_price,
            stretch_price=float(stretch),
            base_reference_price=0.0,
            quality_factor=1.0,
            quality_grade=self.quality_grade,
            is_verified=self.price_verified,
            price_source=self.price_source,
            computed_at=None,
        )

    def to_snapshot(self) -> dict[str, Any]:
        """
        Полный снапшот для отображения состояния сделки (camelCase).

        Returns:
            dict в формате контракта negotiation_snapshot
        """
        data = self.model_dump(mode="json")
        return {camel: data[snake] for snake, camel in _SNAPSHOT_FIELDS.items()}

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "Negotiation":
        """
        Чтение снапшота в camelCase (в т.ч. устаревших документов).

        Отсутствующие версия и грейд получают значения по умолчанию.
        """
        kwargs: dict[str, Any] = {}
        for snake, camel in _SNAPSHOT_FIELDS.items():
            if camel in data and data[camel] is not None:
                kwargs[snake] = data[camel]
        return cls(**kwargs)
