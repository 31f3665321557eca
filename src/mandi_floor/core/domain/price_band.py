"""
PriceBand — ценовой коридор товара

Immutable Pydantic модели:
- ReferencePrice: результат PriceResolver (опорная цена + достоверность)
- PriceBand: {floor, target, stretch} после поправки на качество

PriceBand вычисляется по запросу и дополнительно замораживается в каждой
Negotiation при создании, чтобы изменения рыночных данных не сдвигали floor
активной сделки задним числом.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from mandi_floor.core.math.money import per_quintal_to_per_kg


# =============================================================================
# ENUMS
# =============================================================================


class PriceTier(str, Enum):
    """Уровень fallback-цепочки, давший опорную цену"""

    DISTRICT_MANDI = "district_mandi"
    STATE_AVERAGE = "state_average"
    NATIONAL_FALLBACK = "national_fallback"


class OfferBand(str, Enum):
    """Класс предложения относительно коридора"""

    INVALID = "INVALID"
    LOW = "LOW"
    FAIR = "FAIR"
    HIGH = "HIGH"


# =============================================================================
# REFERENCE PRICE
# =============================================================================


class ReferencePrice(BaseModel):
    """
    Опорная региональная цена (₹/quintal).

    Никогда не отсутствует: при нехватке данных снижается только
    достоверность (is_verified=False) и tier.
    """

    reference_price: float = Field(..., ge=0, description="Опорная цена (₹/quintal)")
    is_verified: bool = Field(..., description="Цена взята из реальной котировки рынка")
    source: str = Field(..., description="Человекочитаемое описание источника")
    tier: PriceTier = Field(..., description="Уровень fallback-цепочки")

    model_config = {"frozen": True}


# =============================================================================
# PRICE BAND
# =============================================================================


class PriceBand(BaseModel):
    """
    Ценовой коридор (₹/кг).

    floor_price — жёсткий минимум для покупателя;
    target_price — справедливая цена (floor × 1.15);
    stretch_price — верхняя граница FAIR (target × 1.1).
    """

    floor_price: float = Field(..., ge=0, description="Минимальная цена (₹/кг)")
    target_price: float = Field(..., ge=0, description="Целевая цена (₹/кг)")
    stretch_price: float = Field(..., ge=0, description="Граница FAIR/HIGH (₹/кг)")

    base_reference_price: float = Field(
        ..., ge=0, description="Опорная цена до поправки (₹/quintal)"
    )
    quality_factor: float = Field(..., ge=0, le=1, description="Множитель грейда")
    quality_grade: str = Field(default="B", description="Грейд качества (A/B/C/X)")

    is_verified: bool = Field(..., description="Опорная цена подтверждена рынком")
    price_source: str = Field(..., description="Описание источника цены")
    computed_at: datetime | None = Field(None, description="Время расчёта (UTC)")

    model_config = {"frozen": True}

    @property
    def reference_price_per_kg(self) -> float:
        """Опорная цена до поправки на качество (₹/кг)."""
        return per_quintal_to_per_kg(self.base_reference_price)

    def to_summary(self) -> dict:
        """
        Сводка коридора для отображения.

        Returns:
            dict в формате контракта price_band_summary
        """
        return {
            "floorPrice": self.floor_price,
            "targetPrice": self.target_price,
            "stretchPrice": self.stretch_price,
            "isVerified": self.is_verified,
            "priceSource": self.price_source,
        }
