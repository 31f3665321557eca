"""
PriceBandCalculator — формула ценового коридора

Чистая детерминированная функция без I/O:

    gradeMultiplier(grade) = {A: 1.0, B: 0.90, C: 0.80, X: 0.0, unknown: 0.90}
    floorPrice   = max(0, (referencePrice / 100 × gradeMultiplier) − 1.5)
    targetPrice  = floorPrice × 1.15
    stretchPrice = targetPrice × 1.1

referencePrice в ₹/quintal, результат в ₹/кг. Все значения округляются
до 2 знаков (round half away from zero); target считается от округлённого
floor, stretch от округлённого target.

Грейд X обнуляет floor при любой опорной цене: невалидная/не-сельхоз
заявка не может торговаться ни по какой положительной цене.

Пример (modal 3200, грейд B):
    floor  = round(3200 / 100 × 0.9 − 1.5, 2) = 27.3
    target = round(27.3 × 1.15, 2)            = 31.4
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple

from mandi_floor.core.domain.price_band import PriceBand, ReferencePrice
from mandi_floor.core.math.money import quantize_money, to_decimal, validate_non_negative
from mandi_floor.pricing.config import PriceBandConfig


class CalculatedPrices(NamedTuple):
    """Результат calculate_prices (₹/кг)."""

    floor_price: float
    target_price: float
    stretch_price: float
    grade_multiplier: float


def normalize_grade(grade: str | None) -> str:
    """Грейд без пробелов в верхнем регистре; пустой → "B"."""
    if grade is None:
        return "B"
    grade_norm = grade.strip().upper()
    return grade_norm or "B"


def grade_multiplier(grade: str | None, config: PriceBandConfig | None = None) -> float:
    """
    Множитель качества для грейда.

    Неизвестный грейд не является ошибкой: используется default_multiplier
    (как у грейда B).

    Examples:
        >>> grade_multiplier("a")
        1.0
        >>> grade_multiplier("Z")
        0.9
    """
    config = config or PriceBandConfig()
    return config.grade_multipliers.get(normalize_grade(grade), config.default_multiplier)


def calculate_prices(
    reference_price: float,
    grade: str | None = "B",
    config: PriceBandConfig | None = None,
) -> CalculatedPrices:
    """
    Расчёт floor/target/stretch по опорной цене и грейду.

    Args:
        reference_price: Опорная цена (₹/quintal), >= 0
        grade: Грейд качества (A/B/C/X, регистр не важен)
        config: Параметры формулы

    Returns:
        CalculatedPrices (₹/кг, 2 знака)

    Raises:
        ValueError: Если reference_price < 0 или NaN/Inf
    """
    config = config or PriceBandConfig()
    validate_non_negative(reference_price, "reference_price")

    multiplier = grade_multiplier(grade, config)

    per_kg = to_decimal(reference_price) / Decimal(config.quintal_kg)
    floor_raw = per_kg * to_decimal(multiplier) - to_decimal(config.per_kg_deduction)
    floor = quantize_money(max(Decimal(0), floor_raw))

    target = quantize_money(floor * to_decimal(config.target_markup))
    stretch = quantize_money(target * to_decimal(config.stretch_markup))

    return CalculatedPrices(
        floor_price=float(floor),
        target_price=float(target),
        stretch_price=float(stretch),
        grade_multiplier=multiplier,
    )


class PriceBandCalculator:
    """Построение PriceBand из ReferencePrice и грейда.

    Stateless: зависит только от конфигурации формулы.
    """

    def __init__(self, config: PriceBandConfig | None = None):
        """
        Args:
            config: конфигурация формулы (опционально, используется default)
        """
        self.config = config or PriceBandConfig()

    def compute(
        self,
        reference: ReferencePrice,
        grade: str | None = "B",
        computed_at: datetime | None = None,
    ) -> PriceBand:
        """Коридор для опорной цены и грейда.

        Args:
            reference: результат PriceResolver
            grade: грейд качества
            computed_at: время расчёта (default: сейчас, UTC)

        Returns:
            PriceBand с is_verified/price_source из reference
        """
        prices = calculate_prices(reference.reference_price, grade, self.config)

        return PriceBand(
            floor_price=prices.floor_price,
            target_price=prices.target_price,
            stretch_price=prices.stretch_price,
            base_reference_price=reference.reference_price,
            quality_factor=prices.grade_multiplier,
            quality_grade=normalize_grade(grade),
            is_verified=reference.is_verified,
            price_source=reference.source,
            computed_at=computed_at or datetime.now(timezone.utc),
        )
