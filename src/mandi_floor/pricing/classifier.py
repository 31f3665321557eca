"""
OfferClassifier — классификация предложения относительно коридора

    price <  floor                    → INVALID
    floor   <= price < target         → LOW
    target  <= price < target × 1.1   → FAIR
    price >= target × 1.1             → HIGH

Функция тотальна: любое конечное число попадает ровно в один класс,
нижняя граница каждого класса включительная. Используется только для
подсказок при вводе предложения; жёсткая проверка floor выполняется
NegotiationStateMachine по замороженному снапшоту.

Граница FAIR/HIGH считается в Decimal без округления: band.stretch_price
округлён до 2 знаков и служит только для отображения.
"""

from dataclasses import dataclass

from mandi_floor.core.domain.price_band import OfferBand, PriceBand
from mandi_floor.core.math.money import round_money, to_decimal, validate_finite
from mandi_floor.pricing.config import STRETCH_MARKUP


@dataclass(frozen=True)
class OfferClassification:
    """Результат классификации для live-подсказки."""

    band: OfferBand
    message: str
    # Сколько не хватает до floor (только для INVALID)
    shortfall: float | None = None

    def to_dict(self) -> dict:
        """dict в формате контракта offer_classification."""
        return {
            "band": self.band.value,
            "message": self.message,
            "shortfall": self.shortfall,
        }


def classify(price: float, band: PriceBand, stretch_markup: float = STRETCH_MARKUP) -> OfferBand:
    """
    Класс предложения.

    Args:
        price: Предлагаемая цена (₹/кг)
        band: Коридор
        stretch_markup: Множитель границы FAIR/HIGH от target

    Returns:
        OfferBand

    Raises:
        ValueError: Если price — NaN/Inf
    """
    validate_finite(price, "price")

    if price < band.floor_price:
        return OfferBand.INVALID
    if price < band.target_price:
        return OfferBand.LOW
    if to_decimal(price) < to_decimal(band.target_price) * to_decimal(stretch_markup):
        return OfferBand.FAIR
    return OfferBand.HIGH


def classify_offer(
    price: float, band: PriceBand, stretch_markup: float = STRETCH_MARKUP
) -> OfferClassification:
    """
    Классификация с сообщением для покупателя.

    Examples:
        floor 27.3, target 31.4: 20 → INVALID, 28 → LOW, 31.4 → FAIR, 36 → HIGH
    """
    offer_band = classify(price, band, stretch_markup)

    if offer_band == OfferBand.INVALID:
        shortfall = round_money(band.floor_price - price)
        return OfferClassification(
            band=offer_band,
            message=(
                f"Below the regional market floor of ₹{band.floor_price:.2f}/kg "
                f"(short by ₹{shortfall:.2f}/kg)"
            ),
            shortfall=shortfall,
        )
    if offer_band == OfferBand.LOW:
        return OfferClassification(
            band=offer_band,
            message=(
                f"Above the floor but below the fair target of "
                f"₹{band.target_price:.2f}/kg; the farmer is likely to counter"
            ),
        )
    if offer_band == OfferBand.FAIR:
        return OfferClassification(
            band=offer_band,
            message=f"Fair offer around the target of ₹{band.target_price:.2f}/kg",
        )
    return OfferClassification(
        band=offer_band,
        message=(
            f"Generous offer above ₹{band.stretch_price:.2f}/kg; "
            f"well above the regional market"
        ),
    )
