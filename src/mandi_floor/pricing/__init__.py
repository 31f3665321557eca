"""Pricing — опорная цена, формула коридора и классификация предложений."""

from mandi_floor.pricing.band_calculator import (
    CalculatedPrices,
    PriceBandCalculator,
    calculate_prices,
    grade_multiplier,
    normalize_grade,
)
from mandi_floor.pricing.classifier import (
    OfferClassification,
    classify,
    classify_offer,
)
from mandi_floor.pricing.config import (
    DEFAULT_PRICE_TABLES,
    NATIONAL_FALLBACK_PRICE,
    STRETCH_MARKUP,
    PriceBandConfig,
    PriceTables,
    ResolverConfig,
    StateAverageMatch,
)
from mandi_floor.pricing.resolver import PriceResolver

__all__ = [
    "CalculatedPrices",
    "DEFAULT_PRICE_TABLES",
    "NATIONAL_FALLBACK_PRICE",
    "OfferClassification",
    "PriceBandCalculator",
    "PriceBandConfig",
    "PriceResolver",
    "PriceTables",
    "ResolverConfig",
    "STRETCH_MARKUP",
    "StateAverageMatch",
    "calculate_prices",
    "classify",
    "classify_offer",
    "grade_multiplier",
    "normalize_grade",
]
