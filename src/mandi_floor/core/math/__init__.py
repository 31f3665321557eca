"""
Core math modules для mandi-floor

Денежные примитивы с гарантией детерминированного округления.
"""

from mandi_floor.core.math.money import (
    KG_PER_QUINTAL,
    MONEY_QUANTUM,
    is_valid_float,
    per_quintal_to_per_kg,
    quantize_money,
    round_money,
    to_decimal,
    validate_finite,
    validate_non_negative,
)

__all__ = [
    # Constants
    "KG_PER_QUINTAL",
    "MONEY_QUANTUM",
    # Validation
    "is_valid_float",
    "validate_finite",
    "validate_non_negative",
    # Rounding
    "to_decimal",
    "quantize_money",
    "round_money",
    "per_quintal_to_per_kg",
]
