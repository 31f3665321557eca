"""
Money Safeguards — денежные примитивы

Модуль обеспечивает детерминированную арифметику цен:
- Округление до 2 знаков (round half away from zero) через Decimal
- Проверка входов на NaN/Inf и отрицательные значения

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Округление не зависит от двоичного представления float
   (27.3 × 1.15 = 31.395 → 31.40, а не 31.39)
2. NaN/Inf никогда не попадают в расчёт цены (ValueError)
3. Все операции детерминированы и воспроизводимы
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Шаг денежного квантования (2 знака после запятой)
MONEY_QUANTUM: Final[Decimal] = Decimal("0.01")

# Килограммов в одном центнере (quintal)
KG_PER_QUINTAL: Final[int] = 100


# =============================================================================
# ПРОВЕРКИ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, является ли float валидным (не NaN, не Inf).

    Args:
        value: Проверяемое значение

    Returns:
        True если значение конечное, False если NaN или Inf
    """
    return math.isfinite(value)


def validate_non_negative(value: float, name: str) -> None:
    """
    Валидация, что значение неотрицательное.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_finite(value: float, name: str) -> None:
    """Валидация, что значение конечное (знак не проверяется)."""
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """
    Конверсия в Decimal через десятичную строку.

    Decimal(str(0.1)) == Decimal("0.1"), тогда как Decimal(0.1) хранит
    двоичный хвост. Все денежные формулы начинаются отсюда.

    Examples:
        >>> to_decimal(27.3)
        Decimal('27.3')
        >>> to_decimal(3200)
        Decimal('3200')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    """Квантование Decimal до 0.01 с ROUND_HALF_UP (от нуля при .5)."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def round_money(value: float | int | str | Decimal) -> float:
    """
    Округление цены до 2 знаков, round half away from zero.

    Args:
        value: Цена (float, int, str или Decimal)

    Returns:
        Округлённая цена как float

    Raises:
        ValueError: Если value — NaN/Inf

    Examples:
        >>> round_money(31.395)
        31.4
        >>> round_money(-0.005)
        -0.01
        >>> round_money(27.300000000000004)
        27.3
    """
    if isinstance(value, float):
        validate_finite(value, "value")
    return float(quantize_money(to_decimal(value)))


def per_quintal_to_per_kg(price_per_quintal: float) -> float:
    """
    Конверсия ₹/центнер → ₹/кг с округлением до 2 знаков.

    Examples:
        >>> per_quintal_to_per_kg(3200)
        32.0
        >>> per_quintal_to_per_kg(2475)
        24.75
    """
    validate_non_negative(price_per_quintal, "price_per_quintal")
    return float(quantize_money(to_decimal(price_per_quintal) / KG_PER_QUINTAL))
