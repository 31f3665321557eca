"""Negotiation guards — проверки мутаций переговоров.

Порядок проверок в NegotiationStateMachine:
1. Существование записи
2. Терминальное состояние (NegotiationClosed)
3. Версия (StaleNegotiationState)
4. Объём (QuantityTooLow)
5. Цена: floor (BelowFloorPrice) для покупателя, допустимость (InvalidPrice)
   для фермера

Каждая проверка является чистой функцией, возвращающей GuardResult; первая
заблокированная проверка останавливает цепочку.
"""

import math
from dataclasses import dataclass
from typing import Final

from mandi_floor.core.domain.negotiation import ActorRole, Negotiation
from mandi_floor.negotiation.errors import NegotiationErrorCode


# =============================================================================
# CONSTANTS
# =============================================================================

# Минимальный оптовый объём (кг)
MIN_BULK_QUANTITY_KG: Final[float] = 100.0


# =============================================================================
# CONFIG / RESULT
# =============================================================================


@dataclass(frozen=True)
class NegotiationConfig:
    """Конфигурация NegotiationStateMachine."""
    min_bulk_quantity_kg: float = MIN_BULK_QUANTITY_KG


@dataclass(frozen=True)
class GuardResult:
    """Результат одной проверки."""

    allowed: bool
    error_code: NegotiationErrorCode | None = None
    block_reason: str = ""
    details: dict | None = None


_PASS: Final[GuardResult] = GuardResult(allowed=True)


def _block(code: NegotiationErrorCode, reason: str, **details) -> GuardResult:
    return GuardResult(allowed=False, error_code=code, block_reason=reason, details=details)


# =============================================================================
# GUARDS
# =============================================================================


def check_exists(negotiation: Negotiation | None, negotiation_id: str) -> GuardResult:
    if negotiation is None:
        return _block(
            NegotiationErrorCode.NEGOTIATION_NOT_FOUND,
            f"negotiation {negotiation_id} not found",
            negotiation_id=negotiation_id,
        )
    return _PASS


def check_not_terminal(negotiation: Negotiation) -> GuardResult:
    """Accepted / Rejected неизменяемы."""
    if negotiation.is_terminal:
        return _block(
            NegotiationErrorCode.NEGOTIATION_CLOSED,
            f"negotiation is already {negotiation.status.value}",
            status=negotiation.status.value,
        )
    return _PASS


def check_version(negotiation: Negotiation, expected_version: int) -> GuardResult:
    """Optimistic concurrency: вызывающий видел актуальную версию."""
    if negotiation.version != expected_version:
        return _block(
            NegotiationErrorCode.STALE_NEGOTIATION_STATE,
            "negotiation was modified by another party; re-fetch and retry",
            expected_version=expected_version,
            stored_version=negotiation.version,
        )
    return _PASS


def check_quantity(quantity: float, config: NegotiationConfig) -> GuardResult:
    """
    Объём не меньше bulk minimum.

    NaN/Inf блокируются так же, как слишком малый объём.
    """
    if not math.isfinite(quantity) or quantity < config.min_bulk_quantity_kg:
        return _block(
            NegotiationErrorCode.QUANTITY_TOO_LOW,
            f"minimum quantity for bulk orders is {config.min_bulk_quantity_kg:g} kg",
            quantity=quantity,
            min_quantity=config.min_bulk_quantity_kg,
        )
    return _PASS


def check_buyer_floor(price: float, floor_price: float) -> GuardResult:
    """Цена покупателя не ниже floor."""
    if not math.isfinite(price) or price < floor_price:
        shortfall = round(floor_price - price, 2) if math.isfinite(price) else None
        return _block(
            NegotiationErrorCode.BELOW_FLOOR_PRICE,
            f"price below regional market floor (₹{floor_price:.2f}/kg)",
            price=price,
            floor_price=floor_price,
            shortfall=shortfall,
        )
    return _PASS


def check_price_valid(price: float) -> GuardResult:
    """Цена конечная и неотрицательная."""
    if not math.isfinite(price) or price < 0:
        return _block(
            NegotiationErrorCode.INVALID_PRICE,
            "price must be a non-negative number",
            price=price,
        )
    return _PASS


def check_counter_price(role: ActorRole, price: float, floor_price: float) -> GuardResult:
    """
    Проверка цены встречного предложения по стороне.

    Floor защищает доход фермера от занижения цены, а не расходы
    покупателя: покупатель ограничен floor, фермер нет. Цена фермера
    проверяется только на допустимость (конечная, неотрицательная).
    """
    if role == ActorRole.BUYER:
        return check_buyer_floor(price, floor_price)
    if role == ActorRole.FARMER:
        return check_price_valid(price)
    raise ValueError(f"unknown actor role: {role!r}")
