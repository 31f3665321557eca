"""Negotiation errors — таксономия отказов.

Отказы возвращаются вызывающему как типизированный NegotiationResult;
исключения нужны тем, кто предпочитает raise_for_error().
"""

from enum import Enum


class NegotiationErrorCode(str, Enum):
    """Код отказа мутации"""

    BELOW_FLOOR_PRICE = "BelowFloorPrice"
    QUANTITY_TOO_LOW = "QuantityTooLow"
    NEGOTIATION_CLOSED = "NegotiationClosed"
    STALE_NEGOTIATION_STATE = "StaleNegotiationState"
    NEGOTIATION_NOT_FOUND = "NegotiationNotFound"
    PRICE_DATA_UNAVAILABLE = "PriceDataUnavailable"
    INVALID_GRADE = "InvalidGrade"
    INVALID_PRICE = "InvalidPrice"


class NegotiationError(Exception):
    """Базовое исключение переговоров."""

    code: NegotiationErrorCode

    def __init__(self, message: str = "", details: dict | None = None):
        super().__init__(message or self.code.value)
        self.message = message or self.code.value
        self.details = details or {}


class BelowFloorPrice(NegotiationError):
    """Цена покупателя ниже замороженного floor."""

    code = NegotiationErrorCode.BELOW_FLOOR_PRICE


class QuantityTooLow(NegotiationError):
    """Объём меньше bulk minimum."""

    code = NegotiationErrorCode.QUANTITY_TOO_LOW


class NegotiationClosed(NegotiationError):
    """Переговоры в терминальном состоянии."""

    code = NegotiationErrorCode.NEGOTIATION_CLOSED


class StaleNegotiationState(NegotiationError):
    """expected_version не совпадает с сохранённой версией."""

    code = NegotiationErrorCode.STALE_NEGOTIATION_STATE


class NegotiationNotFound(NegotiationError):
    code = NegotiationErrorCode.NEGOTIATION_NOT_FOUND


class PriceDataUnavailable(NegotiationError):
    """Опорная цена не получена (при национальном fallback недостижимо)."""

    code = NegotiationErrorCode.PRICE_DATA_UNAVAILABLE


class InvalidGrade(NegotiationError):
    """Неизвестный грейд (формула берёт множитель B вместо отказа)."""

    code = NegotiationErrorCode.INVALID_GRADE


class InvalidPrice(NegotiationError):
    """Цена встречного предложения отрицательная или не число."""

    code = NegotiationErrorCode.INVALID_PRICE


ERROR_BY_CODE: dict[NegotiationErrorCode, type[NegotiationError]] = {
    cls.code: cls
    for cls in (
        BelowFloorPrice,
        QuantityTooLow,
        NegotiationClosed,
        StaleNegotiationState,
        NegotiationNotFound,
        PriceDataUnavailable,
        InvalidGrade,
        InvalidPrice,
    )
}
