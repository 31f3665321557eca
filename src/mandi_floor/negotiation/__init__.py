"""Negotiation — state machine переговоров, проверки и таксономия отказов."""

from mandi_floor.negotiation.errors import (
    BelowFloorPrice,
    InvalidGrade,
    InvalidPrice,
    NegotiationClosed,
    NegotiationError,
    NegotiationErrorCode,
    NegotiationNotFound,
    PriceDataUnavailable,
    QuantityTooLow,
    StaleNegotiationState,
)
from mandi_floor.negotiation.guards import MIN_BULK_QUANTITY_KG, GuardResult, NegotiationConfig
from mandi_floor.negotiation.state_machine import NegotiationResult, NegotiationStateMachine

__all__ = [
    "BelowFloorPrice",
    "GuardResult",
    "InvalidGrade",
    "InvalidPrice",
    "MIN_BULK_QUANTITY_KG",
    "NegotiationClosed",
    "NegotiationConfig",
    "NegotiationError",
    "NegotiationErrorCode",
    "NegotiationNotFound",
    "NegotiationResult",
    "NegotiationStateMachine",
    "PriceDataUnavailable",
    "QuantityTooLow",
    "StaleNegotiationState",
]
