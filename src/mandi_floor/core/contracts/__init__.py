"""
Contract Validation Module

Валидация исходящих JSON контрактов mandi_floor.
"""

from .validators import (
    ContractValidator,
    NegotiationSnapshotValidator,
    OfferClassificationValidator,
    PriceBandSummaryValidator,
    SchemaLoader,
    validate_negotiation_snapshot,
    validate_offer_classification,
    validate_price_band_summary,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PriceBandSummaryValidator",
    "OfferClassificationValidator",
    "NegotiationSnapshotValidator",
    # Functions
    "validate_price_band_summary",
    "validate_offer_classification",
    "validate_negotiation_snapshot",
]
