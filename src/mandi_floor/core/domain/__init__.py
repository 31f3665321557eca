"""
Domain models and value objects.

Contains fundamental domain entities: MarketPriceRecord, ReferencePrice,
PriceBand, Negotiation.
"""

from mandi_floor.core.domain.market_price import (
    PRICE_UNIT_INR_QUINTAL,
    MarketPriceRecord,
    PriceDataSource,
    market_record_key,
    parse_price_text,
)
from mandi_floor.core.domain.negotiation import (
    COUNTER_STATUS_BY_ROLE,
    LEGACY_COUNTER_OFFER_STATUS,
    TERMINAL_STATUSES,
    ActorRole,
    Decision,
    Negotiation,
    NegotiationStatus,
    utc_now,
)
from mandi_floor.core.domain.price_band import (
    OfferBand,
    PriceBand,
    PriceTier,
    ReferencePrice,
)

__all__ = [
    # Market price records
    "PRICE_UNIT_INR_QUINTAL",
    "MarketPriceRecord",
    "PriceDataSource",
    "market_record_key",
    "parse_price_text",
    # Price band
    "OfferBand",
    "PriceBand",
    "PriceTier",
    "ReferencePrice",
    # Negotiation
    "ActorRole",
    "Decision",
    "Negotiation",
    "NegotiationStatus",
    "COUNTER_STATUS_BY_ROLE",
    "LEGACY_COUNTER_OFFER_STATUS",
    "TERMINAL_STATUSES",
    "utc_now",
]
