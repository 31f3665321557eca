"""
mandi-floor — price-floor negotiation engine for bulk agricultural trade.

Subpackages:
- core/         domain models, money primitives, JSON Schema contracts
- pricing/      PriceResolver, PriceBandCalculator, OfferClassifier
- negotiation/  NegotiationStateMachine, guards, error taxonomy
- storage/      negotiation store and market-price source adapters
"""

__version__ = "0.1.0"
