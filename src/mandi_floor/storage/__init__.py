"""Storage — порты хранилищ и их адаптеры (in-memory, sqlite3, HTTP)."""

from mandi_floor.storage.http_source import HttpMarketPriceSource
from mandi_floor.storage.memory import InMemoryMarketPriceStore, InMemoryNegotiationStore
from mandi_floor.storage.ports import (
    FROZEN_FIELDS,
    MarketPriceSource,
    NegotiationStore,
    UpdateResult,
    UpdateStatus,
    apply_patch,
    check_patch,
)
from mandi_floor.storage.sqlite_repo import (
    SqliteMarketPriceStore,
    SqliteNegotiationStore,
    connect,
)
from mandi_floor.storage.subscriptions import Subscription, SubscriptionHub

__all__ = [
    "FROZEN_FIELDS",
    "HttpMarketPriceSource",
    "InMemoryMarketPriceStore",
    "InMemoryNegotiationStore",
    "MarketPriceSource",
    "NegotiationStore",
    "SqliteMarketPriceStore",
    "SqliteNegotiationStore",
    "Subscription",
    "SubscriptionHub",
    "UpdateResult",
    "UpdateStatus",
    "apply_patch",
    "check_patch",
    "connect",
]
