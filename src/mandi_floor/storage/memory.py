"""In-memory adapters — хранилища для тестов и однопроцессного запуска.

InMemoryNegotiationStore делает compare-and-set атомарным одним замком на
хранилище; сам арбитраж конкурирующих писателей выполняет проверка version.
"""

import logging
import threading
import uuid
from typing import Any

from mandi_floor.core.domain.market_price import MarketPriceRecord
from mandi_floor.core.domain.negotiation import ActorRole, Negotiation
from mandi_floor.storage.ports import (
    NegotiationStore,
    UpdateResult,
    UpdateStatus,
    apply_patch,
    check_patch,
)
from mandi_floor.storage.subscriptions import Subscription, SubscriptionHub, participant_matches

logger = logging.getLogger(__name__)


class InMemoryMarketPriceStore:
    """Котировки в памяти, ключ — market_record_key.

    upsert() повторяет поведение ingestion: запись с тем же составным
    ключом перезаписывается.
    """

    def __init__(self, records: list[MarketPriceRecord] | None = None):
        self._lock = threading.Lock()
        self._records: dict[str, MarketPriceRecord] = {}
        for record in records or []:
            self.upsert(record)

    def upsert(self, record: MarketPriceRecord) -> str:
        with self._lock:
            self._records[record.record_key] = record
        return record.record_key

    def find_by_region(
        self, state: str, district: str, limit: int
    ) -> list[MarketPriceRecord]:
        state_norm = state.strip().lower()
        district_norm = district.strip().lower()
        with self._lock:
            records = list(self._records.values())
        matched = [
            r for r in records
            if r.state.lower() == state_norm and r.district.lower() == district_norm
        ]
        return matched[:limit]


class InMemoryNegotiationStore(NegotiationStore):
    """Переговоры в памяти с version-checked записью и подписками."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, Negotiation] = {}
        self._hub = SubscriptionHub()

    def get_by_id(self, negotiation_id: str) -> Negotiation | None:
        with self._lock:
            return self._records.get(negotiation_id)

    def insert(self, record: Negotiation) -> str:
        negotiation_id = record.id or uuid.uuid4().hex
        stored = record.model_copy(update={"id": negotiation_id})
        with self._lock:
            if negotiation_id in self._records:
                raise ValueError(f"negotiation {negotiation_id} already exists")
            self._records[negotiation_id] = stored
            self._hub.publish(stored)
        return negotiation_id

    def update_if_version(
        self, negotiation_id: str, expected_version: int, patch: dict[str, Any]
    ) -> UpdateResult:
        check_patch(patch)
        with self._lock:
            current = self._records.get(negotiation_id)
            if current is None:
                return UpdateResult(UpdateStatus.NOT_FOUND)
            if current.version != expected_version:
                logger.debug(
                    "version conflict id=%s expected=%d stored=%d",
                    negotiation_id, expected_version, current.version,
                )
                return UpdateResult(UpdateStatus.CONFLICT, current)
            updated = apply_patch(current, patch)
            self._records[negotiation_id] = updated
            self._hub.publish(updated)
        return UpdateResult(UpdateStatus.OK, updated)

    def subscribe_by_participant(
        self, participant_id: str, role: ActorRole
    ) -> Subscription:
        with self._lock:
            replay = [
                n for n in self._records.values()
                if participant_matches(n, participant_id, role)
            ]
            return self._hub.open(participant_id, role, replay)
