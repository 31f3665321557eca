"""Storage ports — интерфейсы хранилищ, которые потребляет ядро.

- MarketPriceSource: read-only доступ к котировкам рынков (наполняет внешний
  ingestion-процесс)
- NegotiationStore: хранилище переговоров с version-checked записью и
  push-подписками по участнику
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Protocol

from mandi_floor.core.domain.market_price import MarketPriceRecord
from mandi_floor.core.domain.negotiation import ActorRole, Negotiation
from mandi_floor.storage.subscriptions import Subscription


# Поля, которые принадлежат Negotiation с момента создания и не патчатся
FROZEN_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "id",
        "product_id",
        "buyer_id",
        "farmer_id",
        "initial_price",
        "floor_price",
        "target_price",
        "price_source",
        "price_verified",
        "quality_grade",
        "version",
    }
)


class UpdateStatus(str, Enum):
    """Исход version-checked записи"""

    OK = "OK"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class UpdateResult:
    """Результат update_if_version."""

    status: UpdateStatus
    negotiation: Negotiation | None = None

    @property
    def ok(self) -> bool:
        return self.status == UpdateStatus.OK


def check_patch(patch: dict[str, Any]) -> None:
    """
    Проверка патча: замороженные поля не изменяются.

    Raises:
        ValueError: Если патч затрагивает FROZEN_FIELDS
    """
    forbidden = FROZEN_FIELDS.intersection(patch)
    if forbidden:
        raise ValueError(f"patch touches frozen negotiation fields: {sorted(forbidden)}")


def apply_patch(current: Negotiation, patch: dict[str, Any]) -> Negotiation:
    """Новый снапшот: patch поверх current, version + 1, с полной валидацией."""
    data = current.model_dump()
    data.update(patch)
    data["version"] = current.version + 1
    return Negotiation.model_validate(data)


class MarketPriceSource(Protocol):
    """Read-only источник котировок."""

    def find_by_region(
        self, state: str, district: str, limit: int
    ) -> list[MarketPriceRecord]:
        """Не более limit записей для (state, district), без учёта регистра."""
        ...


class NegotiationStore(ABC):
    """Хранилище переговоров.

    Контракт записи: update_if_version применяет патч только если
    сохранённая version == expected_version; иначе CONFLICT без частичной
    записи. Ровно один из конкурирующих писателей одной версии выигрывает.
    """

    @abstractmethod
    def get_by_id(self, negotiation_id: str) -> Negotiation | None:
        """Снапшот или None."""

    @abstractmethod
    def insert(self, record: Negotiation) -> str:
        """Сохранение новой записи; возвращает присвоенный id."""

    @abstractmethod
    def update_if_version(
        self, negotiation_id: str, expected_version: int, patch: dict[str, Any]
    ) -> UpdateResult:
        """Compare-and-set по version."""

    @abstractmethod
    def subscribe_by_participant(
        self, participant_id: str, role: ActorRole
    ) -> Subscription:
        """Поток снапшотов переговоров участника (buyer_id или farmer_id)."""
