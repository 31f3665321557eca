"""Subscriptions — push-потоки снапшотов переговоров по участнику.

Подписка — отменяемый блокирующий итератор неизменяемых снапшотов.
Порядок доставки внутри одной записи совпадает с порядком записей в
хранилище; между разными подписчиками время доставки не синхронизировано.
"""

import logging
import queue
import threading
from typing import Callable, Iterator

from mandi_floor.core.domain.negotiation import ActorRole, Negotiation

logger = logging.getLogger(__name__)

_CLOSED = object()


def participant_matches(negotiation: Negotiation, participant_id: str, role: ActorRole) -> bool:
    if ActorRole(role) == ActorRole.BUYER:
        return negotiation.buyer_id == participant_id
    return negotiation.farmer_id == participant_id


class Subscription:
    """Отменяемый поток снапшотов.

    Использование:
        with store.subscribe_by_participant("b1", ActorRole.BUYER) as sub:
            for snapshot in sub:
                ...
    """

    def __init__(
        self,
        participant_id: str,
        role: ActorRole,
        on_cancel: Callable[["Subscription"], None] | None = None,
    ):
        self.participant_id = participant_id
        self.role = ActorRole(role)
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._cancelled = threading.Event()
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def matches(self, negotiation: Negotiation) -> bool:
        return participant_matches(negotiation, self.participant_id, self.role)

    def publish(self, negotiation: Negotiation) -> None:
        """Доставка снапшота (no-op после cancel)."""
        if not self._cancelled.is_set():
            self._queue.put(negotiation)

    def get(self, timeout: float | None = None) -> Negotiation | None:
        """
        Следующий снапшот.

        Returns:
            Negotiation, либо None при таймауте или после cancel
        """
        if self._cancelled.is_set() and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[Negotiation]:
        """Все уже доставленные снапшоты без ожидания."""
        items: list[Negotiation] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return items
            if item is _CLOSED:
                return items
            items.append(item)  # type: ignore[arg-type]

    def cancel(self) -> None:
        """Отмена подписки; блокирующий итератор завершается."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self._queue.put(_CLOSED)
        if self._on_cancel is not None:
            self._on_cancel(self)

    def __iter__(self) -> Iterator[Negotiation]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class SubscriptionHub:
    """Реестр подписок хранилища.

    Хранилище вызывает publish() после каждой успешной записи, находясь
    под своим замком записи, поэтому порядок снапшотов одной записи
    сохраняется.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def open(
        self,
        participant_id: str,
        role: ActorRole,
        replay: list[Negotiation],
    ) -> Subscription:
        """Новая подписка; replay доставляется первым (новые сверху)."""
        sub = Subscription(participant_id, role, on_cancel=self._remove)
        for negotiation in sorted(replay, key=lambda n: n.last_updated, reverse=True):
            sub.publish(negotiation)
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug("subscription opened participant=%s role=%s", participant_id, sub.role.value)
        return sub

    def publish(self, negotiation: Negotiation) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(negotiation)]
        for sub in targets:
            sub.publish(negotiation)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
