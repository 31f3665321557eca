"""Negotiation State Machine — жизненный цикл переговоров покупателя и фермера.

States:
    Pending → Counter-By-Farmer | Counter-By-Buyer → Accepted | Rejected

- create: открытие покупателем; коридор замораживается в записи, version = 1
- counter: встречное предложение любой стороны; floor обязателен только
  для покупателя и проверяется по сохранённому снапшоту, а не по
  пересчитанному коридору
- respond: Accept / Reject из любого нетерминального состояния

Каждая запись идёт через update_if_version хранилища: из двух конкурирующих
писателей одной версии выигрывает ровно один, второй получает
StaleNegotiationState без частичной записи.
"""

import logging
from dataclasses import dataclass
from typing import Any

from mandi_floor.core.domain.negotiation import (
    COUNTER_STATUS_BY_ROLE,
    ActorRole,
    Decision,
    Negotiation,
    NegotiationStatus,
    utc_now,
)
from mandi_floor.core.domain.price_band import PriceBand
from mandi_floor.negotiation.errors import ERROR_BY_CODE, NegotiationErrorCode
from mandi_floor.negotiation.guards import (
    GuardResult,
    NegotiationConfig,
    check_buyer_floor,
    check_counter_price,
    check_exists,
    check_not_terminal,
    check_quantity,
    check_version,
)
from mandi_floor.pricing.band_calculator import PriceBandCalculator
from mandi_floor.pricing.classifier import OfferClassification, classify_offer
from mandi_floor.pricing.resolver import PriceResolver
from mandi_floor.storage.ports import NegotiationStore, UpdateResult, UpdateStatus
from mandi_floor.storage.subscriptions import Subscription

logger = logging.getLogger(__name__)


_DECISION_STATUS: dict[Decision, NegotiationStatus] = {
    Decision.ACCEPT: NegotiationStatus.ACCEPTED,
    Decision.REJECT: NegotiationStatus.REJECTED,
}


@dataclass(frozen=True)
class NegotiationResult:
    """Результат операции state machine."""

    success: bool
    error_code: NegotiationErrorCode | None = None
    negotiation: Negotiation | None = None
    message: str = ""
    details: dict | None = None

    # Подсказка для UI по новой цене (не участвует в жёсткой проверке)
    classification: OfferClassification | None = None

    def raise_for_error(self) -> "NegotiationResult":
        """
        Raises:
            NegotiationError: подкласс по error_code, если операция отклонена
        """
        if not self.success and self.error_code is not None:
            raise ERROR_BY_CODE[self.error_code](self.message, self.details)
        return self


class NegotiationStateMachine:
    """State machine переговоров поверх NegotiationStore.

    Использование:
        machine = NegotiationStateMachine(InMemoryNegotiationStore(), resolver)
        result = machine.open_negotiation("b1", "f1", "p1", "Rice", "West Bengal",
                                          "Kolkata", "B", offered_price=30, quantity=500)
    """

    def __init__(
        self,
        store: NegotiationStore,
        resolver: PriceResolver | None = None,
        calculator: PriceBandCalculator | None = None,
        config: NegotiationConfig | None = None,
    ):
        """
        Args:
            store: хранилище переговоров
            resolver: резолвер опорной цены (default: только статические таблицы)
            calculator: формула коридора
            config: конфигурация (bulk minimum)
        """
        self.store = store
        self.resolver = resolver or PriceResolver()
        self.calculator = calculator or PriceBandCalculator()
        self.config = config or NegotiationConfig()

    # =========================================================================
    # PRICING
    # =========================================================================

    def quote(self, commodity: str, state: str, district: str, grade: str | None = "B") -> PriceBand:
        """Актуальный коридор для отображения (не замораживается)."""
        reference = self.resolver.resolve(commodity, state, district)
        return self.calculator.compute(reference, grade)

    def classify(self, negotiation: Negotiation, price: float) -> OfferClassification:
        """Подсказка по цене относительно замороженного коридора переговоров."""
        return classify_offer(price, self._frozen_band(negotiation), self._stretch_markup)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create(
        self,
        buyer_id: str,
        farmer_id: str,
        product_id: str,
        offered_price: float,
        quantity: float,
        resolved_band: PriceBand,
        initial_price: float | None = None,
        notes: str = "",
    ) -> NegotiationResult:
        """Открытие переговоров предложением покупателя.

        Returns:
            NegotiationResult с сохранённой записью (Pending, version 1)
        """
        blocked = _first_blocked(
            check_quantity(quantity, self.config),
            check_buyer_floor(offered_price, resolved_band.floor_price),
        )
        if blocked is not None:
            return self._reject(blocked, negotiation_id=None)

        record = Negotiation(
            product_id=product_id,
            buyer_id=buyer_id,
            farmer_id=farmer_id,
            initial_price=offered_price if initial_price is None else initial_price,
            offered_price=offered_price,
            quantity=quantity,
            status=NegotiationStatus.PENDING,
            floor_price=resolved_band.floor_price,
            target_price=resolved_band.target_price,
            price_source=resolved_band.price_source,
            price_verified=resolved_band.is_verified,
            quality_grade=resolved_band.quality_grade,
            notes=notes,
            last_updated=utc_now(),
            version=1,
        )
        negotiation_id = self.store.insert(record)
        stored = self.store.get_by_id(negotiation_id) or record.model_copy(
            update={"id": negotiation_id}
        )
        logger.info(
            "negotiation %s opened buyer=%s farmer=%s price=%.2f floor=%.2f",
            negotiation_id, buyer_id, farmer_id, offered_price, resolved_band.floor_price,
        )
        return NegotiationResult(
            success=True,
            negotiation=stored,
            message="negotiation opened",
            classification=classify_offer(offered_price, resolved_band, self._stretch_markup),
        )

    def open_negotiation(
        self,
        buyer_id: str,
        farmer_id: str,
        product_id: str,
        commodity: str,
        state: str,
        district: str,
        grade: str | None,
        offered_price: float,
        quantity: float,
        initial_price: float | None = None,
        notes: str = "",
    ) -> NegotiationResult:
        """Resolver → формула → create."""
        band = self.quote(commodity, state, district, grade)
        return self.create(
            buyer_id=buyer_id,
            farmer_id=farmer_id,
            product_id=product_id,
            offered_price=offered_price,
            quantity=quantity,
            resolved_band=band,
            initial_price=initial_price,
            notes=notes,
        )

    def counter(
        self,
        negotiation_id: str,
        actor_role: ActorRole,
        expected_version: int,
        new_price: float,
        new_quantity: float,
        notes: str | None = None,
    ) -> NegotiationResult:
        """Встречное предложение.

        Floor проверяется только для покупателя и только по сохранённому
        floor_price; фермер может предложить любую цену.
        """
        actor_role = ActorRole(actor_role)

        current = self.store.get_by_id(negotiation_id)
        if current is None:
            return self._reject(check_exists(current, negotiation_id), negotiation_id)

        blocked = _first_blocked(
            check_not_terminal(current),
            check_version(current, expected_version),
            check_quantity(new_quantity, self.config),
            check_counter_price(actor_role, new_price, current.floor_price),
        )
        if blocked is not None:
            return self._reject(blocked, negotiation_id, current)

        patch: dict[str, Any] = {
            "status": COUNTER_STATUS_BY_ROLE[actor_role],
            "counter_price": new_price,
            "offered_price": new_price,
            "quantity": new_quantity,
            "last_updated": utc_now(),
        }
        if notes is not None:
            patch["notes"] = notes

        result = self._write(negotiation_id, expected_version, patch)
        if result.success:
            logger.info(
                "negotiation %s countered by %s price=%.2f qty=%g version=%d",
                negotiation_id, actor_role.value, new_price, new_quantity,
                result.negotiation.version if result.negotiation else -1,
            )
            return NegotiationResult(
                success=True,
                negotiation=result.negotiation,
                message=f"counter offer by {actor_role.value.lower()}",
                classification=self.classify(current, new_price),
            )
        return result

    def respond(
        self,
        negotiation_id: str,
        expected_version: int,
        decision: Decision,
        notes: str | None = None,
    ) -> NegotiationResult:
        """Accept / Reject из любого нетерминального состояния."""
        current = self.store.get_by_id(negotiation_id)
        if current is None:
            return self._reject(check_exists(current, negotiation_id), negotiation_id)

        blocked = _first_blocked(
            check_not_terminal(current),
            check_version(current, expected_version),
        )
        if blocked is not None:
            return self._reject(blocked, negotiation_id, current)

        patch: dict[str, Any] = {
            "status": _DECISION_STATUS[Decision(decision)],
            "last_updated": utc_now(),
        }
        if notes is not None:
            patch["notes"] = notes

        result = self._write(negotiation_id, expected_version, patch)
        if result.success:
            logger.info(
                "negotiation %s %s", negotiation_id, patch["status"].value.lower()
            )
        return result

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, negotiation_id: str) -> Negotiation | None:
        return self.store.get_by_id(negotiation_id)

    def subscribe(self, participant_id: str, role: ActorRole) -> Subscription:
        """Поток снапшотов переговоров участника (см. Subscription)."""
        return self.store.subscribe_by_participant(participant_id, ActorRole(role))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @property
    def _stretch_markup(self) -> float:
        return self.calculator.config.stretch_markup

    def _frozen_band(self, negotiation: Negotiation) -> PriceBand:
        return negotiation.band(self._stretch_markup)

    def _write(
        self, negotiation_id: str, expected_version: int, patch: dict[str, Any]
    ) -> NegotiationResult:
        update: UpdateResult = self.store.update_if_version(
            negotiation_id, expected_version, patch
        )
        if update.status == UpdateStatus.OK:
            return NegotiationResult(success=True, negotiation=update.negotiation)
        if update.status == UpdateStatus.CONFLICT:
            guard = GuardResult(
                allowed=False,
                error_code=NegotiationErrorCode.STALE_NEGOTIATION_STATE,
                block_reason="negotiation was modified by another party; re-fetch and retry",
                details={
                    "expected_version": expected_version,
                    "stored_version": update.negotiation.version if update.negotiation else None,
                },
            )
            return self._reject(guard, negotiation_id, update.negotiation)
        guard = check_exists(None, negotiation_id)
        return self._reject(guard, negotiation_id)

    @staticmethod
    def _reject(
        guard: GuardResult,
        negotiation_id: str | None,
        current: Negotiation | None = None,
    ) -> NegotiationResult:
        logger.info(
            "negotiation %s mutation blocked: %s (%s)",
            negotiation_id or "<new>",
            guard.error_code.value if guard.error_code else "?",
            guard.block_reason,
        )
        return NegotiationResult(
            success=False,
            error_code=guard.error_code,
            negotiation=current,
            message=guard.block_reason,
            details=guard.details,
        )


def _first_blocked(*guards: GuardResult) -> GuardResult | None:
    """Первая заблокированная проверка (в порядке аргументов)."""
    for guard in guards:
        if not guard.allowed:
            return guard
    return None
