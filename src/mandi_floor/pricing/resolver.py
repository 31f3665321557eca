"""
PriceResolver — опорная региональная цена через ограниченную fallback-цепочку

Порядок:
1. DISTRICT_MANDI: котировки рынка для точной пары (state, district),
   не более candidate_limit записей; первая запись, чьё название товара
   пересекается с запросом (подстрока в любую сторону), и у которой есть цена
2. STATE_AVERAGE: статическая таблица средних цен по штату (внедряется)
3. NATIONAL_FALLBACK: национальная константа

Resolver никогда не падает из-за отсутствия данных: снижается только
достоверность. Удалённое чтение ограничено таймаутом; таймаут или любая
ошибка источника ведут сразу на уровень 3.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from mandi_floor.core.domain.market_price import MarketPriceRecord
from mandi_floor.core.domain.price_band import PriceTier, ReferencePrice
from mandi_floor.pricing.config import (
    DEFAULT_PRICE_TABLES,
    PriceTables,
    ResolverConfig,
)
from mandi_floor.storage.ports import MarketPriceSource

logger = logging.getLogger(__name__)


class _LookupFailed(Exception):
    """Удалённое чтение не удалось (таймаут или ошибка источника)."""


class PriceResolver:
    """Резолвер опорной цены (₹/quintal).

    Использование:
        resolver = PriceResolver(source=InMemoryMarketPriceStore(records))
        ref = resolver.resolve("Rice", "West Bengal", "Kolkata")
    """

    def __init__(
        self,
        source: MarketPriceSource | None = None,
        tables: PriceTables | None = None,
        config: ResolverConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """
        Args:
            source: Источник котировок (None → уровень 1 пропускается)
            tables: Таблица средних цен по штатам (default: DEFAULT_PRICE_TABLES)
            config: Конфигурация (limit, timeout, национальная цена)
            executor: Пул для удалённого чтения с таймаутом
        """
        self.source = source
        self.tables = tables or DEFAULT_PRICE_TABLES
        self.config = config or ResolverConfig()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="price-lookup"
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def resolve(self, commodity: str, state: str, district: str) -> ReferencePrice:
        """
        Опорная цена для (commodity, state, district).

        Returns:
            ReferencePrice; никогда не бросает исключение из-за отсутствия данных
        """
        commodity_norm = (commodity or "").strip().lower()
        state_norm = (state or "").strip()
        district_norm = (district or "").strip()

        if self.source is not None and state_norm and district_norm:
            try:
                records = self._lookup(self.source, state_norm, district_norm)
            except _LookupFailed:
                return self._national()

            match = self._pick_district_record(records, commodity_norm)
            if match is not None:
                return ReferencePrice(
                    reference_price=match.reference_price_per_quintal,
                    is_verified=True,
                    source=f"{match.market}, {match.district}",
                    tier=PriceTier.DISTRICT_MANDI,
                )

        logger.info(
            "district data unavailable for %r in %r, %r; using state average",
            commodity, district_norm, state_norm,
        )
        state_ref = self._state_average(state_norm, commodity_norm)
        if state_ref is not None:
            return state_ref

        logger.info("no state data for %r; using national fallback", commodity)
        return self._national()

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # =========================================================================
    # TIERS
    # =========================================================================

    def _lookup(
        self, source: MarketPriceSource, state: str, district: str
    ) -> list[MarketPriceRecord]:
        """Удалённое чтение с жёстким таймаутом."""
        future: Future = self._executor.submit(
            source.find_by_region, state, district, self.config.candidate_limit
        )
        try:
            return list(future.result(timeout=self.config.lookup_timeout_sec))
        except FutureTimeoutError as e:
            future.cancel()
            logger.warning(
                "market price lookup timed out after %.1fs for %s/%s",
                self.config.lookup_timeout_sec, state, district,
            )
            raise _LookupFailed() from e
        except Exception as e:
            logger.warning(
                "market price lookup failed for %s/%s", state, district, exc_info=True
            )
            raise _LookupFailed() from e

    def _pick_district_record(
        self, records: list[MarketPriceRecord], commodity: str
    ) -> MarketPriceRecord | None:
        for record in records[: self.config.candidate_limit]:
            if not record.matches_commodity(commodity):
                continue
            # Запись без цены не может быть опорной
            if record.reference_price_per_quintal <= 0:
                continue
            return record
        return None

    def _state_average(self, state: str, commodity: str) -> ReferencePrice | None:
        match = self.tables.state_average(state, commodity)
        if match.price <= 0:
            return None
        label = state or "Default"
        return ReferencePrice(
            reference_price=match.price,
            is_verified=False,
            source=f"{label} State Average (district data unavailable)",
            tier=PriceTier.STATE_AVERAGE,
        )

    def _national(self) -> ReferencePrice:
        return ReferencePrice(
            reference_price=self.config.national_fallback_price,
            is_verified=False,
            source="National Average (no regional data)",
            tier=PriceTier.NATIONAL_FALLBACK,
        )
