"""HttpMarketPriceSource — удалённое чтение котировок через HTTP API ingestion.

GET {base_url}/market-prices?state=...&district=...&limit=...
→ JSON список документов в camelCase (см. MarketPriceRecord.from_document).

Ошибки транспорта и HTTP статусы пробрасываются вызывающему (PriceResolver
превращает их в национальный fallback). Отдельные невалидные документы
пропускаются с предупреждением.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from mandi_floor.core.domain.market_price import MarketPriceRecord

logger = logging.getLogger(__name__)


class HttpMarketPriceSource:
    """MarketPriceSource поверх httpx.Client."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        client: httpx.Client | None = None,
    ):
        """
        Args:
            base_url: Корень API (например, "https://prices.example.in/api")
            timeout: Таймаут HTTP запроса (секунды)
            client: Готовый httpx.Client (тесты подставляют MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def find_by_region(
        self, state: str, district: str, limit: int
    ) -> list[MarketPriceRecord]:
        response = self._client.get(
            f"{self.base_url}/market-prices",
            params={"state": state, "district": district, "limit": limit},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload: Any = response.json()
        if not isinstance(payload, list):
            raise ValueError(f"expected a JSON list of records, got {type(payload).__name__}")

        records: list[MarketPriceRecord] = []
        for doc in payload[:limit]:
            try:
                records.append(MarketPriceRecord.from_document(doc))
            except (ValidationError, AttributeError) as e:
                logger.warning("skipping malformed market price document: %s", e)
        return records

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpMarketPriceSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
