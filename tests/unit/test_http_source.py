"""
Тесты для HttpMarketPriceSource

Транспорт подменяется httpx.MockTransport: сеть не используется.
"""

import httpx
import pytest

from mandi_floor.core.domain import PriceTier
from mandi_floor.pricing import PriceResolver
from mandi_floor.storage import HttpMarketPriceSource

BASE_URL = "https://prices.example.in/api"


def _source(handler) -> HttpMarketPriceSource:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpMarketPriceSource(BASE_URL, timeout=1.0, client=client)


def _doc(**overrides) -> dict:
    doc = {
        "state": "West Bengal",
        "district": "Kolkata",
        "market": "Sealdah",
        "commodity": "Rice",
        "minPrice": 3000,
        "maxPrice": 3400,
        "modalPrice": 3200,
        "source": "agmarknet",
        "isVerified": True,
        "lastUpdated": "2025-01-10T06:00:00Z",
    }
    doc.update(overrides)
    return doc


class TestHttpMarketPriceSource:
    """Тесты HTTP источника котировок"""

    def test_request_and_parse(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[_doc()])

        records = _source(handler).find_by_region("West Bengal", "Kolkata", 20)

        assert seen["path"] == "/api/market-prices"
        assert seen["params"] == {"state": "West Bengal", "district": "Kolkata", "limit": "20"}
        assert len(records) == 1
        assert records[0].modal_price == 3200.0
        assert records[0].market == "Sealdah"

    def test_malformed_documents_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=[_doc(market=""), "garbage", _doc(commodity="Potato", modalPrice=1500)]
            )

        records = _source(handler).find_by_region("West Bengal", "Kolkata", 20)

        assert [r.commodity for r in records] == ["Potato"]

    def test_limit_applied_to_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[_doc(market=f"M{i}") for i in range(30)])

        assert len(_source(handler).find_by_region("West Bengal", "Kolkata", 20)) == 20

    def test_http_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": "unavailable"})

        with pytest.raises(httpx.HTTPStatusError):
            _source(handler).find_by_region("West Bengal", "Kolkata", 20)

    def test_non_list_payload_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"records": []})

        with pytest.raises(ValueError, match="JSON list"):
            _source(handler).find_by_region("West Bengal", "Kolkata", 20)

    def test_context_manager_keeps_injected_client_open(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
        with HttpMarketPriceSource(BASE_URL, client=client) as source:
            assert source.find_by_region("Punjab", "Ludhiana", 5) == []
        assert not client.is_closed
        client.close()


class TestResolverOverHttp:
    """Resolver поверх HTTP источника"""

    def test_district_price_from_http(self) -> None:
        source = _source(lambda r: httpx.Response(200, json=[_doc()]))
        ref = PriceResolver(source=source).resolve("Rice", "West Bengal", "Kolkata")
        assert ref.tier == PriceTier.DISTRICT_MANDI
        assert ref.reference_price == 3200.0
        assert ref.is_verified is True

    def test_http_failure_degrades_to_national(self) -> None:
        source = _source(lambda r: httpx.Response(500))
        ref = PriceResolver(source=source).resolve("Rice", "West Bengal", "Kolkata")
        assert ref.tier == PriceTier.NATIONAL_FALLBACK
        assert ref.reference_price == 2500.0
        assert ref.is_verified is False

    def test_transport_error_degrades_to_national(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        ref = PriceResolver(source=_source(handler)).resolve("Rice", "West Bengal", "Kolkata")
        assert ref.tier == PriceTier.NATIONAL_FALLBACK
