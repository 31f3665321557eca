"""
MarketPriceRecord — Модель записи цены оптового рынка (mandi)

Immutable Pydantic модель одной котировки рынка. Записи поставляет внешний
ingestion-процесс (синхронизация с Agmarknet); для этого пакета они read-only.

Ключ записи детерминирован: (state, district, market, commodity), поэтому
повторная синхронизация перезаписывает запись, а не дублирует её.
"""

import re
from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, Field, field_validator

from mandi_floor.core.math.money import per_quintal_to_per_kg


# =============================================================================
# CONSTANTS
# =============================================================================

# Единица цены в записях ingestion
PRICE_UNIT_INR_QUINTAL: Final[str] = "INR/Quintal"

# Значения ячеек цены, означающие «нет котировки»
_MISSING_PRICE_TOKENS: Final[frozenset[str]] = frozenset({"", "NR", "-", "NA"})

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


# =============================================================================
# ENUMS
# =============================================================================


class PriceDataSource(str, Enum):
    """Источник котировки"""

    AGMARKNET = "agmarknet"
    MANUAL = "manual"
    API = "api"


# =============================================================================
# KEY / PARSING HELPERS
# =============================================================================


def _sanitize_key_part(value: str) -> str:
    return _NON_ALNUM_RUN.sub("_", value.strip().lower()).strip("_")


def market_record_key(state: str, district: str, market: str, commodity: str) -> str:
    """
    Детерминированный составной ключ записи.

    Каждая часть приводится к нижнему регистру, любые последовательности
    символов вне [a-z0-9] схлопываются в "_", крайние "_" удаляются.

    Examples:
        >>> market_record_key("West Bengal", "Kolkata", "Sealdah (Koley)", "Rice")
        'west_bengal_kolkata_sealdah_koley_rice'
    """
    parts = (state, district, market, commodity)
    return "_".join(_sanitize_key_part(p) for p in parts)


def parse_price_text(text: str | None) -> float | None:
    """
    Разбор текстовой цены из таблицы рынка.

    Понимает индийские разделители тысяч и символ ₹. Пустые ячейки,
    "NR" и нечисловые значения дают None.

    Examples:
        >>> parse_price_text("₹3,200")
        3200.0
        >>> parse_price_text("NR") is None
        True
    """
    if text is None:
        return None
    cleaned = text.replace(",", "").replace("₹", "").strip()
    if cleaned.upper() in _MISSING_PRICE_TOKENS:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


# =============================================================================
# MARKET PRICE RECORD
# =============================================================================


class MarketPriceRecord(BaseModel):
    """
    Котировка одного рынка по одному товару.

    Все цены в ₹ за центнер (quintal = 100 кг).
    """

    # Локация
    state: str = Field(..., min_length=1, description="Штат (например, 'West Bengal')")
    district: str = Field(..., min_length=1, description="Округ (например, 'Kolkata')")
    market: str = Field(..., min_length=1, description="Рынок / mandi (например, 'Sealdah')")

    # Товар
    commodity: str = Field(..., min_length=1, description="Товар (например, 'Rice')")
    variety: str = Field(default="", description="Сорт (например, 'Basmati')")
    grade: str = Field(default="", description="Грейд в терминах рынка (например, 'FAQ')")

    # Цены (₹/quintal, nullable: рынок мог не сообщить)
    min_price: float | None = Field(None, ge=0, description="Минимальная цена")
    max_price: float | None = Field(None, ge=0, description="Максимальная цена")
    modal_price: float | None = Field(None, ge=0, description="Модальная цена")
    price_unit: str = Field(default=PRICE_UNIT_INR_QUINTAL, description="Единица цены")

    # Происхождение
    report_date: str = Field(default="", description="Дата котировки (ISO)")
    source: PriceDataSource = Field(default=PriceDataSource.AGMARKNET, description="Источник")
    source_url: str | None = Field(None, description="URL источника")
    is_verified: bool = Field(default=True, description="Запись проверена ingestion")
    last_updated: str = Field(default="", description="Время синхронизации (ISO)")

    model_config = {"frozen": True}

    @field_validator("state", "district", "market", "commodity")
    @classmethod
    def strip_location(cls, v: str) -> str:
        """Обрезка пробелов в ключевых полях."""
        v = v.strip()
        if not v:
            raise ValueError("key fields must not be blank")
        return v

    @property
    def record_key(self) -> str:
        """Составной ключ (state, district, market, commodity)."""
        return market_record_key(self.state, self.district, self.market, self.commodity)

    @property
    def reference_price_per_quintal(self) -> float:
        """
        Опорная цена записи: modal, иначе max, иначе min, иначе 0.
        """
        for price in (self.modal_price, self.max_price, self.min_price):
            if price is not None:
                return price
        return 0.0

    @property
    def reference_price_per_kg(self) -> float:
        """Опорная цена в ₹/кг (2 знака)."""
        return per_quintal_to_per_kg(self.reference_price_per_quintal)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "MarketPriceRecord":
        """
        Чтение документа ingestion (camelCase).

        Старые документы могут хранить commodityName / marketName вместо
        commodity / market.
        """
        return cls(
            state=doc.get("state") or "",
            district=doc.get("district") or "",
            market=doc.get("market") or doc.get("marketName") or "",
            commodity=doc.get("commodity") or doc.get("commodityName") or "",
            variety=doc.get("variety") or "",
            grade=doc.get("grade") or "",
            min_price=doc.get("minPrice"),
            max_price=doc.get("maxPrice"),
            modal_price=doc.get("modalPrice"),
            price_unit=doc.get("priceUnit") or PRICE_UNIT_INR_QUINTAL,
            report_date=doc.get("reportDate") or "",
            source=doc.get("source") or PriceDataSource.AGMARKNET,
            source_url=doc.get("sourceUrl"),
            is_verified=doc.get("isVerified", True),
            last_updated=doc.get("lastUpdated") or "",
        )

    def matches_commodity(self, commodity_query: str) -> bool:
        """
        Текстовое пересечение названия товара в любую сторону.

        "rice" совпадает с "Rice (Paddy)" и наоборот; регистр не важен.
        """
        query = commodity_query.strip().lower()
        name = self.commodity.strip().lower()
        if not query or not name:
            return False
        return query in name or name in query
