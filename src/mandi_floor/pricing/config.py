"""Pricing configuration — параметры формулы коридора, resolver и статические таблицы.

Статические таблицы средних цен по штатам — версионируемый read-only ресурс,
который внедряется в PriceResolver при создании (подмена в тестах, загрузка
альтернативной версии из JSON).
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# CONSTANTS
# =============================================================================

# Ключ fallback-записи на уровне штата и на уровне таблицы
DEFAULT_KEY: Final[str] = "default"

# Национальная fallback-цена (₹/quintal)
NATIONAL_FALLBACK_PRICE: Final[float] = 2500.0

# Множитель stretch: граница FAIR/HIGH = target × STRETCH_MARKUP
STRETCH_MARKUP: Final[float] = 1.1


# =============================================================================
# FORMULA / RESOLVER CONFIG
# =============================================================================


@dataclass(frozen=True)
class PriceBandConfig:
    """Конфигурация формулы коридора.

    floor  = max(0, reference / quintal_kg × multiplier − per_kg_deduction)
    target = floor × target_markup
    stretch = target × stretch_markup
    """
    grade_multipliers: dict[str, float] = field(
        default_factory=lambda: {"A": 1.0, "B": 0.90, "C": 0.80, "X": 0.0}
    )
    default_multiplier: float = 0.90  # Неизвестный грейд → как B
    per_kg_deduction: float = 1.5     # ₹/кг
    target_markup: float = 1.15
    stretch_markup: float = STRETCH_MARKUP
    quintal_kg: int = 100


@dataclass(frozen=True)
class ResolverConfig:
    """Конфигурация PriceResolver.

    - candidate_limit: сколько записей района просматривать
    - lookup_timeout_sec: жёсткий таймаут удалённого чтения
    - national_fallback_price: последний уровень цепочки (₹/quintal)
    """
    candidate_limit: int = 20
    lookup_timeout_sec: float = 3.0
    national_fallback_price: float = NATIONAL_FALLBACK_PRICE


# =============================================================================
# STATE AVERAGE TABLES
# =============================================================================


class StateAverageMatch(BaseModel):
    """Результат поиска в таблице средних цен."""

    price: float = Field(..., ge=0, description="Средняя цена (₹/quintal)")
    table_state: str = Field(..., description="Ключ штата в таблице (или 'default')")
    commodity_key: str = Field(..., description="Ключ товара (или 'default')")

    model_config = {"frozen": True}


class PriceTables(BaseModel):
    """
    Версионированная таблица средних цен по штатам (₹/quintal).

    tables[state][commodity]; обязательны "default" на уровне таблицы
    и "default" внутри каждого штата.
    """

    version: str = Field(..., min_length=1, description="Версия таблицы")
    tables: dict[str, dict[str, float]] = Field(..., description="Цены по штатам")

    model_config = {"frozen": True}

    @field_validator("tables")
    @classmethod
    def validate_defaults(cls, v: dict[str, dict[str, float]]) -> dict[str, dict[str, float]]:
        """Проверка наличия default-записей и неотрицательности цен."""
        if DEFAULT_KEY not in v:
            raise ValueError("price tables must contain a 'default' state")
        for state, prices in v.items():
            if DEFAULT_KEY not in prices:
                raise ValueError(f"state {state!r} has no 'default' price")
            for commodity, price in prices.items():
                if price < 0:
                    raise ValueError(f"negative price for {state}/{commodity}: {price}")
        return {state: dict(prices) for state, prices in v.items()}

    @classmethod
    def from_json_file(cls, path: str | Path) -> "PriceTables":
        """
        Загрузка таблицы из JSON файла {"version": ..., "tables": {...}}.

        Raises:
            FileNotFoundError: Если файл не найден
            json.JSONDecodeError: Если файл не является валидным JSON
            pydantic.ValidationError: Если структура таблицы некорректна
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)

    def _state_table(self, state: str) -> tuple[str, dict[str, float]]:
        state_norm = state.strip().lower()
        if not state_norm:
            return DEFAULT_KEY, self.tables[DEFAULT_KEY]

        # 1. Точное совпадение (без учёта регистра)
        for key, prices in self.tables.items():
            if key != DEFAULT_KEY and key.lower() == state_norm:
                return key, prices

        # 2. Частичное совпадение в любую сторону
        for key, prices in self.tables.items():
            key_norm = key.lower()
            if key != DEFAULT_KEY and (key_norm in state_norm or state_norm in key_norm):
                return key, prices

        return DEFAULT_KEY, self.tables[DEFAULT_KEY]

    def state_average(self, state: str, commodity: str) -> StateAverageMatch:
        """
        Средняя цена товара по штату.

        Штат: точный ключ → частичное совпадение → таблица "default".
        Товар: текстовое пересечение в любую сторону → "default" штата.
        """
        table_state, prices = self._state_table(state)
        commodity_norm = commodity.strip().lower()

        if commodity_norm:
            for key, price in prices.items():
                key_norm = key.lower()
                if key == DEFAULT_KEY:
                    continue
                if key_norm in commodity_norm or commodity_norm in key_norm:
                    return StateAverageMatch(
                        price=price, table_state=table_state, commodity_key=key
                    )

        return StateAverageMatch(
            price=prices[DEFAULT_KEY], table_state=table_state, commodity_key=DEFAULT_KEY
        )


DEFAULT_PRICE_TABLES: Final[PriceTables] = PriceTables(
    version="2025.1",
    tables={
        "West Bengal": {
            "Rice": 3200, "Wheat": 2400, "Potato": 1600, "Onion": 2100, "Tomato": 2800,
            "Cauliflower": 2200, "Cabbage": 1400, "Brinjal": 2000, "Mango": 5500,
            "Banana": 2800, "default": 2500,
        },
        "Maharashtra": {
            "Rice": 3000, "Wheat": 2600, "Potato": 1800, "Onion": 1900, "Tomato": 2500,
            "Grapes": 6000, "Orange": 4500, "Mango": 6500, "Sugarcane": 3200,
            "Cotton": 7000, "default": 2800,
        },
        "Punjab": {
            "Rice": 3500, "Wheat": 2800, "Potato": 1500, "Maize": 2200, "Cotton": 7500,
            "Sugarcane": 3500, "Mustard": 5500, "Barley": 2000, "default": 3000,
        },
        "Uttar Pradesh": {
            "Rice": 3100, "Wheat": 2500, "Potato": 1400, "Onion": 1800, "Sugarcane": 3400,
            "Mango": 5000, "Tomato": 2600, "Cauliflower": 2000, "default": 2600,
        },
        "Karnataka": {
            "Rice": 3300, "Ragi": 3500, "Tomato": 2400, "Onion": 2000, "Potato": 1700,
            "Mango": 6000, "Coconut": 2500, "Coffee": 8000, "default": 2700,
        },
        "Tamil Nadu": {
            "Rice": 3400, "Coconut": 2800, "Banana": 3000, "Mango": 5800, "Tomato": 2700,
            "Onion": 2200, "Groundnut": 5500, "default": 2900,
        },
        "Gujarat": {
            "Cotton": 7200, "Groundnut": 5800, "Wheat": 2600, "Potato": 1600, "Onion": 2000,
            "Cumin": 18000, "Castor": 6500, "default": 3000,
        },
        "Madhya Pradesh": {
            "Wheat": 2700, "Soybean": 4500, "Gram": 5000, "Onion": 1800, "Potato": 1500,
            "Tomato": 2300, "Garlic": 12000, "default": 2800,
        },
        "Rajasthan": {
            "Wheat": 2600, "Mustard": 5600, "Gram": 5200, "Barley": 2100, "Cumin": 17000,
            "Coriander": 8000, "Onion": 1700, "default": 2700,
        },
        "default": {
            "Rice": 3200, "Wheat": 2500, "Potato": 1600, "Onion": 2000, "Tomato": 2500,
            "Mango": 5500, "Banana": 2600, "default": 2500,
        },
    },
)
