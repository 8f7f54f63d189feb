from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat

from .constants import DEFAULT_SOURCE_NAME


@dataclass(frozen=True)
class MarketSource:
    market_id: str
    url: str
    name: str = ""
    full_name: str = ""
    region: str = ""
    enabled: bool = True
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or self.market_id.title()


@dataclass(frozen=True)
class Observation:
    date: str
    market: str
    prices: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "market": self.market, "prices": dict(self.prices)}


class PriceEntry(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    prices: dict[str, confloat(allow_inf_nan=False)] = Field(default_factory=dict)


class MarketHistory(BaseModel):
    entries: list[PriceEntry] = Field(default_factory=list)


class HistoricalRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_update: str = Field("", alias="lastUpdate")
    source: str = DEFAULT_SOURCE_NAME
    markets: dict[str, MarketHistory] = Field(default_factory=dict)

    def entries_for(self, market: str) -> list[PriceEntry]:
        history = self.markets.get(market)
        return list(history.entries) if history else []

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class MonthlySeries:
    market: str
    month_keys: list[str] = field(default_factory=list)
    months: list[str] = field(default_factory=list)
    prices: dict[str, list[Optional[float]]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.month_keys and not self.months

    def latest(self, variety: str) -> Optional[float]:
        values = self.prices.get(variety) or []
        return values[-1] if values else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"months": list(self.months)}
        for variety, values in self.prices.items():
            payload[variety] = list(values)
        return payload

    @staticmethod
    def from_dict(market: str, data: dict[str, Any]) -> "MonthlySeries":
        months = [str(label) for label in data.get("months") or []]
        prices: dict[str, list[Optional[float]]] = {}
        for key, values in data.items():
            if key == "months" or not isinstance(values, list):
                continue
            prices[key] = [None if value is None else float(value) for value in values]
        return MonthlySeries(market=market, months=months, prices=prices)


@dataclass(frozen=True)
class MarketResult:
    market: str
    observations: tuple[Observation, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
