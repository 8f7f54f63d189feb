from __future__ import annotations

from typing import Optional, Sequence

from .models import HistoricalRecord, MonthlySeries, PriceEntry
from .varieties import PRIMARY_VARIETIES

MONTH_ABBREVIATIONS = {
    "01": "Ene",
    "02": "Feb",
    "03": "Mar",
    "04": "Abr",
    "05": "May",
    "06": "Jun",
    "07": "Jul",
    "08": "Ago",
    "09": "Sep",
    "10": "Oct",
    "11": "Nov",
    "12": "Dic",
}

DEFAULT_WINDOW = 12


def month_label(month_key: str) -> str:
    """``"2026-02"`` -> ``"Feb 26"``."""
    year, _, month = month_key.partition("-")
    return f"{MONTH_ABBREVIATIONS.get(month, month)} {year[-2:]}"


def latest_by_month(entries: Sequence[PriceEntry]) -> dict[str, PriceEntry]:
    by_month: dict[str, PriceEntry] = {}
    for entry in entries:
        key = entry.date[:7]
        current = by_month.get(key)
        if current is None or entry.date > current.date:
            by_month[key] = entry
    return by_month


def reduce_monthly(
    record: HistoricalRecord,
    market: str,
    varieties: Sequence[str] = PRIMARY_VARIETIES,
    window: int = DEFAULT_WINDOW,
) -> MonthlySeries:
    by_month = latest_by_month(record.entries_for(market))
    if window < 1:
        raise ValueError(f"window must be positive, got {window}")
    month_keys = sorted(by_month)[-window:]
    prices: dict[str, list[Optional[float]]] = {}
    for variety in varieties:
        prices[variety] = [by_month[key].prices.get(variety) for key in month_keys]
    return MonthlySeries(
        market=market,
        month_keys=month_keys,
        months=[month_label(key) for key in month_keys],
        prices=prices,
    )
