from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from .constants import DEFAULT_SOURCE_NAME
from .models import HistoricalRecord, MarketHistory, Observation, PriceEntry


def empty_record(source: str = DEFAULT_SOURCE_NAME, now: Optional[datetime] = None) -> HistoricalRecord:
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return HistoricalRecord(last_update=stamp, source=source, markets={})


def _canonical_order(observation: Observation) -> tuple:
    return (
        observation.market,
        observation.date,
        tuple(sorted(observation.prices.items())),
    )


def _fold_entries(entries: Iterable[PriceEntry]) -> dict[str, PriceEntry]:
    folded: dict[str, PriceEntry] = {}
    for entry in entries:
        current = folded.get(entry.date)
        if current is None:
            folded[entry.date] = PriceEntry(date=entry.date, prices=dict(entry.prices))
        else:
            current.prices = {**current.prices, **entry.prices}
    return folded


def merge_observations(
    existing: Optional[HistoricalRecord],
    batch: Iterable[Observation],
    now: Optional[datetime] = None,
    source: str = DEFAULT_SOURCE_NAME,
) -> HistoricalRecord:
    """Upsert a batch of observations into a historical record.

    Entries are keyed by (market, date). An incoming observation for a date
    that already exists overwrites the varieties it carries and keeps the
    others. Repeated dates already in the record are folded the same way,
    in file order. Every market ends up sorted newest first with unique
    dates. The input record is left untouched; a new record is returned.
    """
    stamp = now or datetime.now(timezone.utc)
    if existing is None:
        record = empty_record(source, stamp)
    else:
        record = existing.model_copy(deep=True)

    by_market = {
        market: _fold_entries(history.entries)
        for market, history in record.markets.items()
    }
    for observation in sorted(batch, key=_canonical_order):
        if not observation.prices:
            continue
        entries = by_market.setdefault(observation.market, {})
        current = entries.get(observation.date)
        if current is None:
            entries[observation.date] = PriceEntry(
                date=observation.date, prices=dict(observation.prices)
            )
        else:
            current.prices = {**current.prices, **observation.prices}

    for market, entries in by_market.items():
        history = record.markets.setdefault(market, MarketHistory())
        history.entries = sorted(
            entries.values(), key=lambda entry: entry.date, reverse=True
        )

    record.last_update = stamp.isoformat()
    return record
