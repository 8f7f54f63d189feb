"""Tests for the monthly reduction of the historical record."""

import pytest

from almond_watch.models import HistoricalRecord, MarketHistory, PriceEntry
from almond_watch.monthly import month_label, reduce_monthly


def _record(entries):
    return HistoricalRecord(markets={"albacete": MarketHistory(entries=entries)})


class TestMonthLabel:
    def test_labels(self):
        assert month_label("2026-02") == "Feb 26"
        assert month_label("2025-12") == "Dic 25"
        assert month_label("2025-01") == "Ene 25"


class TestReduceMonthly:
    """One bucket per month, latest date wins, bounded window."""

    def test_latest_in_month_wins(self):
        record = _record(
            [
                PriceEntry(date="2026-02-05", prices={"comuna": 5.50}),
                PriceEntry(date="2026-02-20", prices={"comuna": 5.55}),
            ]
        )
        series = reduce_monthly(record, "albacete")
        assert series.month_keys == ["2026-02"]
        assert series.prices["comuna"] == [5.55]

    def test_twelve_month_window(self):
        entries = []
        for offset in range(15):
            year = 2025 + (offset // 12)
            month = offset % 12 + 1
            entries.append(
                PriceEntry(date=f"{year}-{month:02d}-10", prices={"comuna": 5.0 + offset / 100})
            )
        series = reduce_monthly(_record(entries), "albacete")
        assert len(series.month_keys) == 12
        assert series.month_keys[0] == "2025-04"
        assert series.month_keys[-1] == "2026-03"
        assert series.months[0] == "Abr 25"
        assert series.prices["comuna"][-1] == pytest.approx(5.14)

    def test_non_positive_window_rejected(self):
        record = _record([PriceEntry(date="2026-02-10", prices={"comuna": 5.0})])
        with pytest.raises(ValueError):
            reduce_monthly(record, "albacete", window=0)

    def test_missing_variety_is_none(self):
        record = _record(
            [
                PriceEntry(date="2026-01-10", prices={"comuna": 5.15, "guara": 5.35}),
                PriceEntry(date="2026-02-10", prices={"comuna": 5.40}),
            ]
        )
        series = reduce_monthly(record, "albacete")
        assert series.prices["guara"] == [5.35, None]
        assert series.prices["marcona"] == [None, None]
        assert set(series.prices) == {"comuna", "marcona", "largueta", "guara"}

    def test_secondary_varieties_not_emitted(self):
        record = _record([PriceEntry(date="2026-01-10", prices={"belona": 5.0, "comuna": 5.1})])
        series = reduce_monthly(record, "albacete")
        assert "belona" not in series.prices

    def test_unknown_market_is_empty(self):
        series = reduce_monthly(_record([]), "murcia")
        assert series.is_empty
        assert series.to_dict() == {
            "months": [],
            "comuna": [],
            "marcona": [],
            "largueta": [],
            "guara": [],
        }

    def test_to_dict_shape(self):
        record = _record([PriceEntry(date="2026-02-20", prices={"comuna": 5.55})])
        payload = reduce_monthly(record, "albacete").to_dict()
        assert payload["months"] == ["Feb 26"]
        assert payload["comuna"] == [5.55]
        assert payload["guara"] == [None]

    def test_custom_window(self):
        record = _record(
            [
                PriceEntry(date="2026-01-10", prices={"comuna": 5.15}),
                PriceEntry(date="2026-02-10", prices={"comuna": 5.40}),
            ]
        )
        series = reduce_monthly(record, "albacete", window=1)
        assert series.month_keys == ["2026-02"]
