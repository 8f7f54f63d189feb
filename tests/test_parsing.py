"""Tests for field parsers and market loading."""

import dataclasses
import json
import logging

import pytest

from almond_watch.parsing import DEFAULT_MARKETS, load_markets, parse_date, parse_price


class TestParseDate:
    """Date cells to canonical YYYY-MM-DD."""

    def test_day_first_slash(self):
        assert parse_date("05/02/2026") == "2026-02-05"

    def test_canonical_passthrough(self):
        assert parse_date("2026-02-05") == "2026-02-05"

    def test_garbage_is_none(self):
        assert parse_date("not-a-date") is None

    @pytest.mark.parametrize("text", ["5-2-2026", "5.2.2026", " 05/02/2026 "])
    def test_other_separators_and_padding(self, text):
        assert parse_date(text) == "2026-02-05"

    def test_date_embedded_in_text(self):
        assert parse_date("Sesión 12/02/2026") == "2026-02-12"

    def test_invalid_calendar_date(self):
        assert parse_date("31/02/2026") is None
        assert parse_date("2026-13-01") is None

    def test_month_first_when_configured(self):
        assert parse_date("02/05/2026", day_first=False) == "2026-02-05"

    def test_empty(self):
        assert parse_date("") is None
        assert parse_date(None) is None


class TestParsePrice:
    """Locale formatted price cells with a plausibility filter."""

    def test_comma_decimal_with_currency(self):
        assert parse_price("5,50 €") == 5.5

    def test_out_of_range(self):
        assert parse_price("150") is None
        assert parse_price("0,50") is None

    def test_not_a_number(self):
        assert parse_price("abc") is None
        assert parse_price("—") is None
        assert parse_price("") is None

    def test_bounds_are_inclusive(self):
        assert parse_price("1") == 1.0
        assert parse_price("15,00") == 15.0

    def test_trailing_unit(self):
        assert parse_price("6,05€/kg") == 6.05

    def test_year_is_rejected(self):
        assert parse_price("2026") is None

    def test_custom_bounds(self):
        assert parse_price("20,00", min_price=10, max_price=30) == 20.0
        assert parse_price("5,00", min_price=10, max_price=30) is None

    def test_non_finite(self):
        assert parse_price("inf") is None
        assert parse_price("nan") is None


class TestLoadMarkets:
    """Market list loading from JSON."""

    def test_missing_file_uses_defaults(self, settings, tmp_path):
        settings = dataclasses.replace(settings, markets_path=tmp_path / "missing.json")
        markets = load_markets(settings, logging.getLogger("test"))
        assert [m.market_id for m in markets] == [m.market_id for m in DEFAULT_MARKETS]

    def test_loads_entries(self, settings):
        markets = load_markets(settings, logging.getLogger("test"))
        assert [m.market_id for m in markets] == ["albacete", "murcia"]
        assert markets[0].url == "https://lonjas.example/albacete/"

    def test_skips_invalid_disabled_and_unknown(self, settings):
        settings.markets_path.write_text(
            json.dumps(
                [
                    {"id": "albacete", "url": "https://a.example/"},
                    {"id": "reus", "url": "https://r.example/", "enabled": False},
                    {"id": "valencia", "url": "https://v.example/"},
                    {"id": "murcia"},
                    {"id": "albacete", "url": "https://dup.example/"},
                    "nonsense",
                ]
            ),
            encoding="utf-8",
        )
        markets = load_markets(settings, logging.getLogger("test"))
        assert [(m.market_id, m.url) for m in markets] == [
            ("albacete", "https://a.example/")
        ]

    def test_invalid_json_uses_defaults(self, settings):
        settings.markets_path.write_text("{not json", encoding="utf-8")
        markets = load_markets(settings, logging.getLogger("test"))
        assert len(markets) == len(DEFAULT_MARKETS)
