"""Shared fixtures for almond_watch tests."""

import dataclasses
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from almond_watch.config import Settings
from almond_watch.models import HistoricalRecord, MarketHistory, Observation, PriceEntry

FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

ALBACETE_HTML = """
<html><body>
<h1>Precio almendra - Lonja de Albacete</h1>
<table class="precios">
  <tr><th>Fecha</th><th>Comuna</th><th>Marcona</th></tr>
  <tr><td>01/03/2026</td><td>5,20</td><td>7,00</td></tr>
  <tr><td>05/03/2026</td><td>5,30</td><td>—</td></tr>
</table>
</body></html>
"""

MURCIA_HTML = """
<html><body>
<table>
  <thead>
    <tr><th>Fecha sesión</th><th>Comuna €/kg</th><th>Guara</th><th>Largueta</th></tr>
  </thead>
  <tbody>
    <tr><td>12/02/2026</td><td>5,45 €</td><td>5,65 €</td><td>6,00 €</td></tr>
    <tr><td>19/02/2026</td><td>5,50 €</td><td>5,70 €</td><td>6,05 €</td></tr>
  </tbody>
</table>
</body></html>
"""


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def albacete_html() -> str:
    return ALBACETE_HTML


@pytest.fixture
def murcia_html() -> str:
    return MURCIA_HTML


@pytest.fixture
def sample_record() -> HistoricalRecord:
    """Record with two Albacete entries and one Reus entry."""
    return HistoricalRecord(
        last_update="2026-02-01T00:00:00+00:00",
        source="SynergyNuts UPCT",
        markets={
            "albacete": MarketHistory(
                entries=[
                    PriceEntry(date="2026-02-20", prices={"comuna": 5.55}),
                    PriceEntry(
                        date="2026-02-05", prices={"comuna": 5.00, "marcona": 7.00}
                    ),
                ]
            ),
            "reus": MarketHistory(
                entries=[PriceEntry(date="2026-01-15", prices={"guara": 4.95})]
            ),
        },
    )


@pytest.fixture
def sample_batch() -> list[Observation]:
    return [
        Observation(date="2026-02-05", market="albacete", prices={"comuna": 5.10}),
        Observation(date="2026-03-01", market="albacete", prices={"comuna": 5.20}),
        Observation(date="2026-03-01", market="murcia", prices={"guara": 5.70}),
    ]


@pytest.fixture
def markets_file(tmp_path: Path) -> Path:
    path = tmp_path / "markets.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "albacete",
                    "url": "https://lonjas.example/albacete/",
                    "name": "Albacete",
                },
                {
                    "id": "murcia",
                    "url": "https://lonjas.example/murcia/",
                    "name": "Murcia",
                },
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def settings(tmp_path: Path, markets_file: Path) -> Settings:
    """Settings writing every artifact under ``tmp_path`` with no jitter."""
    return dataclasses.replace(
        Settings.defaults(),
        jitter_min_s=0.0,
        jitter_max_s=0.0,
        markets_path=markets_file,
        fallback_path=tmp_path / "fallback.json",
        record_path=tmp_path / "data" / "precios.json",
        run_log_path=tmp_path / "data" / "historico.json",
        series_path=tmp_path / "data" / "series.json",
        data_js_path=tmp_path / "js" / "data.js",
        log_path=tmp_path / "logs" / "almond_watch.log",
    )
