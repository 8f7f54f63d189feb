from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from .models import (
    HistoricalRecord,
    MarketResult,
    MarketSource,
    MonthlySeries,
    Observation,
)
from .monthly import DEFAULT_WINDOW, reduce_monthly
from .store import write_json_atomic, write_text_atomic
from .varieties import PRIMARY_VARIETIES

SPANISH_MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def format_update_date(value: str) -> str:
    """ISO timestamp -> ``"20 de febrero de 2026"``; empty on bad input."""
    if not value:
        return ""
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = f"{cleaned[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return ""
    return f"{parsed.day} de {SPANISH_MONTHS[parsed.month - 1]} de {parsed.year}"


def build_market_series(
    record: Optional[HistoricalRecord],
    markets: Sequence[MarketSource],
    fallback: dict[str, MonthlySeries],
    logger: logging.Logger,
    window: int = DEFAULT_WINDOW,
) -> dict[str, tuple[MonthlySeries, str]]:
    """Reduce every market, substituting the fallback series where empty.

    Values are ``(series, origin)`` with origin ``"record"`` or
    ``"fallback"``. Markets with neither are left out.
    """
    result: dict[str, tuple[MonthlySeries, str]] = {}
    for market in markets:
        series = (
            reduce_monthly(record, market.market_id, window=window)
            if record is not None
            else MonthlySeries(market=market.market_id)
        )
        if not series.is_empty:
            result[market.market_id] = (series, "record")
            continue
        default = fallback.get(market.market_id)
        if default is not None and not default.is_empty:
            logger.info("No data for %s; using fallback series.", market.market_id)
            result[market.market_id] = (default, "fallback")
        else:
            logger.warning("No data and no fallback series for %s.", market.market_id)
    return result


def series_document(
    series: dict[str, tuple[MonthlySeries, str]],
    markets: Sequence[MarketSource],
    record: Optional[HistoricalRecord],
) -> dict[str, Any]:
    last_update = record.last_update if record is not None else ""
    payload: dict[str, Any] = {
        "lastUpdate": last_update,
        "lastUpdateLabel": format_update_date(last_update),
        "source": record.source if record is not None else "fallback",
        "markets": {},
    }
    for market in markets:
        entry = series.get(market.market_id)
        if entry is None:
            continue
        market_series, origin = entry
        payload["markets"][market.market_id] = {
            "name": market.display_name,
            "fullName": market.full_name,
            "region": market.region,
            "origin": origin,
            **market_series.to_dict(),
        }
    return payload


def _format_values(values: Sequence[Optional[float]]) -> str:
    return ", ".join("null" if value is None else f"{value:.2f}" for value in values)


def render_data_js(
    series: dict[str, tuple[MonthlySeries, str]], last_update_label: str
) -> str:
    lines = [
        "/* Generated by almond-watch from the price record. Do not edit. */",
        "",
        "const FALLBACK_DATA = {",
    ]
    market_ids = list(series)
    for market_index, market_id in enumerate(market_ids):
        market_series, _ = series[market_id]
        lines.append(f"    {market_id}: {{")
        lines.append(f"        months: {json.dumps(market_series.months, ensure_ascii=False)},")
        varieties = [v for v in PRIMARY_VARIETIES if v in market_series.prices] or list(
            market_series.prices
        )
        for variety_index, variety in enumerate(varieties):
            comma = "," if variety_index < len(varieties) - 1 else ""
            values = _format_values(market_series.prices[variety])
            lines.append(f"        {variety}: [{values}]{comma}")
        comma = "," if market_index < len(market_ids) - 1 else ""
        lines.append(f"    }}{comma}")
    lines.append("};")
    lines.append("")
    lines.append(f"const LAST_UPDATE = {json.dumps(last_update_label, ensure_ascii=False)};")
    lines.append("")
    return "\n".join(lines)


def write_assets(
    series: dict[str, tuple[MonthlySeries, str]],
    markets: Sequence[MarketSource],
    record: Optional[HistoricalRecord],
    series_path: Path,
    data_js_path: Path,
    logger: logging.Logger,
) -> None:
    document = series_document(series, markets, record)
    write_json_atomic(series_path, document)
    logger.info("Saved monthly series to %s", series_path)
    write_text_atomic(data_js_path, render_data_js(series, document["lastUpdateLabel"]))
    logger.info("Saved dashboard data to %s", data_js_path)


def log_build_summary(
    series: dict[str, tuple[MonthlySeries, str]], logger: logging.Logger
) -> None:
    for market_id, (market_series, origin) in series.items():
        last_month = market_series.months[-1] if market_series.months else "-"
        comuna = market_series.latest("comuna")
        logger.info(
            "%s: %s - Comuna: %s EUR/kg (%s)",
            market_id,
            last_month,
            f"{comuna:.2f}" if comuna is not None else "n/a",
            origin,
        )


def log_run_summary(results: Sequence[MarketResult], logger: logging.Logger) -> int:
    total = 0
    for result in results:
        count = len(result.observations)
        total += count
        if result.ok:
            logger.info("%s: %d observations", result.market, count)
        else:
            logger.warning("%s: failed (%s)", result.market, result.error)
    failed = sum(1 for result in results if not result.ok)
    logger.info(
        "Run summary: %d observations across %d markets (%d failed).",
        total,
        len(results),
        failed,
    )
    return total


def log_dry_run(
    observations: Sequence[Observation], logger: logging.Logger, limit: int = 5
) -> None:
    sample = [observation.to_dict() for observation in observations[:limit]]
    logger.info(
        "Dry run; nothing saved. Sample observations: %s",
        json.dumps(sample, indent=2, ensure_ascii=False),
    )
    logger.info("... and %d more", max(0, len(observations) - limit))
