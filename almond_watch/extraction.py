from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .html_tables import HtmlTable, parse_tables
from .models import Observation
from .parsing import parse_date, parse_price
from .varieties import classify_variety, is_date_header, normalize_header


@dataclass(frozen=True)
class ColumnMap:
    date_index: int
    price_columns: dict[int, str] = field(default_factory=dict)


def build_column_map(headers: list[str]) -> Optional[ColumnMap]:
    """Classify header cells into a date column and variety price columns.

    Returns ``None`` when no header looks like a date or a known variety,
    which marks the table as unusable.
    """
    date_index: Optional[int] = None
    price_columns: dict[int, str] = {}
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        if is_date_header(normalized):
            if date_index is None:
                date_index = index
            continue
        variety = classify_variety(normalized)
        if variety:
            price_columns[index] = variety
    if date_index is None and not price_columns:
        return None
    if date_index is None:
        date_index = 0
        price_columns.pop(0, None)
    return ColumnMap(date_index=date_index, price_columns=price_columns)


def extract_table_rows(
    table: HtmlTable,
    market: str,
    columns: ColumnMap,
    header_index: int,
    day_first: bool = True,
    min_price: float = 1.0,
    max_price: float = 15.0,
) -> list[Observation]:
    observations: list[Observation] = []
    for index, row in enumerate(table.rows):
        if index == header_index or row.in_head:
            continue
        cells = row.cells
        if len(cells) < 2 or columns.date_index >= len(cells):
            continue
        row_date = parse_date(cells[columns.date_index], day_first=day_first)
        if not row_date:
            continue
        prices: dict[str, float] = {}
        for column, variety in sorted(columns.price_columns.items()):
            if column >= len(cells):
                continue
            price = parse_price(cells[column], min_price=min_price, max_price=max_price)
            if price is not None:
                prices[variety] = price
        if prices:
            observations.append(Observation(date=row_date, market=market, prices=prices))
    return observations


def extract_observations(
    html: str,
    market: str,
    day_first: bool = True,
    min_price: float = 1.0,
    max_price: float = 15.0,
    logger: Optional[logging.Logger] = None,
) -> list[Observation]:
    log = logger or logging.getLogger("almond_watch.extraction")
    if not html:
        return []
    tables = parse_tables(html)
    observations: list[Observation] = []
    usable = 0
    for table_number, table in enumerate(tables, start=1):
        header_index = table.header_index()
        if header_index is None:
            log.debug("Table %d for %s has no rows; skipping.", table_number, market)
            continue
        headers = table.rows[header_index].cells
        columns = build_column_map(headers)
        if columns is None:
            log.debug(
                "Table %d for %s has no date or variety headers %s; skipping.",
                table_number,
                market,
                headers,
            )
            continue
        usable += 1
        rows = extract_table_rows(
            table,
            market,
            columns,
            header_index,
            day_first=day_first,
            min_price=min_price,
            max_price=max_price,
        )
        log.debug(
            "Table %d for %s yielded %d observations.", table_number, market, len(rows)
        )
        observations.extend(rows)
    if tables and not observations:
        log.info(
            "No price rows recognized for %s (%d tables, %d with usable headers).",
            market,
            len(tables),
            usable,
        )
    return observations
