from __future__ import annotations

import json
import logging
import math
import re
from datetime import date
from typing import Any, Optional

from .config import Settings
from .constants import MARKET_IDS
from .models import MarketSource

_DMY_RE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_CURRENCY_RE = re.compile(r"[\u20ac$\u00a3\s]|euros?\b|eur\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

DEFAULT_MARKETS: tuple[MarketSource, ...] = (
    MarketSource(
        market_id="albacete",
        url="https://synergynuts.upct.es/precio-almendra/lonja-albacete/",
        name="Albacete",
        full_name="Lonja de Albacete",
        region="Castilla-La Mancha",
    ),
    MarketSource(
        market_id="murcia",
        url="https://synergynuts.upct.es/precio-almendra/lonja-murcia/",
        name="Murcia",
        full_name="Lonja de Murcia",
        region="Región de Murcia",
    ),
    MarketSource(
        market_id="reus",
        url="https://synergynuts.upct.es/precio-almendra/lonja-reus/",
        name="Reus",
        full_name="Lonja de Reus",
        region="Cataluña (Tarragona)",
    ),
    MarketSource(
        market_id="cordoba",
        url="https://synergynuts.upct.es/precio-almendra/lonja-cordoba/",
        name="Córdoba",
        full_name="Lonja de Córdoba",
        region="Andalucía",
    ),
)


def _valid_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(text: Optional[str], day_first: bool = True) -> Optional[str]:
    """Parse a table cell into a canonical ``YYYY-MM-DD`` date.

    Slash, dash or dot separated dates are read day first by default
    (``05/02/2026`` is the 5th of February). Already canonical dates are
    returned as-is once they are known to be real calendar dates.
    """
    if not text:
        return None
    cleaned = text.strip()
    match = _ISO_RE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return cleaned if _valid_iso(year, month, day) else None
    match = _DMY_RE.search(cleaned)
    if not match:
        return None
    first, second, year = (int(part) for part in match.groups())
    if day_first:
        return _valid_iso(year, second, first)
    return _valid_iso(year, first, second)


def parse_price(
    text: Optional[str], min_price: float = 1.0, max_price: float = 15.0
) -> Optional[float]:
    """Parse a per-kilogram price cell such as ``"5,50 €"``.

    Values outside ``[min_price, max_price]`` are rejected so that stray
    numbers in a table (years, page numbers) never become prices.
    """
    if not text:
        return None
    cleaned = _CURRENCY_RE.sub("", text).replace(",", ".", 1)
    match = _NUMBER_RE.match(cleaned)
    if not match:
        return None
    try:
        value = float(match.group(0))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    if value < min_price or value > max_price:
        return None
    return value


def to_str_dict(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    result: dict[str, str] = {}
    for key, val in value.items():
        if key is None or val is None:
            continue
        result[str(key)] = str(val)
    return result


def load_markets(settings: Settings, logger: logging.Logger) -> list[MarketSource]:
    data: Any = []
    if settings.markets_path.exists():
        try:
            data = json.loads(settings.markets_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error("Invalid markets file %s: %s", settings.markets_path, exc)
    else:
        logger.warning("Markets file not found: %s", settings.markets_path)

    if not data or not isinstance(data, list):
        logger.info("Using built-in market list.")
        return list(DEFAULT_MARKETS)

    markets: list[MarketSource] = []
    seen: set[str] = set()
    for entry in data:
        if not isinstance(entry, dict):
            continue
        market_id = str(entry.get("id", "")).strip().lower()
        url = str(entry.get("url", "")).strip()
        if not market_id or not url:
            logger.warning("Skipping market entry without id/url: %s", entry)
            continue
        if market_id not in MARKET_IDS:
            logger.warning("Skipping unknown market id %s", market_id)
            continue
        if market_id in seen:
            logger.warning("Duplicate market id %s; keeping the first entry.", market_id)
            continue
        market = MarketSource(
            market_id=market_id,
            url=url,
            name=str(entry.get("name", "")).strip(),
            full_name=str(entry.get("full_name", "")).strip(),
            region=str(entry.get("region", "")).strip(),
            enabled=bool(entry.get("enabled", True)),
            headers=to_str_dict(entry.get("headers")),
        )
        seen.add(market_id)
        if not market.enabled:
            logger.info("Market disabled in config: %s", market.market_id)
            continue
        markets.append(market)
    return markets

