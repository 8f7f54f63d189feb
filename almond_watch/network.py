from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional
from urllib.parse import urljoin, urlsplit
from urllib.robotparser import RobotFileParser

import httpx

from .config import Settings
from .constants import ACCEPT_HEADERS, USER_AGENT
from .models import MarketSource


async def jitter_sleep(min_s: float, max_s: float) -> None:
    if max_s <= 0:
        return
    low = min(min_s, max_s)
    high = max(min_s, max_s)
    await asyncio.sleep(random.uniform(low, high))


def merge_headers(
    base_headers: dict[str, str],
    extra_headers: dict[str, str],
    logger: logging.Logger,
    context: str,
) -> dict[str, str]:
    headers = dict(base_headers)
    for key, value in extra_headers.items():
        if key.lower() == "user-agent":
            logger.warning("Ignoring custom User-Agent for %s", context)
            continue
        headers[key] = value
    return headers


async def fetch_once(
    client: httpx.AsyncClient,
    url: str,
    settings: Settings,
    logger: logging.Logger,
    headers: Optional[dict[str, str]] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> Optional[httpx.Response]:
    """Single GET attempt; ``None`` on transport errors, never retried."""

    async def _run() -> Optional[httpx.Response]:
        await jitter_sleep(settings.jitter_min_s, settings.jitter_max_s)
        logger.info("HTTP GET %s", url)
        try:
            response = await client.get(url, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("HTTP request failed for %s: %s", url, exc)
            return None
        logger.info("HTTP %s %s", response.status_code, url)
        return response

    if semaphore is None:
        return await _run()
    async with semaphore:
        return await _run()


async def robots_allows(
    client: httpx.AsyncClient,
    url: str,
    settings: Settings,
    cache: dict[str, RobotFileParser],
    logger: logging.Logger,
) -> bool:
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    cache_key = f"{parsed.scheme}://{parsed.netloc}"
    if cache_key in cache:
        return cache[cache_key].can_fetch(USER_AGENT, url)

    robots_url = urljoin(cache_key, "/robots.txt")
    response = await fetch_once(client, robots_url, settings, logger)
    parser = RobotFileParser()
    if response is None:
        logger.warning("Robots.txt fetch failed for %s; proceeding cautiously.", cache_key)
        parser.parse([])
    elif response.status_code >= 400:
        logger.info("Robots.txt not found for %s; proceeding with allowed default.", cache_key)
        parser.parse([])
    else:
        parser.parse(response.text.splitlines())
    cache[cache_key] = parser
    return parser.can_fetch(USER_AGENT, url)


async def fetch_market_page(
    client: httpx.AsyncClient,
    market: MarketSource,
    settings: Settings,
    robots_cache: dict[str, RobotFileParser],
    logger: logging.Logger,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> Optional[str]:
    """Fetch a market's price page as text, or ``None`` on any failure."""
    if settings.respect_robots:
        allowed = await robots_allows(client, market.url, settings, robots_cache, logger)
        if not allowed:
            logger.warning(
                "Robots.txt disallows %s for %s; skipping.", market.url, market.market_id
            )
            return None

    headers = merge_headers(
        {"User-Agent": USER_AGENT, **ACCEPT_HEADERS},
        market.headers,
        logger,
        f"{market.market_id} page",
    )
    response = await fetch_once(
        client, market.url, settings, logger, headers=headers, semaphore=semaphore
    )
    if response is None:
        logger.warning("Request failed for %s", market.url)
        return None
    if response.status_code >= 400:
        logger.warning("Non-200 response %s for %s", response.status_code, market.url)
        return None
    return response.text
