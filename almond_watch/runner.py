from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence
from urllib.robotparser import RobotFileParser

import httpx

from .config import Settings
from .constants import ACCEPT_HEADERS, EXIT_FAILURE, EXIT_NO_DATA, EXIT_OK, USER_AGENT
from .extraction import extract_observations
from .logging_utils import setup_logging
from .merge import merge_observations
from .models import HistoricalRecord, MarketResult, MarketSource, Observation
from .network import fetch_market_page
from .parsing import load_markets
from .reporting import (
    build_market_series,
    log_build_summary,
    log_dry_run,
    log_run_summary,
    write_assets,
)
from .store import RecordStore, RecordStoreError, RunLog, load_fallback_series


async def process_market(
    market: MarketSource,
    http_client: httpx.AsyncClient,
    settings: Settings,
    robots_cache: dict[str, RobotFileParser],
    http_semaphore: asyncio.Semaphore,
    logger: logging.Logger,
) -> MarketResult:
    try:
        return await _process_market_inner(
            market,
            http_client,
            settings,
            robots_cache,
            http_semaphore,
            logger,
        )
    except Exception as exc:
        logger.exception("Market processing failed for %s: %s", market.market_id, exc)
        return MarketResult(market=market.market_id, error=str(exc) or type(exc).__name__)


async def _process_market_inner(
    market: MarketSource,
    http_client: httpx.AsyncClient,
    settings: Settings,
    robots_cache: dict[str, RobotFileParser],
    http_semaphore: asyncio.Semaphore,
    logger: logging.Logger,
) -> MarketResult:
    html = await fetch_market_page(
        http_client,
        market,
        settings,
        robots_cache,
        logger,
        semaphore=http_semaphore,
    )
    if html is None:
        return MarketResult(market=market.market_id, error="fetch failed")
    observations = extract_observations(
        html,
        market.market_id,
        day_first=settings.day_first,
        min_price=settings.price_min,
        max_price=settings.price_max,
        logger=logger,
    )
    logger.info("%s: %d records found", market.market_id, len(observations))
    return MarketResult(market=market.market_id, observations=tuple(observations))


async def scrape_markets(
    markets: Sequence[MarketSource],
    settings: Settings,
    logger: logging.Logger,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[MarketResult]:
    robots_cache: dict[str, RobotFileParser] = {}
    timeout = httpx.Timeout(settings.http_timeout_s)
    http_semaphore = asyncio.Semaphore(max(1, settings.http_concurrency))
    async with httpx.AsyncClient(
        http2=True,
        headers={"User-Agent": USER_AGENT, **ACCEPT_HEADERS},
        follow_redirects=True,
        timeout=timeout,
        transport=transport,
    ) as http_client:
        tasks = [
            process_market(
                market,
                http_client,
                settings,
                robots_cache,
                http_semaphore,
                logger,
            )
            for market in markets
        ]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)

    results: list[MarketResult] = []
    for market, result in zip(markets, gathered):
        if isinstance(result, BaseException):
            logger.error("Market task failed for %s: %s", market.market_id, result)
            results.append(MarketResult(market=market.market_id, error=str(result)))
            continue
        results.append(result)
    return results


def build_assets(
    record: Optional[HistoricalRecord],
    markets: Sequence[MarketSource],
    settings: Settings,
    logger: logging.Logger,
) -> bool:
    fallback = load_fallback_series(settings.fallback_path, logger)
    series = build_market_series(
        record, markets, fallback, logger, window=settings.months_window
    )
    if not series:
        logger.warning("No monthly series to publish; assets left unchanged.")
        return False
    write_assets(
        series,
        markets,
        record,
        settings.series_path,
        settings.data_js_path,
        logger,
    )
    log_build_summary(series, logger)
    return True


def log_no_data(logger: logging.Logger, record_path: Path) -> None:
    logger.warning(
        "No data obtained. Possible causes: the pages changed their structure, "
        "a network error or timeout, or the source has no new prices."
    )
    logger.warning(
        "Enter prices manually into %s if the source stays unavailable.", record_path
    )


async def run(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> int:
    setup_logging(settings.log_level, settings.log_path)
    logger = logging.getLogger("almond_watch")
    logger.info(
        "Mode: %s",
        "build-only" if settings.build_only else "dry run" if settings.dry_run else "scrape",
    )

    markets = load_markets(settings, logger)
    if not markets:
        logger.error("No markets configured; exiting.")
        return EXIT_FAILURE

    store = RecordStore(settings.record_path, logger)
    try:
        existing = store.load()
    except RecordStoreError as exc:
        logger.error("Cannot read price record: %s", exc)
        return EXIT_FAILURE

    if settings.build_only:
        try:
            build_assets(existing, markets, settings, logger)
        except RecordStoreError as exc:
            logger.error("Cannot write assets: %s", exc)
            return EXIT_FAILURE
        logger.info("Build complete.")
        return EXIT_OK

    results = await scrape_markets(markets, settings, logger, transport=transport)
    total = log_run_summary(results, logger)
    observations: list[Observation] = [
        observation for result in results for observation in result.observations
    ]
    if total == 0:
        log_no_data(logger, settings.record_path)
        return EXIT_NO_DATA

    if settings.dry_run:
        log_dry_run(observations, logger)
        return EXIT_OK

    merged = merge_observations(existing, observations, source=settings.source_name)
    try:
        store.save(merged)
        RunLog(settings.run_log_path, logger).append(total)
        build_assets(merged, markets, settings, logger)
    except RecordStoreError as exc:
        logger.error("Persistence failed: %s", exc)
        return EXIT_FAILURE

    logger.info("Run complete.")
    return EXIT_OK
