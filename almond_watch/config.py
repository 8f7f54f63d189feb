from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .constants import DEFAULT_SOURCE_NAME


@dataclass(frozen=True)
class Settings:
    http_timeout_s: float
    jitter_min_s: float
    jitter_max_s: float
    http_concurrency: int
    respect_robots: bool
    dry_run: bool
    build_only: bool
    day_first: bool
    price_min: float
    price_max: float
    months_window: int
    source_name: str
    markets_path: Path
    fallback_path: Path
    record_path: Path
    run_log_path: Path
    series_path: Path
    data_js_path: Path
    log_path: Path
    log_level: str

    @staticmethod
    def defaults() -> "Settings":
        return Settings(
            http_timeout_s=15.0,
            jitter_min_s=0.5,
            jitter_max_s=1.5,
            http_concurrency=2,
            respect_robots=True,
            dry_run=False,
            build_only=False,
            day_first=True,
            price_min=1.0,
            price_max=15.0,
            months_window=12,
            source_name=DEFAULT_SOURCE_NAME,
            markets_path=Path("config/markets.json"),
            fallback_path=Path("config/fallback.json"),
            record_path=Path("data/precios.json"),
            run_log_path=Path("data/historico.json"),
            series_path=Path("data/series.json"),
            data_js_path=Path("js/data.js"),
            log_path=Path("logs/almond_watch.log"),
            log_level="INFO",
        )


def add_bool_flag(
    parser: argparse.ArgumentParser, name: str, help_text: str, default: Optional[bool]
) -> None:
    dest = name.replace("-", "_")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(f"--{name}", dest=dest, action="store_true", help=help_text)
    group.add_argument(
        f"--no-{name}", dest=dest, action="store_false", help=f"Disable {help_text}"
    )
    parser.set_defaults(**{dest: default})


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Almond market price scraper")
    parser.add_argument("--config", type=Path, help="Path to JSON config file")
    parser.add_argument("--http-timeout-s", type=float, help="HTTP timeout in seconds")
    parser.add_argument("--jitter-min-s", type=float, help="Minimum jitter sleep (s)")
    parser.add_argument("--jitter-max-s", type=float, help="Maximum jitter sleep (s)")
    parser.add_argument(
        "--http-concurrency", type=int, help="Max concurrent HTTP requests"
    )
    add_bool_flag(parser, "respect-robots", "robots.txt checks", None)
    add_bool_flag(parser, "dry-run", "dry run: scrape and report without saving", None)
    add_bool_flag(
        parser, "build-only", "build-only: regenerate assets from the saved record", None
    )
    add_bool_flag(parser, "day-first", "day-first reading of dd/mm/yyyy dates", None)
    parser.add_argument("--price-min", type=float, help="Lowest plausible price per kg")
    parser.add_argument("--price-max", type=float, help="Highest plausible price per kg")
    parser.add_argument(
        "--months-window", type=int, help="Number of monthly buckets to publish"
    )
    parser.add_argument("--source-name", type=str, help="Source name stored in the record")
    parser.add_argument("--markets-path", type=Path, help="Path to markets JSON")
    parser.add_argument(
        "--fallback-path", type=Path, help="Path to fallback monthly series JSON"
    )
    parser.add_argument("--record-path", type=Path, help="Path to the price record JSON")
    parser.add_argument("--run-log-path", type=Path, help="Path to the run log JSON")
    parser.add_argument("--series-path", type=Path, help="Monthly series output path")
    parser.add_argument("--data-js-path", type=Path, help="Dashboard data.js output path")
    parser.add_argument("--log-path", type=Path, help="Log file path")
    parser.add_argument("--log-level", type=str, help="Log level (e.g. INFO)")
    return parser.parse_args(argv)


def load_config_file(path: Optional[Path]) -> dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        print(f"Config file not found: {path}", file=sys.stderr)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"Invalid config JSON ({path}): {exc}", file=sys.stderr)
        return {}
    if not isinstance(data, dict):
        print(f"Config file must contain a JSON object: {path}", file=sys.stderr)
        return {}
    return data


def build_settings(args: argparse.Namespace, config: dict[str, Any]) -> Settings:
    defaults = Settings.defaults()

    def pick_value(field: str) -> Any:
        value = getattr(args, field, None)
        if value is not None:
            return value
        if field in config and config[field] is not None:
            return config[field]
        return getattr(defaults, field)

    def pick_path(field: str) -> Path:
        value = pick_value(field)
        return value if isinstance(value, Path) else Path(str(value))

    price_min = float(pick_value("price_min"))
    price_max = float(pick_value("price_max"))
    if price_min > price_max:
        print(
            f"price_min {price_min} is above price_max {price_max}; swapping.",
            file=sys.stderr,
        )
        price_min, price_max = price_max, price_min

    months_window = int(pick_value("months_window"))
    if months_window < 1:
        print(
            f"months_window must be positive, got {months_window}; using {defaults.months_window}.",
            file=sys.stderr,
        )
        months_window = defaults.months_window

    return Settings(
        http_timeout_s=float(pick_value("http_timeout_s")),
        jitter_min_s=float(pick_value("jitter_min_s")),
        jitter_max_s=float(pick_value("jitter_max_s")),
        http_concurrency=int(pick_value("http_concurrency")),
        respect_robots=bool(pick_value("respect_robots")),
        dry_run=bool(pick_value("dry_run")),
        build_only=bool(pick_value("build_only")),
        day_first=bool(pick_value("day_first")),
        price_min=price_min,
        price_max=price_max,
        months_window=months_window,
        source_name=str(pick_value("source_name")),
        markets_path=pick_path("markets_path"),
        fallback_path=pick_path("fallback_path"),
        record_path=pick_path("record_path"),
        run_log_path=pick_path("run_log_path"),
        series_path=pick_path("series_path"),
        data_js_path=pick_path("data_js_path"),
        log_path=pick_path("log_path"),
        log_level=str(pick_value("log_level")),
    )
