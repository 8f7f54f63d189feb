from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .models import HistoricalRecord, MonthlySeries


class RecordStoreError(Exception):
    """Persisted data could not be read or written."""


def write_text_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text``, never leaving a partial file."""
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise RecordStoreError(f"Failed to write {path}: {exc}") from exc


def write_json_atomic(path: Path, data: Any) -> None:
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


class RecordStore:
    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self._logger = logger

    def load(self) -> Optional[HistoricalRecord]:
        if not self.path.exists():
            if self._logger:
                self._logger.info("No record at %s; starting a new one.", self.path)
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RecordStoreError(f"Failed to read {self.path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RecordStoreError(f"Invalid record JSON ({self.path}): {exc}") from exc
        if not isinstance(data, dict):
            raise RecordStoreError(f"Record must contain a JSON object: {self.path}")
        try:
            record = HistoricalRecord.model_validate(data)
        except ValidationError as exc:
            raise RecordStoreError(f"Invalid record ({self.path}): {exc}") from exc
        if self._logger:
            self._logger.info(
                "Loaded record from %s (%d markets, last update %s).",
                self.path,
                len(record.markets),
                record.last_update or "unknown",
            )
        return record

    def save(self, record: HistoricalRecord) -> None:
        write_json_atomic(self.path, record.to_document())
        if self._logger:
            self._logger.info("Saved record to %s", self.path)


class RunLog:
    """Append-only log of scrape runs: ``{"entries": [{timestamp, count}]}``."""

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self._logger = logger

    def _load_entries(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            if self._logger:
                self._logger.warning("Ignoring unreadable run log %s: %s", self.path, exc)
            return []
        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            if entries is not None and self._logger:
                self._logger.warning("Ignoring malformed run log entries in %s", self.path)
            return []
        return [entry for entry in entries if isinstance(entry, dict)]

    def append(self, count: int, now: Optional[datetime] = None) -> None:
        entries = self._load_entries()
        stamp = (now or datetime.now(timezone.utc)).isoformat()
        entries.append({"timestamp": stamp, "count": int(count)})
        write_json_atomic(self.path, {"entries": entries})


def load_fallback_series(
    path: Optional[Path], logger: Optional[logging.Logger] = None
) -> dict[str, MonthlySeries]:
    """Read the default monthly series shown for markets without data."""
    if path is None or not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        if logger:
            logger.warning("Failed to read fallback series %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        if logger:
            logger.warning("Fallback series must be a JSON object: %s", path)
        return {}
    series: dict[str, MonthlySeries] = {}
    for market, payload in data.items():
        if not isinstance(payload, dict):
            continue
        try:
            series[str(market)] = MonthlySeries.from_dict(str(market), payload)
        except (TypeError, ValueError) as exc:
            if logger:
                logger.warning("Skipping fallback series for %s: %s", market, exc)
    return series
