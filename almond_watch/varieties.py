from __future__ import annotations

import re
import unicodedata
from typing import Optional

PRIMARY_VARIETIES: tuple[str, ...] = ("comuna", "marcona", "largueta", "guara")
SECONDARY_VARIETIES: tuple[str, ...] = (
    "ferragnes",
    "ecologica",
    "belona",
    "lauranne",
    "soleta",
)

# Header fragment -> canonical variety. Matched against normalized header
# text in this order; the first fragment contained in the header wins.
VARIETY_SYNONYMS: tuple[tuple[str, str], ...] = (
    ("comuna", "comuna"),
    ("marcona", "marcona"),
    ("largueta", "largueta"),
    ("guara", "guara"),
    ("ferragnes", "ferragnes"),
    ("ferraganes", "ferragnes"),
    ("ecologica", "ecologica"),
    ("belona", "belona"),
    ("lauranne", "lauranne"),
    ("soleta", "soleta"),
)

DATE_HEADER_TOKENS: tuple[str, ...] = ("fecha", "date")
_DAY_MONTH_RE = re.compile(r"\d{2}/\d{2}")


def normalize_header(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split())


def is_date_header(normalized: str) -> bool:
    if any(token in normalized for token in DATE_HEADER_TOKENS):
        return True
    return _DAY_MONTH_RE.search(normalized) is not None


def classify_variety(normalized: str) -> Optional[str]:
    """Map a normalized header cell to a canonical variety id, if any."""
    if not normalized:
        return None
    for fragment, variety in VARIETY_SYNONYMS:
        if fragment in normalized:
            return variety
    return None
