"""
Parsing helpers shared by the source crawlers.
"""

import hashlib
import re
from datetime import date, datetime
from typing import Any

from bs4 import Tag

DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%d %B %Y",
)

_AMOUNT_RANGE = re.compile(r"\$?([\d,]+)\s*[-–—]\s*\$?([\d,]+)")
_AMOUNT_SINGLE = re.compile(r"\$?([\d,]*\d)")
_WHITESPACE = re.compile(r"\s+")

FULL_TUITION_RANGE = (10000.0, 50000.0)


def short_hash(*parts: str) -> str:
    """Stable short identifier derived from the given strings."""
    digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
    return digest[:12]


def clean_text(value: Any) -> str:
    """
    Collapse whitespace runs and strip.

    Upstream payloads are loosely typed: lists are joined with spaces and
    other non-string values are converted with ``str``.
    """
    if value is None or value == "":
        return ""
    if isinstance(value, (list, tuple)):
        value = " ".join(str(item) for item in value if item is not None)
    elif not isinstance(value, str):
        value = str(value)
    return _WHITESPACE.sub(" ", value).strip()


def select_text(element: Tag, selector: str) -> str:
    """Cleaned text of the first element matching a comma-separated selector list."""
    found = element.select_one(selector)
    return clean_text(found.get_text(" ")) if found else ""


def parse_amount(value: Any) -> float | None:
    """
    Parse a single monetary value such as ``"$25,000"`` or ``25000``.

    Returns None for empty, zero or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) or None
    cleaned = re.sub(r"[$,\s]", "", str(value))
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed or None


def parse_amount_range(text: str | None) -> tuple[float, float] | None:
    """
    Parse an award amount that may be a range.

    Examples:
        "$1,000 - $5,000" -> (1000.0, 5000.0)
        "$2,500"          -> (2500.0, 2500.0)
        "Full tuition"    -> (10000.0, 50000.0)
    """
    if not text:
        return None

    range_match = _AMOUNT_RANGE.search(text)
    if range_match:
        low = float(range_match.group(1).replace(",", ""))
        high = float(range_match.group(2).replace(",", ""))
        return low, high

    single_match = _AMOUNT_SINGLE.search(text)
    if single_match:
        amount = float(single_match.group(1).replace(",", ""))
        return amount, amount

    if "full tuition" in text.lower():
        return FULL_TUITION_RANGE

    return None


def parse_date(value: Any) -> date | None:
    """Parse a deadline in any of the common listing formats; None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = clean_text(str(value))
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None
