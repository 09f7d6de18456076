"""
Field parsers: raw scraped strings -> typed values.

All functions here are pure and total. Absence is always `None`, never a
sentinel such as 0 or the epoch, because 0 is a legitimate salary.
"""

from __future__ import annotations

import re
from datetime import datetime

from dateutil import parser as _dateparser

# 45,000 | 45000 | 23.50 | 50k | 50 K
_NUM_RE = re.compile(r"(?P<int>\d{1,3}(?:,\d{3})+|\d+)(?P<frac>\.\d+)?(?P<k>\s?[kK](?![A-Za-z]))?")

_DATE_LABEL_RE = re.compile(r"^\s*(?:date\s+)?(?:posted|published|listed)(?:\s+on)?\s*[:\-]?\s*", re.I)

_REMOTE_RE = re.compile(r"remote", re.I)


def clean_text(text: str | None) -> str:
    """Collapse whitespace runs to a single space and trim the ends."""
    return " ".join((text or "").split())


def parse_salary(text: str | None) -> float | None:
    """
    Extract a salary from free text.

      "$45,000 - $55,000"  -> 50000.0   (range midpoint)
      "$23.50/hour"        -> 23.5
      "50k-60k"            -> 55000.0
      "Competitive"        -> None
      "$0 (volunteer)"     -> 0.0

    More than two numbers: the first one wins.
    """
    values: list[float] = []
    for m in _NUM_RE.finditer(text or ""):
        value = float(m.group("int").replace(",", "") + (m.group("frac") or ""))
        if m.group("k"):
            value *= 1000
        values.append(value)

    if not values:
        return None
    if len(values) == 2:
        return (values[0] + values[1]) / 2
    return values[0]


def parse_date(text: str | None) -> datetime | None:
    """Parse a free-text posting date; None when empty or unparseable."""
    raw = _DATE_LABEL_RE.sub("", clean_text(text))
    if not raw:
        return None
    try:
        return _dateparser.parse(raw)
    except (ValueError, OverflowError, TypeError):
        return None


def parse_remote(text: str | None) -> bool:
    """True when the text advertises remote work."""
    return bool(_REMOTE_RE.search(text or ""))
