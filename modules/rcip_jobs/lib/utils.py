from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_YES = frozenset({"1", "true", "yes", "on", "y", "t"})


def truthy(v: Any) -> bool:
    """Flag coercion for env strings and kwargs; numbers are truthy when non-zero."""
    if isinstance(v, str):
        return v.strip().lower() in _YES
    return bool(v)


def now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing 'Z'."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def normalize_name(name: str | None) -> str:
    """
    Registry key for a community name: whitespace collapsed, case-folded.
    "  thunder   BAY " -> "thunder bay"
    """
    return " ".join((name or "").split()).casefold()
