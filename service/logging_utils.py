# service/logging_utils.py
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import socket
from typing import Any

# Environment knobs, looked up per write so a run can be redirected mid-process:
#   LOG_DIR                 where the daily JSONL files live
#   ACTIVITY_LOG_PREFIX     file prefix for run/site activity
#   ERROR_LOG_PREFIX        file prefix for failures
#   ACTIVITY_LOG_MAX_BYTES  roll the file aside once it reaches this size (0 = never)

_DEFAULT_DIR = "/app/local/logs"
_MASK = "***REDACTED***"

# Substrings of record keys whose values never reach disk.
SENSITIVE_KEY_PARTS = frozenset({
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "cookie",
})

_META = {"host": socket.gethostname(), "pid": os.getpid()}


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Append one structured activity record to today's activity file.

    The caller's dict is left untouched. I/O errors propagate so the caller
    can fall back to stdlib logging.
    """
    _append(_activity_path(), record)


def write_error_log(record: dict[str, Any]) -> None:
    """Append one structured failure record to today's error file."""
    _append(_log_path_for_today(os.getenv("ERROR_LOG_PREFIX", "error")), record)


def get_activity_log_path() -> str:
    return _activity_path()


def redact(record: dict[str, Any], keys: set[str] | None = None) -> dict[str, Any]:
    """Deep copy of `record` with secret-looking values masked."""
    return _scrub(record, frozenset(k.lower() for k in keys) if keys else SENSITIVE_KEY_PARTS)


def ensure_logging() -> None:
    """basicConfig at LOG_LEVEL unless the host process already configured logging."""
    if logging.getLogger().handlers:
        return
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# ---- internals ---------------------------------------------------------------


def _activity_path() -> str:
    return _log_path_for_today(os.getenv("ACTIVITY_LOG_PREFIX", "activity"))


def _log_path_for_today(prefix: str) -> str:
    stamp = _dt.date.today().isoformat()
    return os.path.join(os.getenv("LOG_DIR", _DEFAULT_DIR), f"{prefix}-{stamp}.jsonl")


def _size_limit() -> int:
    raw = os.getenv("ACTIVITY_LOG_MAX_BYTES", "")
    return int(raw) if raw.strip().lstrip("-").isdigit() else 0


def _roll_if_full(path: str) -> None:
    limit = _size_limit()
    if limit <= 0 or not os.path.exists(path) or os.path.getsize(path) < limit:
        return
    suffix = _dt.datetime.now().strftime("%Y%m%d-%H%M%S")
    try:
        os.replace(path, f"{path}.{suffix}")
    except FileNotFoundError:
        # another writer rolled it first
        pass


def _scrub(value: Any, parts: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {
            k: _MASK if isinstance(k, str) and any(p in k.lower() for p in parts) else _scrub(v, parts)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v, parts) for v in value]
    if isinstance(value, str) and "bearer " in value.lower():
        return value.split(" ", 1)[0] + " " + _MASK
    return value


def _append(path: str, record: dict[str, Any]) -> None:
    payload = _scrub(record, SENSITIVE_KEY_PARTS)
    payload["_meta"] = dict(_META)
    line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n"

    os.makedirs(os.path.dirname(path), exist_ok=True)
    _roll_if_full(path)
    # O_APPEND keeps concurrent single-line writes from interleaving
    fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
    try:
        os.write(fd, line.encode("utf-8"))
    finally:
        os.close(fd)
