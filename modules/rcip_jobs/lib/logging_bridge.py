from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from service import logging_utils as _sink

_activity_log = logging.getLogger("rcip_jobs.activity")
_error_log = logging.getLogger("rcip_jobs.error")


def _emit(write: Callable[[dict[str, Any]], None], fallback: logging.Logger, level: int, record: dict[str, Any]) -> None:
    try:
        write(record)
    except (OSError, TypeError, ValueError) as e:
        # JSONL sink unavailable (read-only mount, bad LOG_DIR): keep the record in stdlib logging
        fallback.log(level, "%s (jsonl sink failed: %s)", _sink.redact(record), e)


def activity(record: dict[str, Any]) -> None:
    """Structured activity record; stdlib INFO on `rcip_jobs.activity` if the file can't be written."""
    _emit(_sink.write_activity_log, _activity_log, logging.INFO, record)


def error(record: dict[str, Any]) -> None:
    """Structured error record; stdlib ERROR on `rcip_jobs.error` if the file can't be written."""
    _emit(_sink.write_error_log, _error_log, logging.ERROR, record)
