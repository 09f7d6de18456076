# service/scheduler.py
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from typing import Any

import pytz
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from modules.rcip_jobs import main as _rcip
from modules.rcip_jobs.lib.errors import RunAbortedError
from modules.rcip_jobs.lib.utils import now_iso

from .logging_utils import write_activity_log, write_error_log

LOG = logging.getLogger(__name__)

DEFAULT_CRON = "0 6 * * *"
JOB_ID = "rcip_jobs.run_all"


class SchedulerController:
    """Handle returned by start(): the CLI stops it on SIGINT/SIGTERM and waits on join()."""

    def __init__(self, scheduler: BackgroundScheduler) -> None:
        self._scheduler = scheduler
        self._done = threading.Event()

    def stop(self) -> None:
        # wait=False: an in-flight scrape finishes on its own; its writes are already committed per posting
        if self._scheduler.running:
            LOG.info("Stopping scrape scheduler")
            self._scheduler.shutdown(wait=False)
        self._done.set()

    def join(self, timeout: float | None = None) -> bool:
        """True once stop() has run, False if `timeout` elapsed first."""
        return self._done.wait(timeout)

    def get_job_ids(self) -> Iterable[str]:
        return [job.id for job in self._scheduler.get_jobs()]


def build_trigger(cron: str | None = None, tz_name: str | None = None) -> CronTrigger:
    """
    Crontab expression -> CronTrigger. Resolution: argument, $RCIP_SCRAPE_CRON, DEFAULT_CRON.
    Raises ValueError for malformed expressions.
    """
    expr = (cron or os.getenv("RCIP_SCRAPE_CRON") or DEFAULT_CRON).strip()
    return CronTrigger.from_crontab(expr, timezone=_resolve_timezone(tz_name))


def scheduled_scrape(run_kwargs: dict[str, Any], run_all: Callable[..., Any] | None = None) -> None:
    """
    Job body: one full scrape. Retry policy lives here, at the caller: a failed run
    is logged and simply picked up again on the next tick.
    """
    runner = run_all or _rcip.run_all
    started = now_iso()
    try:
        report = runner(**run_kwargs)
    except RunAbortedError as e:
        write_error_log({"ts": started, "where": "scheduler.scrape", "error": repr(e)})
        return
    write_activity_log({
        "ts": started,
        "event": "scheduled_scrape",
        "ok": sorted(report.succeeded),
        "failed": sorted(report.failed),
    })


def start(cron: str | None = None, run_kwargs: dict[str, Any] | None = None) -> SchedulerController:
    """
    Build an APScheduler instance with a single cron-triggered full scrape and start it.
    Returns a SchedulerController that exposes stop() and join().
    """
    trigger = build_trigger(cron)
    scheduler = BackgroundScheduler(
        timezone=trigger.timezone,
        job_defaults={"coalesce": True, "max_instances": 1},
        executors={"default": ThreadPoolExecutor(1)},
        jobstores={"default": MemoryJobStore()},
    )
    scheduler.add_job(
        scheduled_scrape,
        trigger=trigger,
        id=JOB_ID,
        kwargs={"run_kwargs": dict(run_kwargs or {})},
        replace_existing=True,
    )
    scheduler.start()
    LOG.info("Scheduler started; next scrape at %s", scheduler.get_job(JOB_ID).next_run_time)
    return SchedulerController(scheduler)


def _resolve_timezone(tz_name: str | None = None):
    """pytz zone for the cron trigger: argument, then $TZ, then UTC. Unknown names fall back to UTC."""
    name = tz_name or os.getenv("TZ") or "UTC"
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        LOG.warning("Unknown timezone %r; scheduling in UTC", name)
        return pytz.UTC
