"""
Orchestrator for RCIP job scraping.

Features:
  - Parallel execution by site, bounded by `max_workers`
  - Per-posting classification tasks on a second bounded pool, joined before writing
  - Per-site failure isolation: every failure lands in the RunReport, never in siblings
  - Dependency injection for testability (extractors, HTTP client, classifier, writer)
  - Structured activity/error records via `logging_bridge`
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from enum import Enum

from . import logging_bridge
from .classifier import Classifier
from .errors import (
    CancelledSiteError,
    ClassificationError,
    InternalSiteError,
    ParseError,
    RunAbortedError,
    SiteError,
)
from .extractors.base import SiteExtractor
from .extractors.registry import resolve
from .http_client import HttpClient
from .models import CandidatePosting, RunReport, SiteOutcome
from .reconcile import ReconciliationWriter
from .utils import now_iso

log = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class Orchestrator:
    """
    Runs site extractors end to end: fetch -> extract -> classify -> write.

    One instance can be reused for several runs, but never for two at once.
    """

    def __init__(
        self,
        extractors: Sequence[SiteExtractor],
        http_client: HttpClient,
        classifier: Classifier,
        writer: ReconciliationWriter,
        *,
        max_workers: int = 4,
        classify_workers: int = 4,
        classify_timeout: float = 20.0,
        page_delay_seconds: float = 0.0,
        skip_network: bool = False,
    ) -> None:
        self._extractors = list(extractors)
        self._http = http_client
        self._classifier = classifier
        self._writer = writer
        self._max_workers = max(1, int(max_workers))
        self._classify_workers = max(1, int(classify_workers))
        self._classify_timeout = float(classify_timeout)
        self._page_delay = float(page_delay_seconds)
        self._skip_network = skip_network

        self._state = RunState.IDLE
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()

    @property
    def state(self) -> RunState:
        return self._state

    def cancel(self) -> None:
        """
        Abort the current run: sites that have not started are reported as cancelled,
        in-flight sites stop before their next posting write. Committed writes stay.
        """
        self._cancel.set()

    # =========================================================================
    # TRIGGERS
    # =========================================================================
    def run_all(self) -> RunReport:
        """
        Scrape every known site. Returns a report with one entry per site.

        Raises RunAbortedError when the store is unreachable at preflight, or
        when every write of the run failed (the store went away mid-run).
        """
        self._begin()
        start_ns = time.perf_counter_ns()
        try:
            self._preflight()
            report = RunReport(started_utc=now_iso())

            site_workers = min(len(self._extractors) or 1, self._max_workers)
            with ThreadPoolExecutor(max_workers=self._classify_workers, thread_name_prefix="classify") as classify_pool:
                with ThreadPoolExecutor(max_workers=site_workers, thread_name_prefix="site") as site_pool:
                    futures = {
                        site_pool.submit(self._run_site, ex, classify_pool): ex.identify().community
                        for ex in self._extractors
                    }
                    for fut in as_completed(futures):
                        community = futures[fut]
                        try:
                            report.outcomes[community] = fut.result()
                        except Exception as e:
                            report.outcomes[community] = SiteOutcome(
                                community=community, error=InternalSiteError(repr(e), community=community)
                            )

            self._check_store_survived(report.outcomes.values())
            report.finished_utc = now_iso()
            self._log_summary(report, start_ns)
            self._end(RunState.COMPLETED)
            return report
        except BaseException:
            self._end(RunState.IDLE)
            raise

    def run_one(self, community: str) -> list[CandidatePosting]:
        """
        Scrape a single community (case-insensitive, whitespace-normalized name).

        Raises:
            UnknownTargetError: no extractor for that community (before anything runs).
            SiteError: the site failed (fetch/parse); there are no siblings to protect.
            RunAbortedError: the store is unreachable, or rejected every posting.

        Postings whose write failed are still returned and logged at warning level.
        """
        extractor = resolve(community, self._extractors)
        self._begin()
        try:
            self._preflight()
            with ThreadPoolExecutor(max_workers=self._classify_workers, thread_name_prefix="classify") as pool:
                outcome = self._run_site(extractor, pool)
            self._check_store_survived([outcome])
            self._end(RunState.COMPLETED)
        except BaseException:
            self._end(RunState.IDLE)
            raise

        if outcome.error is not None:
            raise outcome.error
        for failure in outcome.write_failures:
            log.warning("%s: not stored: %s (%s)", outcome.community, failure.source_url, failure.error)
        return outcome.postings

    # =========================================================================
    # ONE SITE
    # =========================================================================
    def _run_site(self, extractor: SiteExtractor, classify_pool: ThreadPoolExecutor) -> SiteOutcome:
        """Full pipeline for one site. Never raises: failures become outcome.error."""
        t0 = time.perf_counter_ns()
        community = extractor.identify().community
        outcome = SiteOutcome(community=community)

        if self._cancel.is_set():
            outcome.error = CancelledSiteError("run cancelled before this site started", community=community)
            return outcome

        try:
            pages = [] if self._skip_network else extractor.fetch(self._http, delay_seconds=self._page_delay)
            postings = self._extract_pages(extractor, pages)
            outcome.postings, outcome.degraded = self._classify_batch(postings, classify_pool, community)
            outcome.write_failures = self._writer.reconcile_batch(
                outcome.postings, community, should_stop=self._cancel.is_set
            )
        except SiteError as e:
            e.community = e.community or community
            outcome.error = e
        except Exception as e:
            log.exception("%s: unexpected failure", community)
            outcome.error = InternalSiteError(repr(e), community=community)

        outcome.duration_us = int((time.perf_counter_ns() - t0) // 1000)
        self._log_site(outcome)
        return outcome

    def _extract_pages(self, extractor: SiteExtractor, pages: list[str]) -> list[CandidatePosting]:
        """
        Collect postings from every fetched page. A page whose cards are all unusable
        is skipped; the site only fails when that leaves nothing at all.
        """
        postings: list[CandidatePosting] = []
        parse_errors: list[ParseError] = []
        for page in pages:
            try:
                postings.extend(extractor.extract(page))
            except ParseError as e:
                parse_errors.append(e)
        if parse_errors and not postings:
            raise parse_errors[0]
        return postings

    def _classify_batch(
        self,
        postings: list[CandidatePosting],
        pool: ThreadPoolExecutor,
        community: str,
    ) -> tuple[list[CandidatePosting], int]:
        """
        Submit one classification task per posting and join them.

        The pool is shared by every site, so a task's `classify_timeout` starts
        when a worker picks it up, not when it is queued. A task that errors, or
        runs past its own deadline, leaves that posting unclassified.

        Returns:
            (postings in input order, number left unclassified)
        """
        if not postings:
            return [], 0

        started: list[float | None] = [None] * len(postings)

        def _task(i: int, posting: CandidatePosting):
            started[i] = time.monotonic()
            return self._classifier.classify(posting.title, posting.description)

        futures: list[Future] = [pool.submit(_task, i, p) for i, p in enumerate(postings)]
        self._join_classifications(futures, started)

        out: list[CandidatePosting] = []
        degraded = 0
        for posting, fut in zip(postings, futures):
            if not fut.done():
                fut.cancel()
                reason = "timed out"
            else:
                try:
                    c = fut.result()
                    out.append(posting.with_classification(c.occupation_code, c.skill_tier))
                    continue
                except ClassificationError as e:
                    reason = str(e)
                except Exception as e:
                    reason = repr(e)
            log.debug("%s: %r left unclassified (%s)", community, posting.title, reason)
            degraded += 1
            out.append(posting.with_classification(None, None))
        return out, degraded

    def _join_classifications(self, futures: list[Future], started: list[float | None]) -> None:
        """Wait until every task has finished or overrun its own deadline; queued tasks keep waiting."""
        limit = self._classify_timeout
        pending = set(range(len(futures)))
        while True:
            now = time.monotonic()
            pending = {
                i for i in pending
                if not futures[i].done() and (started[i] is None or now - started[i] < limit)
            }
            if not pending:
                return
            deadlines = [started[i] + limit for i in pending if started[i] is not None]
            # queued tasks: re-check at least once per timeout so their clock is picked up
            nap = min(deadlines, default=now + limit) - now
            wait([futures[i] for i in pending], timeout=max(nap, 0.005), return_when=FIRST_COMPLETED)

    # =========================================================================
    # STATE / PREFLIGHT
    # =========================================================================
    def _begin(self) -> None:
        with self._state_lock:
            if self._state is RunState.RUNNING:
                raise RuntimeError("Orchestrator is already running")
            self._state = RunState.RUNNING
            self._cancel.clear()

    def _end(self, state: RunState) -> None:
        with self._state_lock:
            self._state = state

    def _check_store_survived(self, outcomes: Iterable[SiteOutcome]) -> None:
        """
        Raise RunAbortedError when writes were attempted and none landed.

        Individual rejections stay WriteFailures; losing the store outright is a
        run-level failure. A cancelled run is exempt: it stops writing on purpose.
        """
        if self._cancel.is_set():
            return
        completed = [o for o in outcomes if o.ok]
        failures = [w for o in completed for w in o.write_failures]
        attempted = sum(len(o.postings) for o in completed)
        if not failures or len(failures) < attempted:
            return

        try:
            self._writer.ping()
            state = "store answers ping but rejected every write"
        except Exception as e:
            state = f"store lost mid-run: {e!r}"
        logging_bridge.error({
            "component": "rcip_jobs.engine",
            "op": "store_lost",
            "state": state,
            "write_failures": len(failures),
            "first_error": failures[0].error,
        })
        raise RunAbortedError(f"{state}; none of {attempted} posting(s) were stored (first: {failures[0].error})")

    def _preflight(self) -> None:
        try:
            self._writer.ping()
        except Exception as e:
            logging_bridge.error({
                "component": "rcip_jobs.engine",
                "op": "preflight",
                "error": repr(e),
            })
            raise RunAbortedError(f"store unavailable: {e}") from e

    # =========================================================================
    # LOGGING
    # =========================================================================
    def _log_site(self, outcome: SiteOutcome) -> None:
        if outcome.error is not None:
            logging_bridge.error({
                "component": "rcip_jobs.engine",
                "op": "site_failed",
                "community": outcome.community,
                "kind": outcome.error.kind,
                "error": str(outcome.error),
                "duration_us": outcome.duration_us,
            })
            return
        logging_bridge.activity({
            "component": "rcip_jobs.engine",
            # "empty" is kept distinct so silent selector rot shows up in the activity log.
            "op": "site_done" if outcome.postings else "empty",
            "community": outcome.community,
            "found": len(outcome.postings),
            "degraded": outcome.degraded,
            "write_failures": len(outcome.write_failures),
            "duration_us": outcome.duration_us,
        })

    def _log_summary(self, report: RunReport, start_ns: int) -> None:
        logging_bridge.activity({
            "component": "rcip_jobs.engine",
            "op": "summary",
            "found_by_site": {k: len(v.postings) for k, v in report.succeeded.items()},
            "failed_by_site": {k: v.error.kind for k, v in report.failed.items() if v.error},
            "durations_us": {k: v.duration_us for k, v in report.outcomes.items()},
            "total_us": int((time.perf_counter_ns() - start_ns) // 1000),
        })
