from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from .errors import WriteFailure
from .models import CandidatePosting

log = logging.getLogger(__name__)


class Store(Protocol):
    """Persistence interface: atomic upsert per call."""

    def ping(self) -> None: ...

    def upsert_employer(self, name: str, community: str, website: str | None) -> int: ...

    def upsert_job(self, source_url: str, employer_id: int, fields: Mapping[str, Any]) -> int: ...


class ReconciliationWriter:
    """
    Sole owner of Employer/Job writes.

      employer key: (name, community)      -> insert, or overwrite website only
      job key:      (source_url, employer) -> insert, or overwrite every mutable field

    Re-running the same site converges on the latest observed state.
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    def ping(self) -> None:
        self._store.ping()

    def reconcile(self, posting: CandidatePosting, community: str) -> tuple[int, int]:
        """Write one posting. Returns (employer_id, job_id); store errors propagate."""
        employer_id = self._store.upsert_employer(posting.employer_name, community, posting.employer_website)
        job_id = self._store.upsert_job(posting.source_url, employer_id, posting.job_fields())
        return employer_id, job_id

    def reconcile_batch(
        self,
        postings: Iterable[CandidatePosting],
        community: str,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[WriteFailure]:
        """
        Write each posting independently. A rejected posting becomes a WriteFailure
        and its siblings are still written. `should_stop` is checked before each
        write so a cancelled run stops between (never inside) postings.
        """
        failures: list[WriteFailure] = []
        for p in postings:
            if should_stop and should_stop():
                log.info("%s: run cancelled; remaining postings not written", community)
                break
            try:
                self.reconcile(p, community)
            except Exception as e:
                log.warning("%s: write failed for %s: %r", community, p.source_url, e)
                failures.append(WriteFailure(source_url=p.source_url, employer_name=p.employer_name, error=repr(e)))
        return failures
