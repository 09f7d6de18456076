from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .lib.classifier import Classifier, build_classifier
from .lib.config import Settings
from .lib.db import SqliteStore
from .lib.engine import Orchestrator
from .lib.extractors import SiteExtractor, all_extractors
from .lib.http_client import HttpClient
from .lib.logging_bridge import activity as log_activity
from .lib.models import CandidatePosting, RunReport
from .lib.reconcile import ReconciliationWriter, Store


def build_orchestrator(
    settings: Settings,
    *,
    http_client: HttpClient,
    extractors: Sequence[SiteExtractor] | None = None,
    classifier: Classifier | None = None,
    store: Store | None = None,
) -> Orchestrator:
    """
    Wire the production collaborators; any of them can be swapped for a fake.
    """
    if classifier is None:
        classifier = build_classifier(
            enabled=settings.enable_classification,
            timeout=settings.classify_timeout,
            model_env=settings.model_env,
        )
    return Orchestrator(
        extractors if extractors is not None else all_extractors(),
        http_client,
        classifier,
        ReconciliationWriter(store or SqliteStore(settings.sqlite_path)),
        max_workers=settings.max_threads,
        classify_workers=settings.classify_workers,
        classify_timeout=settings.classify_timeout,
        page_delay_seconds=settings.page_delay_seconds,
        skip_network=settings.skip_network,
    )


def run_all(**kwargs: Any) -> RunReport:
    """
    Scrape every registered community.

    Accepts Settings kwargs, including:
      sqlite_path: str = "/app/local/state/rcip_jobs.db"
      max_threads: int = 4
      classify_workers: int = 4
      fetch_timeout / classify_timeout: float seconds
      page_delay_seconds: float = 1.0
      enable_classification: bool = True
      skip_network: bool = False

    Returns:
      RunReport with one entry per community (failures included, never raised).
    """
    settings = Settings.from_env_and_kwargs(kwargs)
    _log_start(settings, community=None)
    with HttpClient(timeout=settings.fetch_timeout) as http:
        return build_orchestrator(settings, http_client=http).run_all()


def run_one(community: str, **kwargs: Any) -> list[CandidatePosting]:
    """
    Scrape a single community by name ("thunder bay" == "Thunder  Bay").
    Raises UnknownTargetError for names with no site extractor.
    """
    settings = Settings.from_env_and_kwargs(kwargs)
    _log_start(settings, community=community)
    with HttpClient(timeout=settings.fetch_timeout) as http:
        return build_orchestrator(settings, http_client=http).run_one(community)


def run(**kwargs: Any) -> RunReport | list[CandidatePosting]:
    """
    Entry point for the 'rcip_jobs' module: `community=...` selects run_one,
    otherwise run_all.
    """
    community = kwargs.pop("community", None)
    if community:
        return run_one(str(community), **kwargs)
    return run_all(**kwargs)


def _log_start(settings: Settings, *, community: str | None) -> None:
    log_activity({
        "component": "rcip_jobs.main",
        "op": "start",
        "community": community,
        "targets": sorted(ex.identify().community for ex in all_extractors()) if community is None else None,
        "flags": {
            "enable_classification": settings.enable_classification,
            "skip_network": settings.skip_network,
        },
    })
