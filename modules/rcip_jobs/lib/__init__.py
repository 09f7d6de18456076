# modules/rcip_jobs/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import Settings
from .engine import Orchestrator, RunState
from .errors import (
    ClassificationError,
    ConfigError,
    FetchError,
    ParseError,
    RunAbortedError,
    SiteError,
    UnknownTargetError,
    WriteFailure,
)
from .models import CandidatePosting, RunReport, ScrapeTarget, SiteOutcome

__all__ = [
    "CandidatePosting",
    "ClassificationError",
    "ConfigError",
    "FetchError",
    "Orchestrator",
    "ParseError",
    "RunAbortedError",
    "RunReport",
    "RunState",
    "ScrapeTarget",
    "Settings",
    "SiteError",
    "SiteOutcome",
    "UnknownTargetError",
    "WriteFailure",
]
