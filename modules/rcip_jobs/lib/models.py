from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import SiteError, WriteFailure


@dataclass(frozen=True)
class ScrapeTarget:
    """
    Static configuration for one RCIP community website.

    Selectors are CSS selectors evaluated relative to each posting card
    (except `card` and `next_page`, which are evaluated on the whole page).
    `remote` is optional: when set, the remote flag is read from that element;
    otherwise the description text is scanned.
    """

    community: str
    province: str
    base_url: str
    default_location: str
    card: str
    title: str
    description: str
    employer: str
    location: str
    salary: str
    posted: str
    source_link: str
    employer_link: str
    remote: str | None = None
    next_page: str | None = None
    max_pages: int = 1


@dataclass
class CandidatePosting:
    """
    A job record produced by a site extractor (pre-classification, pre-write).
    Required: title, description, location, employer_name, source_url.
    """

    title: str
    description: str
    location: str
    employer_name: str
    source_url: str
    occupation_code: str | None = None
    skill_tier: int | None = None
    salary: float | None = None
    is_remote: bool = False
    employer_website: str | None = None
    posted_date: datetime | None = None

    REQUIRED = ("title", "description", "location", "employer_name", "source_url")

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED if not (getattr(self, name) or "").strip()]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def classified(self) -> bool:
        return self.occupation_code is not None and self.skill_tier is not None

    def with_classification(self, occupation_code: str | None, skill_tier: int | None) -> CandidatePosting:
        return dataclasses.replace(self, occupation_code=occupation_code, skill_tier=skill_tier)

    def job_fields(self) -> dict[str, Any]:
        """The mutable Job columns, as written on every sighting."""
        return {
            "title": self.title,
            "description": self.description,
            "noc": self.occupation_code,
            "teer_level": self.skill_tier,
            "salary": self.salary,
            "is_remote": self.is_remote,
            "location": self.location,
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
        }

    def to_dict(self) -> dict[str, Any]:
        d = dataclasses.asdict(self)
        d["posted_date"] = self.posted_date.isoformat() if self.posted_date else None
        return d


@dataclass
class SiteOutcome:
    """
    Result for one target in one run.
    - postings: everything extracted (classified or degraded), even if some writes failed.
    - error: set when the site did not produce a usable extraction.
    """

    community: str
    postings: list[CandidatePosting] = field(default_factory=list)
    error: SiteError | None = None
    write_failures: list[WriteFailure] = field(default_factory=list)
    degraded: int = 0
    duration_us: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "ok": self.ok,
            "count": len(self.postings),
            "degraded": self.degraded,
            "duration_us": self.duration_us,
        }
        if self.error is not None:
            out["error"] = {"kind": self.error.kind, "message": str(self.error)}
        else:
            out["postings"] = [p.to_dict() for p in self.postings]
        if self.write_failures:
            out["write_failures"] = [dataclasses.asdict(w) for w in self.write_failures]
        return out


@dataclass
class RunReport:
    """Per-invocation summary: community name -> SiteOutcome. Never persisted."""

    started_utc: str
    finished_utc: str = ""
    outcomes: dict[str, SiteOutcome] = field(default_factory=dict)

    def __getitem__(self, community: str) -> SiteOutcome:
        return self.outcomes[community]

    def __contains__(self, community: object) -> bool:
        return community in self.outcomes

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> dict[str, SiteOutcome]:
        return {k: v for k, v in self.outcomes.items() if not v.ok}

    @property
    def succeeded(self) -> dict[str, SiteOutcome]:
        return {k: v for k, v in self.outcomes.items() if v.ok}

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_utc": self.started_utc,
            "finished_utc": self.finished_utc,
            "sites": {k: v.to_dict() for k, v in sorted(self.outcomes.items())},
        }
