from __future__ import annotations

from dataclasses import dataclass


class RcipJobsError(Exception):
    """Base exception for the crawling/reconciliation core."""


class SiteError(RcipJobsError):
    """
    A failure scoped to one target site. Captured into that site's
    SiteOutcome; never stops sibling sites.
    """

    kind: str = "site"

    def __init__(self, message: str, *, community: str | None = None) -> None:
        super().__init__(message)
        self.community = community

    def describe(self) -> str:
        return f"{self.kind}: {self}"


class FetchError(SiteError):
    """Network or HTTP-level failure reaching a target site (site down)."""

    kind = "fetch"

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None, **kw) -> None:
        super().__init__(message, **kw)
        self.url = url
        self.status = status


class ParseError(SiteError):
    """Page fetched and cards found, but none yielded a usable posting."""

    kind = "parse"


class InternalSiteError(SiteError):
    """Unexpected exception inside a site's pipeline."""

    kind = "internal"


class CancelledSiteError(SiteError):
    """Run was cancelled before this site started."""

    kind = "cancelled"


class ClassificationError(RcipJobsError):
    """Classifier timed out, errored, or replied with something unusable."""


class UnknownTargetError(RcipJobsError, LookupError):
    """No site extractor is registered for the requested community."""


class RunAbortedError(RcipJobsError):
    """Process-level failure (e.g. store unreachable); no partial report."""


class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


@dataclass(frozen=True)
class WriteFailure:
    """A single posting the store rejected. Recorded, not raised."""

    source_url: str
    employer_name: str
    error: str
