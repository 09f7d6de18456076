from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Protocol, runtime_checkable

from ..http_client import HttpClient
from ..models import CandidatePosting, ScrapeTarget


@runtime_checkable
class SiteExtractor(Protocol):
    """
    Contract every target site implements.

      - identify() returns the ScrapeTarget the extractor serves.
      - fetch(client) pulls the raw page(s) through the injected HttpClient and
        raises FetchError when the site cannot be reached.
      - extract(page) turns ONE page into postings. The returned iterable is
        lazy and restartable: iterating it twice re-parses the page and yields
        the same postings. It must not write, classify, or do network I/O.
    """

    def identify(self) -> ScrapeTarget: ...

    def fetch(self, client: HttpClient, *, delay_seconds: float = 0.0) -> list[str]: ...

    def extract(self, page: str) -> Iterable[CandidatePosting]: ...


class PostingSequence:
    """Re-iterable view over a generator factory."""

    def __init__(self, produce: Callable[[], Iterator[CandidatePosting]]) -> None:
        self._produce = produce

    def __iter__(self) -> Iterator[CandidatePosting]:
        return self._produce()
