# modules/rcip_jobs/lib/extractors/cards.py
from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..errors import ParseError
from ..http_client import HttpClient
from ..models import CandidatePosting, ScrapeTarget
from ..parsers import clean_text, parse_date, parse_remote, parse_salary
from .base import PostingSequence

log = logging.getLogger(__name__)


class CardExtractor:
    """
    Extractor for RCIP pages that list each opening as a "card" element.

    Every field is located by the target's own selectors relative to the card,
    then routed through the field parsers. Missing source links fall back to
    the page URL and missing locations to the target's default label.

    Behavior:
      - zero cards on the page -> empty sequence (the site simply has no openings)
      - cards found but none complete -> ParseError once the sequence is exhausted
      - a single incomplete card is skipped and logged
    """

    def __init__(self, target: ScrapeTarget) -> None:
        self._target = target

    def __repr__(self) -> str:
        return f"CardExtractor({self._target.community!r})"

    def identify(self) -> ScrapeTarget:
        return self._target

    # ---- network ----

    def fetch(self, client: HttpClient, *, delay_seconds: float = 0.0) -> list[str]:
        """
        Fetch the listing page, following the target's next-page link up to
        max_pages. Sleeps `delay_seconds` between requests to the same host.
        """
        t = self._target
        pages: list[str] = []
        seen: set[str] = set()
        url: str | None = t.base_url

        while url and url not in seen and len(pages) < max(1, t.max_pages):
            if pages and delay_seconds > 0:
                time.sleep(delay_seconds)
            seen.add(url)
            html = client.get_text(url)
            pages.append(html)
            url = self._next_page_url(html, url)

        return pages

    def _next_page_url(self, html: str, current: str) -> str | None:
        if not self._target.next_page:
            return None
        soup = BeautifulSoup(html, "html.parser")
        a = soup.select_one(self._target.next_page)
        href = (a.get("href") or "").strip() if a else ""
        return urljoin(current, href) if href else None

    # ---- parsing ----

    def extract(self, page: str) -> PostingSequence:
        return PostingSequence(lambda: self._iter_postings(page))

    def _iter_postings(self, page: str) -> Iterator[CandidatePosting]:
        t = self._target
        soup = BeautifulSoup(page or "", "html.parser")
        cards = soup.select(t.card)

        kept = 0
        for i, card in enumerate(cards):
            posting = self._card_to_posting(card)
            missing = posting.missing_fields()
            if missing:
                log.debug("%s: skipping card #%d, missing %s", t.community, i, ", ".join(missing))
                continue
            kept += 1
            yield posting

        if cards and not kept:
            raise ParseError(
                f"{len(cards)} card(s) matched {t.card!r} but none had the required fields",
                community=t.community,
            )

    def _card_to_posting(self, card: Tag) -> CandidatePosting:
        t = self._target
        title = _text(card, t.title)
        description = _text(card, t.description)
        remote_source = _text(card, t.remote) if t.remote else description

        return CandidatePosting(
            title=title,
            description=description,
            location=_text(card, t.location) or t.default_location,
            employer_name=_text(card, t.employer),
            source_url=_href(card, t.source_link, t.base_url) or t.base_url,
            salary=parse_salary(_text(card, t.salary)),
            is_remote=parse_remote(remote_source),
            employer_website=_href(card, t.employer_link, t.base_url),
            posted_date=parse_date(_text(card, t.posted)),
        )


def _text(card: Tag, selector: str) -> str:
    el = card.select_one(selector)
    return clean_text(el.get_text(" ")) if el else ""


def _href(card: Tag, selector: str, base: str) -> str | None:
    el = card.select_one(selector)
    href = (el.get("href") or "").strip() if el else ""
    if not href:
        return None
    url = urljoin(base, href)
    return url if url.startswith(("http://", "https://")) else None
