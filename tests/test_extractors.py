# tests/test_extractors.py
from datetime import datetime

import pytest

from modules.rcip_jobs.lib.errors import FetchError, ParseError, UnknownTargetError
from modules.rcip_jobs.lib.extractors import CardExtractor, SiteExtractor, all_extractors, get, register, resolve
from modules.rcip_jobs.lib.extractors import cards as cards_mod
from modules.rcip_jobs.lib.extractors.british_columbia import WEST_KOOTENAY
from modules.rcip_jobs.lib.extractors.ontario import THUNDER_BAY

EXPECTED_COMMUNITIES = {
    "Thunder Bay",
    "North Bay",
    "Sudbury",
    "Timmins",
    "Sault Ste. Marie",
    "Moose Jaw",
    "Claresholm",
    "Brandon",
    "Altona/Rhineland",
    "Vernon",
    "West Kootenay",
}


@pytest.fixture
def testville(target_factory):
    return target_factory("Testville")


# ----------------------------------------------------------------------
# 1. Card parsing
# ----------------------------------------------------------------------
def test_extract_maps_every_field(testville, page_builder, card_factory):
    page = page_builder(testville, [
        card_factory(
            "Line Cook",
            employer="Northern Diner",
            salary="$45,000 - $55,000",
            posted="Posted: 2025-01-15",
            employer_link="https://northern-diner.example.ca",
        )
    ])

    (p,) = list(CardExtractor(testville).extract(page))

    assert p.title == "Line Cook"
    assert p.description == "Line Cook wanted for day shifts"
    assert p.employer_name == "Northern Diner"
    assert p.location == "Downtown"
    assert p.salary == 50000.0
    assert p.posted_date == datetime(2025, 1, 15)
    assert p.source_url == "https://testville.example.ca/jobs/line-cook-1"
    assert p.employer_website == "https://northern-diner.example.ca"
    assert p.is_remote is False
    assert p.occupation_code is None and p.skill_tier is None


def test_extract_fallbacks_for_location_and_link(testville, page_builder, card_factory):
    card = card_factory("Baker")
    del card["location"], card["link"]

    (p,) = list(CardExtractor(testville).extract(page_builder(testville, [card])))

    assert p.location == "Testville, ON"
    assert p.source_url == testville.base_url


def test_extract_remote_from_description_when_no_badge(testville, page_builder, card_factory):
    page = page_builder(testville, [card_factory("Bookkeeper", description="Fully remote role, flexible hours")])

    (p,) = list(CardExtractor(testville).extract(page))
    assert p.is_remote is True


def test_thunder_bay_reads_remote_badge_not_description(page_builder, card_factory):
    on_site = card_factory("Welder", description="Remote camp, on-site only", remote="")
    badge = card_factory("Analyst", n=2, description="Office based", remote="Remote")
    page = page_builder(THUNDER_BAY, [on_site, badge])

    flags = {p.title: p.is_remote for p in CardExtractor(THUNDER_BAY).extract(page)}
    assert flags == {"Welder": False, "Analyst": True}


def test_extract_skips_incomplete_cards(testville, page_builder, card_factory):
    missing_employer = card_factory("Cashier", n=2)
    del missing_employer["employer"]
    page = page_builder(testville, [card_factory("Baker"), missing_employer])

    titles = [p.title for p in CardExtractor(testville).extract(page)]
    assert titles == ["Baker"]


def test_extract_zero_cards_is_empty_not_error(testville):
    page = "<html><body><p>No openings at this time</p></body></html>"
    assert list(CardExtractor(testville).extract(page)) == []


def test_extract_all_cards_incomplete_raises_parse_error(testville, page_builder):
    page = page_builder(testville, [{"title": "Only a title"}, {"description": "Only text"}])

    with pytest.raises(ParseError) as ei:
        list(CardExtractor(testville).extract(page))
    assert ei.value.community == "Testville"


def test_extract_is_restartable(testville, page_builder, card_factory):
    page = page_builder(testville, [card_factory("Baker"), card_factory("Cook", n=2)])
    seq = CardExtractor(testville).extract(page)

    first = [p.to_dict() for p in seq]
    second = [p.to_dict() for p in seq]
    assert first == second
    assert len(first) == 2


def test_extract_rejects_non_http_links(testville, page_builder, card_factory):
    page = page_builder(testville, [card_factory("Baker", employer_link="mailto:hr@example.ca")])

    (p,) = list(CardExtractor(testville).extract(page))
    assert p.employer_website is None


@pytest.mark.parametrize("extractor", all_extractors(), ids=lambda ex: ex.identify().community)
def test_every_site_parses_its_own_markup(extractor, page_builder, card_factory):
    target = extractor.identify()
    page = page_builder(target, [card_factory("Baker"), card_factory("Cook", n=2)])

    postings = list(extractor.extract(page))

    assert [p.title for p in postings] == ["Baker", "Cook"]
    assert all(p.source_url.startswith("https://") for p in postings)
    assert all(p.salary == 20.0 for p in postings)


# ----------------------------------------------------------------------
# 2. Fetching + pagination
# ----------------------------------------------------------------------
def test_fetch_single_page(testville, http_factory):
    http = http_factory({testville.base_url: "<html></html>"})

    assert CardExtractor(testville).fetch(http) == ["<html></html>"]
    assert http.requested == [testville.base_url]


def test_fetch_propagates_fetch_error(testville, http_factory):
    with pytest.raises(FetchError):
        CardExtractor(testville).fetch(http_factory())


def test_fetch_follows_next_page_with_delay(monkeypatch, http_factory, page_builder, card_factory):
    sleeps = []
    monkeypatch.setattr(cards_mod.time, "sleep", lambda s: sleeps.append(s))
    base = WEST_KOOTENAY.base_url
    page2 = base + "page/2/"
    http = http_factory({
        base: page_builder(WEST_KOOTENAY, [card_factory("Baker")], next_href=page2),
        page2: page_builder(WEST_KOOTENAY, [card_factory("Cook", n=2)], next_href=page2),
    })

    pages = CardExtractor(WEST_KOOTENAY).fetch(http, delay_seconds=1.5)

    assert len(pages) == 2
    # the self-link on page 2 is not fetched twice
    assert http.requested == [base, page2]
    assert sleeps == [1.5]


def test_fetch_stops_at_max_pages(monkeypatch, target_factory, http_factory, page_builder):
    monkeypatch.setattr(cards_mod.time, "sleep", lambda s: None)
    target = target_factory("Testville", next_page="a.next", max_pages=2)
    base = target.base_url
    http = http_factory({
        base: page_builder(target, [], next_href="?page=2"),
        base + "?page=2": page_builder(target, [], next_href="?page=3"),
        base + "?page=3": page_builder(target, []),
    })

    assert len(CardExtractor(target).fetch(http)) == 2
    assert base + "?page=3" not in http.requested


# ----------------------------------------------------------------------
# 3. Registry
# ----------------------------------------------------------------------
def test_every_community_is_registered():
    names = {ex.identify().community for ex in all_extractors()}
    assert names == EXPECTED_COMMUNITIES
    assert all(isinstance(ex, SiteExtractor) for ex in all_extractors())


@pytest.mark.parametrize("name", ["thunder bay", "Thunder Bay", "  THUNDER   bay "])
def test_get_is_case_and_whitespace_insensitive(name):
    assert get(name).identify() is THUNDER_BAY


def test_get_unknown_community_raises():
    with pytest.raises(UnknownTargetError):
        get("Atlantis")


def test_resolve_uses_explicit_list_only(testville):
    ex = CardExtractor(testville)
    assert resolve("testville", [ex]) is ex
    with pytest.raises(UnknownTargetError):
        resolve("thunder bay", [ex])


def test_register_rejects_duplicate_community():
    existing = get("Sudbury")
    assert register(existing) is existing
    with pytest.raises(ValueError):
        register(CardExtractor(existing.identify()))
