# tests/conftest.py
import os
import warnings

import pytest
from freezegun import freeze_time

from modules.rcip_jobs.lib.classifier import Classification
from modules.rcip_jobs.lib.db import SqliteStore
from modules.rcip_jobs.lib.engine import Orchestrator
from modules.rcip_jobs.lib.errors import FetchError
from modules.rcip_jobs.lib.extractors import CardExtractor
from modules.rcip_jobs.lib.models import ScrapeTarget
from modules.rcip_jobs.lib.reconcile import ReconciliationWriter

warnings.filterwarnings("error", category=DeprecationWarning, module="modules")


def _live_enabled(config) -> bool:
    return bool(config.getoption("--live")) or os.getenv("RUN_LIVE_TESTS") == "1"


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption("--live", action="store_true", default=False, help="Also run tests that hit real job boards or OpenAI.")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if _live_enabled(config):
        return
    skip = pytest.mark.skip(reason="needs --live or RUN_LIVE_TESTS=1")
    for item in items:
        if item.get_closest_marker("live"):
            item.add_marker(skip)


# ---------------------------------------------------------------------
# Isolation from the developer's environment
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    for name in ("RCIP_SQLITE_PATH", "RCIP_MAX_THREADS", "RCIP_SKIP_NETWORK", "RCIP_SCRAPE_CRON"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _no_llm_offline(monkeypatch, request):
    """Offline runs never reach OpenAI: classification off and no key in the env."""
    if _live_enabled(request.config):
        return
    monkeypatch.setenv("RCIP_ENABLE_LLM", "0")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# HTML builders: turn simple selectors (".x", "a.x", "a.x.y") into markup
# ---------------------------------------------------------------------
def _element(selector: str, inner: str = "", href: str | None = None) -> str:
    tag, _, classes = selector.partition(".")
    tag = tag or "div"
    attrs = f' class="{classes.replace(".", " ")}"'
    if href is not None:
        attrs += f' href="{href}"'
    return f"<{tag}{attrs}>{inner}</{tag}>"


def make_card(target: ScrapeTarget, **values) -> str:
    """
    One posting card for `target`. Keys: title, description, employer, location,
    salary, posted, remote, link, employer_link. Omitted keys produce no element.
    """
    parts = []
    for key in ("title", "description", "employer", "location", "salary", "posted"):
        if key in values:
            parts.append(_element(getattr(target, key), values[key]))
    if "remote" in values and target.remote:
        parts.append(_element(target.remote, values["remote"]))
    if "link" in values:
        parts.append(_element(target.source_link, "Apply", href=values["link"]))
    if "employer_link" in values:
        parts.append(_element(target.employer_link, "Website", href=values["employer_link"]))
    return _element(target.card, "\n".join(parts))


def make_page(target: ScrapeTarget, cards: list[dict], next_href: str | None = None) -> str:
    body = "\n".join(make_card(target, **c) for c in cards)
    if next_href and target.next_page:
        body += _element(target.next_page, "Next", href=next_href)
    return f"<html><body><main>{body}</main></body></html>"


@pytest.fixture
def page_builder():
    return make_page


# ---------------------------------------------------------------------
# Fakes injected into the Orchestrator
# ---------------------------------------------------------------------
class FakeHttp:
    """url -> html, or url -> Exception (raised on fetch). Records every request."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requested = []

    def get_text(self, url, **kwargs):
        self.requested.append(url)
        value = self.pages.get(url)
        if value is None:
            raise FetchError(f"HTTP 404 from {url}", url=url, status=404)
        if isinstance(value, Exception):
            raise value
        return value

    def close(self):
        pass


class FakeClassifier:
    """title -> Classification | Exception; unknown titles get a generic code."""

    def __init__(self, by_title=None, default=Classification("65201", 5)):
        self.by_title = dict(by_title or {})
        self.default = default
        self.calls = []

    def classify(self, title, description):
        self.calls.append((title, description))
        value = self.by_title.get(title, self.default)
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value()
        return value


def make_target(name: str, **overrides) -> ScrapeTarget:
    slug = name.lower().replace(" ", "-")
    fields = {
        "community": name,
        "province": "ON",
        "base_url": f"https://{slug}.example.ca/jobs/",
        "default_location": f"{name}, ON",
        "card": ".job-posting",
        "title": ".job-title",
        "description": ".job-description",
        "employer": ".employer-name",
        "location": ".location",
        "salary": ".salary",
        "posted": ".date-posted",
        "source_link": "a.job-link",
        "employer_link": "a.employer-website",
    }
    fields.update(overrides)
    return ScrapeTarget(**fields)


def posting_card(title: str, employer: str = "Acme Bakery", n: int = 1, **extra) -> dict:
    card = {
        "title": title,
        "description": f"{title} wanted for day shifts",
        "employer": employer,
        "location": "Downtown",
        "salary": "$18 - $22 per hour",
        "posted": "2025-01-0%d" % n,
        "link": f"/jobs/{title.lower().replace(' ', '-')}-{n}",
    }
    card.update(extra)
    return card


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def fake_classifier():
    return FakeClassifier()


@pytest.fixture
def sqlite_path(tmp_path):
    return str(tmp_path / "state" / "rcip_jobs.db")


@pytest.fixture
def store(sqlite_path):
    return SqliteStore(sqlite_path)


@pytest.fixture
def make_orchestrator(fake_http, fake_classifier, store):
    """Factory: Orchestrator over the given targets with fakes for network + classifier."""

    def _make(targets, *, http=None, classifier=None, writer_store=None, **kwargs):
        kwargs.setdefault("max_workers", 4)
        kwargs.setdefault("classify_workers", 2)
        kwargs.setdefault("classify_timeout", 2.0)
        return Orchestrator(
            [CardExtractor(t) for t in targets],
            http or fake_http,
            classifier or fake_classifier,
            ReconciliationWriter(writer_store or store),
            **kwargs,
        )

    return _make


@pytest.fixture
def target_factory():
    return make_target


@pytest.fixture
def card_factory():
    return posting_card


@pytest.fixture
def http_factory():
    return FakeHttp


@pytest.fixture
def classifier_factory():
    return FakeClassifier
