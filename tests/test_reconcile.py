# tests/test_reconcile.py
from datetime import datetime

from modules.rcip_jobs.lib import db
from modules.rcip_jobs.lib.models import CandidatePosting
from modules.rcip_jobs.lib.reconcile import ReconciliationWriter


def _posting(title="Line Cook", url="https://brandon.example.ca/jobs/1", employer="Acme Bakery", **kw):
    fields = {
        "title": title,
        "description": "Prepare meals",
        "location": "Brandon, MB",
        "employer_name": employer,
        "source_url": url,
        "occupation_code": "63200",
        "skill_tier": 3,
        "salary": 20.0,
        "posted_date": datetime(2025, 1, 15),
    }
    fields.update(kw)
    return CandidatePosting(**fields)


class _RejectingStore:
    """Delegates to a real store but refuses jobs whose URL contains 'bad'."""

    def __init__(self, inner):
        self.inner = inner

    def ping(self):
        self.inner.ping()

    def upsert_employer(self, name, community, website):
        return self.inner.upsert_employer(name, community, website)

    def upsert_job(self, source_url, employer_id, fields):
        if "bad" in source_url:
            raise RuntimeError("constraint violated")
        return self.inner.upsert_job(source_url, employer_id, fields)


def test_reconcile_twice_is_idempotent(store, sqlite_path):
    writer = ReconciliationWriter(store)

    first = writer.reconcile(_posting(), "Brandon")
    before = db.get_job(sqlite_path, first[1])
    second = writer.reconcile(_posting(), "Brandon")

    assert first == second
    assert db.get_job(sqlite_path, first[1]) == before
    assert db.count_rows(sqlite_path, "jobs") == 1
    assert db.count_rows(sqlite_path, "employers") == 1


def test_reconcile_applies_latest_values(store, sqlite_path):
    writer = ReconciliationWriter(store)
    _, job_id = writer.reconcile(_posting(salary=20.0), "Brandon")
    writer.reconcile(_posting(salary=24.0, is_remote=True), "Brandon")

    row = db.get_job(sqlite_path, job_id)
    assert row["salary"] == 24.0
    assert row["is_remote"] is True
    assert row["noc"] == "63200"
    assert row["posted_date"] == "2025-01-15T00:00:00"


def test_unclassified_posting_is_still_written(store, sqlite_path):
    _, job_id = ReconciliationWriter(store).reconcile(_posting(occupation_code=None, skill_tier=None), "Brandon")

    row = db.get_job(sqlite_path, job_id)
    assert row["noc"] is None and row["teer_level"] is None


def test_batch_isolates_write_failures(store, sqlite_path):
    writer = ReconciliationWriter(_RejectingStore(store))
    postings = [
        _posting(url="https://brandon.example.ca/jobs/1"),
        _posting(title="Baker", url="https://brandon.example.ca/jobs/bad"),
        _posting(title="Cashier", url="https://brandon.example.ca/jobs/3"),
    ]

    failures = writer.reconcile_batch(postings, "Brandon")

    assert [f.source_url for f in failures] == ["https://brandon.example.ca/jobs/bad"]
    assert "constraint violated" in failures[0].error
    assert failures[0].employer_name == "Acme Bakery"
    assert db.count_rows(sqlite_path, "jobs") == 2


def test_batch_stops_between_postings_when_asked(store, sqlite_path):
    written = []

    def should_stop():
        return len(written) >= 1

    class _Counting(ReconciliationWriter):
        def reconcile(self, posting, community):
            out = super().reconcile(posting, community)
            written.append(posting.source_url)
            return out

    writer = _Counting(store)
    postings = [_posting(url=f"https://brandon.example.ca/jobs/{i}") for i in range(3)]

    assert writer.reconcile_batch(postings, "Brandon", should_stop=should_stop) == []
    assert written == ["https://brandon.example.ca/jobs/0"]
    assert db.count_rows(sqlite_path, "jobs") == 1
