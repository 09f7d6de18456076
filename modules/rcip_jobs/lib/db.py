from __future__ import annotations

import contextlib
import os
import sqlite3
import threading
from collections.abc import Mapping
from typing import Any

from .logging_bridge import error as log_error
from .utils import now_iso

# Mutable job columns: overwritten on every sighting of (source_url, employer_id).
JOB_FIELDS = ("title", "description", "noc", "teer_level", "salary", "is_remote", "location", "posted_date")

# ---- Writes --------------------------------------------------------------------


def init_db(sqlite_path: str) -> None:
    """Create the database file, its parent directory and the three tables if missing."""
    os.makedirs(os.path.dirname(os.path.abspath(sqlite_path)), exist_ok=True)
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _ensure_schema(conn)


def upsert_employer(sqlite_path: str, name: str, community: str, website: str | None) -> int:
    """
    Create-or-update an employer keyed by (name, community).
    The schema must already exist (init_db, or go through SqliteStore).

    Insert: name, community, website, is_verified=0.
    Update: website ONLY. Verification and anything else belongs to other subsystems.

    Returns:
        The employer id.
    """
    ts = now_iso()
    with _transaction(sqlite_path, "upsert_employer") as cur:
        community_id = _community_id(cur, community, ts)
        cur.execute(
            """
            INSERT INTO employers (name, community_id, website, is_verified, first_seen_utc)
            VALUES (?, ?, ?, 0, ?)
            ON CONFLICT (name, community_id) DO UPDATE SET website = excluded.website
            RETURNING id
            """,
            (name, community_id, website, ts),
        )
        ((employer_id,),) = cur.fetchall()
    return int(employer_id)


def upsert_job(sqlite_path: str, source_url: str, employer_id: int, fields: Mapping[str, Any]) -> int:
    """
    Create-or-update a job keyed by (source_url, employer_id).

    Every column in JOB_FIELDS is overwritten with the given values so the row
    always reflects the latest scrape. first_seen_utc is set on insert only.

    Returns:
        The job id.
    """
    unknown = set(fields) - set(JOB_FIELDS)
    if unknown:
        raise ValueError(f"Unknown job fields: {sorted(unknown)}")
    values = [_sql_value(fields.get(k)) for k in JOB_FIELDS]

    cols = ", ".join(JOB_FIELDS)
    marks = ", ".join("?" for _ in JOB_FIELDS)
    updates = ", ".join(f"{k} = excluded.{k}" for k in JOB_FIELDS)

    with _transaction(sqlite_path, "upsert_job") as cur:
        cur.execute(
            f"""
            INSERT INTO jobs (source_url, employer_id, {cols}, first_seen_utc)
            VALUES (?, ?, {marks}, ?)
            ON CONFLICT (source_url, employer_id) DO UPDATE SET {updates}
            RETURNING id
            """,
            (source_url, employer_id, *values, now_iso()),
        )
        ((job_id,),) = cur.fetchall()
    return int(job_id)


class SqliteStore:
    """
    The persistence interface the reconciliation writer talks to, bound to one file.
    The schema is created once per store (by ping() or the first write), not per write.
    """

    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = sqlite_path
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def ping(self) -> None:
        """Raise if the database cannot be opened or migrated."""
        init_db(self.sqlite_path)
        self._schema_ready = True

    def upsert_employer(self, name: str, community: str, website: str | None) -> int:
        self._ensure_schema_once()
        return upsert_employer(self.sqlite_path, name, community, website)

    def upsert_job(self, source_url: str, employer_id: int, fields: Mapping[str, Any]) -> int:
        self._ensure_schema_once()
        return upsert_job(self.sqlite_path, source_url, employer_id, fields)

    def _ensure_schema_once(self) -> None:
        if self._schema_ready:
            return
        with self._schema_lock:
            if not self._schema_ready:
                init_db(self.sqlite_path)
                self._schema_ready = True

    def get_job(self, job_id: int) -> dict[str, Any] | None:
        return get_job(self.sqlite_path, job_id)

    def count_rows(self, table: str = "jobs") -> int:
        return count_rows(self.sqlite_path, table)


# ---- Lookups for the CLI and tests --------------------------------------------


def get_employer(sqlite_path: str, employer_id: int) -> dict[str, Any] | None:
    """Employer row (with community name) as a dict; None if absent."""
    return _fetch_one(
        sqlite_path,
        """
        SELECT e.id, e.name, c.name AS community, e.website, e.is_verified, e.first_seen_utc
        FROM employers e JOIN communities c ON c.id = e.community_id
        WHERE e.id = ?
        """,
        (employer_id,),
    )


def get_job(sqlite_path: str, job_id: int) -> dict[str, Any] | None:
    """Job row joined with its employer's name and verification flag; None if absent."""
    row = _fetch_one(
        sqlite_path,
        f"""
        SELECT j.id, j.source_url, j.employer_id, {", ".join("j." + k for k in JOB_FIELDS)},
               j.first_seen_utc, e.name AS employer_name, e.is_verified AS employer_verified
        FROM jobs j JOIN employers e ON e.id = j.employer_id
        WHERE j.id = ?
        """,
        (job_id,),
    )
    if row is not None:
        row["is_remote"] = bool(row["is_remote"])
        row["employer_verified"] = bool(row["employer_verified"])
    return row


def count_rows(sqlite_path: str, table: str = "jobs") -> int:
    if table not in {"communities", "employers", "jobs"}:
        raise ValueError(f"Unknown table {table!r}")
    if not os.path.exists(sqlite_path):
        return 0
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _ensure_schema(conn)
        (n,) = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    return n


def reset_db(sqlite_path: str) -> None:
    """Delete the database along with its WAL side files; missing files are fine."""
    for path in (sqlite_path, f"{sqlite_path}-wal", f"{sqlite_path}-shm"):
        if os.path.exists(path):
            os.remove(path)


# ---- internals -----------------------------------------------------------------


@contextlib.contextmanager
def _transaction(sqlite_path: str, op: str):
    """One BEGIN IMMEDIATE ... COMMIT per call; rolled back and logged on error. Schema must exist."""
    with contextlib.closing(_connect(sqlite_path)) as conn:
        cur = conn.execute("BEGIN IMMEDIATE")
        try:
            yield cur
        except Exception as exc:
            conn.rollback()
            log_error({"component": "rcip_jobs.db", "op": op, "db": sqlite_path, "error": repr(exc)})
            raise
        conn.commit()


def _community_id(cur: sqlite3.Cursor, community: str, ts: str) -> int:
    cur.execute(
        """
        INSERT INTO communities (name, first_seen_utc) VALUES (?, ?)
        ON CONFLICT (name) DO UPDATE SET name = excluded.name
        RETURNING id
        """,
        (community, ts),
    )
    ((cid,),) = cur.fetchall()
    return int(cid)


def _sql_value(v: Any) -> Any:
    if isinstance(v, bool):
        return int(v)
    return v


def _fetch_one(sqlite_path: str, sql: str, params: tuple) -> dict[str, Any] | None:
    if not os.path.exists(sqlite_path):
        return None
    with contextlib.closing(_connect(sqlite_path)) as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute(sql, params).fetchone()
    return dict(row) if row is not None else None


_PRAGMAS = (
    "journal_mode=WAL",
    "synchronous=NORMAL",
    "foreign_keys=ON",
    "busy_timeout=30000",
)


def _connect(sqlite_path: str) -> sqlite3.Connection:
    # autocommit; writers open their own BEGIN IMMEDIATE
    conn = sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)
    for pragma in _PRAGMAS:
        conn.execute(f"PRAGMA {pragma}")
    return conn


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS communities (
          id INTEGER PRIMARY KEY,
          name TEXT NOT NULL UNIQUE,
          first_seen_utc TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS employers (
          id INTEGER PRIMARY KEY,
          name TEXT NOT NULL,
          community_id INTEGER NOT NULL REFERENCES communities(id),
          website TEXT,
          is_verified INTEGER NOT NULL DEFAULT 0,
          first_seen_utc TEXT NOT NULL,
          UNIQUE (name, community_id)
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS jobs (
          id INTEGER PRIMARY KEY,
          source_url  TEXT NOT NULL,
          employer_id INTEGER NOT NULL REFERENCES employers(id),
          title       TEXT NOT NULL,
          description TEXT NOT NULL,
          noc         TEXT,
          teer_level  INTEGER,
          salary      REAL,
          is_remote   INTEGER NOT NULL DEFAULT 0,
          location    TEXT NOT NULL,
          posted_date TEXT,
          first_seen_utc TEXT NOT NULL,
          UNIQUE (source_url, employer_id)
        );
        """
    )
