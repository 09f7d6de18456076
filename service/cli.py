# service/cli.py
"""
User-facing command-line entrypoints.

Subcommands
-----------
scrape [--community NAME] [--kwargs k=v ...] [--json]
    - Runs every site extractor (or one community) and prints the per-site outcome
    - Exit code 0 when the run completed (even with per-site failures),
      2 for an unknown community, 1 for a fatal run-level error

list-targets
    - Prints every registered community and the URL it is scraped from

rank JOB_ID --noc CODE --teer N [--kwargs sqlite_path=...]
    - Scores a stored job against a candidate's NOC code and TEER level

serve [--cron EXPR]
    - Starts the APScheduler loop that re-runs the full scrape on a cron schedule
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
import time
import uuid
from collections.abc import Iterable
from typing import Any

from modules.rcip_jobs import main as _rcip
from modules.rcip_jobs.lib import db as _db
from modules.rcip_jobs.lib.config import Settings
from modules.rcip_jobs.lib.errors import ConfigError, RcipJobsError, UnknownTargetError
from modules.rcip_jobs.lib.extractors import all_extractors
from modules.rcip_jobs.lib.models import RunReport
from modules.rcip_jobs.lib.ranking import rank_job_match
from modules.rcip_jobs.lib.utils import now_iso
from service import logging_utils as L
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")


# -------------------------- Utility / glue code ------------------------------
def _kv(item: str) -> tuple[str, Any]:
    """One `key=value` override; the value is JSON-decoded when it parses (2, true, null), else kept raw."""
    key, sep, value = item.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"--kwargs items look like key=value (got {item!r})")
    try:
        return key, json.loads(value)
    except ValueError:
        return key, value


def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    return dict(_kv(item) for item in pairs)


def _print_table(rows: Iterable[tuple[str, str]], headers: tuple[str, str] = ("ID", "DETAILS")) -> None:
    rows = [headers, *rows]
    widths = [max(len(r[i]) for r in rows) for i in (0, 1)]
    rule = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def line(cells: tuple[str, str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    print(rule, line(rows[0]), rule, *(line(r) for r in rows[1:]), rule, sep="\n")


def _report_rows(report: RunReport) -> list[tuple[str, str]]:
    rows = []
    for community, outcome in sorted(report.outcomes.items()):
        if outcome.ok:
            detail = f"ok: {len(outcome.postings)} posting(s)"
            if outcome.degraded:
                detail += f", {outcome.degraded} unclassified"
            if outcome.write_failures:
                detail += f", {len(outcome.write_failures)} write failure(s)"
        else:
            detail = outcome.error.describe() if outcome.error else "failed"
        rows.append((community, detail))
    return rows


# ------------------------------ Subcommands ----------------------------------
def cmd_scrape(args: argparse.Namespace) -> int:
    run_id = uuid.uuid4().hex
    start_time = time.monotonic()
    kwargs = _parse_kv_pairs(args.kwargs or [])

    try:
        if args.community:
            postings = _rcip.run_one(args.community, **kwargs)
            if args.json:
                print(json.dumps([p.to_dict() for p in postings], indent=2))
            else:
                _print_table(
                    [(p.title, f"{p.employer_name} | {p.occupation_code or 'unclassified'}") for p in postings],
                    headers=("TITLE", "EMPLOYER | NOC"),
                )
            found = len(postings)
        else:
            report = _rcip.run_all(**kwargs)
            if args.json:
                print(json.dumps(report.to_dict(), indent=2))
            else:
                _print_table(_report_rows(report), headers=("COMMUNITY", "OUTCOME"))
            found = sum(len(o.postings) for o in report.outcomes.values())

        L.write_activity_log({
            "ts": now_iso(),
            "event": "cli_scrape",
            "run_id": run_id,
            "community": args.community,
            "found": found,
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return 0

    except KeyboardInterrupt:
        return 130
    except (UnknownTargetError, ConfigError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except RcipJobsError as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": now_iso(),
            "where": "cli.scrape",
            "run_id": run_id,
            "community": args.community,
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return 1


def cmd_list_targets(args: argparse.Namespace) -> int:
    rows = [
        (t.community, f"{t.province} {t.base_url}")
        for t in sorted((ex.identify() for ex in all_extractors()), key=lambda t: t.community)
    ]
    _print_table(rows, headers=("COMMUNITY", "SOURCE"))
    return 0


def cmd_rank(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_parse_kv_pairs(args.kwargs or []))
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    job = _db.get_job(settings.sqlite_path, args.job_id)
    if job is None:
        print(f"ERROR: job {args.job_id} not found", file=sys.stderr)
        return 2
    score = rank_job_match(job, args.noc, args.teer)
    print(f"{score}\t{job['title']} @ {job['employer_name']}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the cron re-scrape loop until SIGINT/SIGTERM."""
    try:
        controller = _scheduler.start(cron=args.cron, run_kwargs=_parse_kv_pairs(args.kwargs or []))
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    L.write_activity_log({"ts": now_iso(), "event": "serve_start", "cron": args.cron})

    stopping = threading.Event()

    def _on_signal(signum, _frame):
        LOG.info("Got signal %s; stopping the scrape scheduler", signum)
        stopping.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)
    try:
        stopping.wait()
    finally:
        controller.stop()
        controller.join(timeout=10.0)
        L.write_activity_log({"ts": now_iso(), "event": "serve_stop"})
    return 0


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="RCIP job scraping tools",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    kwargs_help = "Settings overrides, e.g. sqlite_path=/tmp/jobs.db max_threads=2 (JSON values supported)."

    sp = sub.add_parser("scrape", help="Scrape every community, or one with --community.")
    sp.add_argument("--community", help="Community name (case-insensitive), e.g. 'thunder bay'.")
    sp.add_argument("--kwargs", metavar="k=v", nargs="*", help=kwargs_help)
    sp.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    sp.set_defaults(func=cmd_scrape)

    sp = sub.add_parser("list-targets", help="Print every registered community.")
    sp.set_defaults(func=cmd_list_targets)

    sp = sub.add_parser("rank", help="Score a stored job against a NOC code and TEER level.")
    sp.add_argument("job_id", type=int)
    sp.add_argument("--noc", required=True, help="Candidate's 5-digit NOC code.")
    sp.add_argument("--teer", required=True, type=int, choices=range(6), help="Candidate's TEER level (0-5).")
    sp.add_argument("--kwargs", metavar="k=v", nargs="*", help=kwargs_help)
    sp.set_defaults(func=cmd_rank)

    sp = sub.add_parser("serve", help="Re-run the full scrape on a cron schedule.")
    sp.add_argument("--cron", default=None, help="Crontab expression (default: $RCIP_SCRAPE_CRON or daily 06:00).")
    sp.add_argument("--kwargs", metavar="k=v", nargs="*", help=kwargs_help)
    sp.set_defaults(func=cmd_serve)

    return p


def main(argv: list[str] | None = None) -> int:
    L.ensure_logging()
    args = _build_parser().parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
