#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from connectors.github import GitHubIssuesConnector
from metrics.compute_issue_history import history_to_payload
from settings import Settings, load_dotenv
from storage import DuplicateDayError, create_store

REPO_ROOT = Path(__file__).resolve().parent

logger = logging.getLogger("issue_history.cli")


def _settings_from_args(ns: argparse.Namespace, settings: Settings) -> Settings:
    overrides = {}
    if getattr(ns, "db", None):
        overrides["db_url"] = ns.db
    if getattr(ns, "auth", None):
        overrides["github_token"] = ns.auth
    return dataclasses.replace(settings, **overrides) if overrides else settings


def _write_output(payload: object, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logger.info(f"Wrote {output}")
    else:
        sys.stdout.write(text + "\n")


def _cmd_history(ns: argparse.Namespace, settings: Settings) -> int:
    # Import lazily to keep CLI startup fast.
    from metrics.job_history import run_issue_history_job

    settings = _settings_from_args(ns, settings)
    connector = GitHubIssuesConnector.from_settings(settings)
    max_pages = ns.page_limit or None

    async def _run():
        if ns.skip_save:
            return await run_issue_history_job(
                connector=connector,
                store=None,
                owner=ns.owner,
                repo=ns.repo,
                max_pages=max_pages,
                skip_save=True,
            )
        async with create_store(settings.db_url) as store:
            return await run_issue_history_job(
                connector=connector,
                store=store,
                owner=ns.owner,
                repo=ns.repo,
                max_pages=max_pages,
            )

    try:
        history = asyncio.run(_run())
    except DuplicateDayError as exc:
        logger.error(f"Already exists: {exc}")
        return 1
    finally:
        connector.close()

    _write_output(history_to_payload(history), ns.output)
    return 0


def _cmd_snapshot(ns: argparse.Namespace, settings: Settings) -> int:
    from metrics.job_snapshot import run_issue_snapshot_job

    settings = _settings_from_args(ns, settings)
    connector = GitHubIssuesConnector.from_settings(settings)

    async def _run():
        async with create_store(settings.db_url) as store:
            return await run_issue_snapshot_job(
                connector=connector,
                store=store,
                owner=ns.owner,
                repo=ns.repo,
            )

    try:
        day = asyncio.run(_run())
    except DuplicateDayError as exc:
        logger.error(f"Already exists: {exc}")
        return 1
    finally:
        connector.close()

    _write_output(day.to_payload(), None)
    return 0


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="issue-history",
        description="Backfill and snapshot daily GitHub issue totals.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING). Defaults to env LOG_LEVEL or INFO.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def _add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--db",
            help="Database connection string (defaults to DB_CONN_STRING).",
        )
        p.add_argument("--auth", help="GitHub token (defaults to GITHUB_TOKEN).")
        p.add_argument("--owner", default="vercel", help="GitHub owner/org.")
        p.add_argument("--repo", default="next.js", help="GitHub repo name.")

    # ---- history ----
    hist = sub.add_parser(
        "history", help="Compute running issue totals since the first commit."
    )
    _add_common(hist)
    hist.add_argument(
        "--page-limit",
        type=_non_negative_int,
        default=2,
        help="Fetch at most N pages of 100 issues (0 = all pages).",
    )
    hist.add_argument(
        "--skip-save",
        action="store_true",
        help="Compute and print the history without writing to the database.",
    )
    hist.add_argument("--output", help="Write the JSON history to this file.")
    hist.set_defaults(func=_cmd_history)

    # ---- snapshot ----
    snap = sub.add_parser(
        "snapshot", help="Store today's open/closed totals reported by GitHub."
    )
    _add_common(snap)
    snap.set_defaults(func=_cmd_snapshot)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    if os.getenv("DISABLE_DOTENV", "").strip().lower() not in {
        "1",
        "true",
        "yes",
        "on",
    }:
        load_dotenv(REPO_ROOT / ".env")

    parser = build_parser()
    ns = parser.parse_args(argv)

    level_name = str(getattr(ns, "log_level", "") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    func = getattr(ns, "func", None)
    if func is None:
        parser.print_help()
        return 2
    return int(func(ns, Settings.from_env()))


if __name__ == "__main__":
    raise SystemExit(main())
