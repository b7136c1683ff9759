from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from connectors.github import GitHubIssuesConnector
from metrics.compute_issue_history import (FIRST_COMMIT_DATE,
                                           compute_issue_history, utc_today)
from metrics.schemas import IssueHistory
from models.day import Day
from storage import SQLAlchemyStore

logger = logging.getLogger(__name__)


async def run_issue_history_job(
    *,
    connector: GitHubIssuesConnector,
    store: Optional[SQLAlchemyStore],
    owner: str,
    repo: str,
    max_pages: Optional[int] = None,
    skip_save: bool = False,
    start_day: date = FIRST_COMMIT_DATE,
    today: Optional[date] = None,
) -> IssueHistory:
    """
    Backfill daily issue totals for a repository.

    Fetches every issue (up to `max_pages` pages), computes the running totals
    for each day from `start_day` through today, and stores one `Day` per date
    in a single transaction. The full history is computed before the
    transaction opens, so nothing is written if fetching or computing fails.

    With `skip_save` the history is returned without touching `store`.

    Raises `storage.DuplicateDayError` when any of the dates is already stored;
    in that case no row is written.
    """
    today = today or utc_today()
    logger.info(
        "Issue history job: repo=%s/%s start=%s today=%s max_pages=%s skip_save=%s",
        owner,
        repo,
        start_day.isoformat(),
        today.isoformat(),
        max_pages or "none",
        skip_save,
    )

    # PyGithub is synchronous; keep the event loop free while paging.
    loop = asyncio.get_running_loop()
    issues = await loop.run_in_executor(
        None,
        lambda: connector.get_issues(owner, repo, max_pages=max_pages),
    )

    history = compute_issue_history(issues, start_day=start_day, today=today)

    if skip_save:
        logger.info("Skipping save")
        return history

    logger.info("Saving %d days to database...", len(history))
    await store.create_days(
        Day(
            date=date.fromisoformat(day),
            total_opened=totals.total_opened,
            total_closed=totals.total_closed,
        )
        for day, totals in history.items()
    )
    logger.info("Saved to database")
    return history
