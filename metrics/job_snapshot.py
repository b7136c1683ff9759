from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from connectors.github import GitHubIssuesConnector
from metrics.compute_issue_history import utc_today
from models.day import Day
from storage import SQLAlchemyStore

logger = logging.getLogger(__name__)


async def run_issue_snapshot_job(
    *,
    connector: GitHubIssuesConnector,
    store: SQLAlchemyStore,
    owner: str,
    repo: str,
    today: Optional[date] = None,
) -> Day:
    """
    Record today's open/closed issue totals as reported by GitHub.

    The totals are GitHub's own counts, not derived from the issue listing.
    Raises `storage.DuplicateDayError` if today's row already exists.
    """
    today = today or utc_today()

    loop = asyncio.get_running_loop()
    counts = await loop.run_in_executor(
        None, lambda: connector.get_issue_counts(owner, repo)
    )

    day = await store.create_day(
        Day(
            date=today,
            total_opened=counts.total_opened,
            total_closed=counts.total_closed,
        )
    )
    logger.info(
        "Snapshot for %s/%s on %s: opened=%d closed=%d",
        owner,
        repo,
        today.isoformat(),
        day.total_opened,
        day.total_closed,
    )
    return day
