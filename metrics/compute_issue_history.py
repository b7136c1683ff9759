from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from metrics.schemas import DayTotals, IssueHistory

# git log --reverse --pretty --date=iso (vercel/next.js)
# Date: 2016-10-05 16:35:00 -0700
FIRST_COMMIT_DATE = date(2016, 10, 5)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def each_day(start_day: date, end_day: date) -> List[date]:
    """Every calendar day from start_day through end_day, inclusive."""
    if start_day > end_day:
        return []
    span = (end_day - start_day).days
    return [start_day + timedelta(days=i) for i in range(span + 1)]


def _to_utc_day(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")


def _issue_days(issue: Any) -> Tuple[Optional[date], Optional[date]]:
    if isinstance(issue, dict):
        created_at, closed_at = issue.get("created_at"), issue.get("closed_at")
    else:
        created_at = getattr(issue, "created_at", None)
        closed_at = getattr(issue, "closed_at", None)
    return _to_utc_day(created_at), _to_utc_day(closed_at)


def compute_issue_history(
    issues: Iterable[Any],
    *,
    start_day: date = FIRST_COMMIT_DATE,
    today: Optional[date] = None,
) -> IssueHistory:
    """
    Compute running issue totals for every day from start_day through today.

    `issues` may hold `connectors.models.Issue` objects or `IssueRow` dicts, in
    any order. Days are UTC calendar days. This function is pure: it does no
    I/O and depends only on its arguments.

    Per day, in chronological order:
    - total_closed grows by the issues closed that day;
    - total_opened grows by the issues created that day and shrinks by the
      issues closed that day, whenever they were opened.

    Issues created before start_day are never added to total_opened, but their
    closures inside the range are still subtracted, so total_opened is not
    guaranteed to stay non-negative.
    """
    end_day = today or utc_today()

    opened_per_day: Counter = Counter()
    closed_per_day: Counter = Counter()
    for issue in issues:
        created_day, closed_day = _issue_days(issue)
        if created_day is not None:
            opened_per_day[created_day] += 1
        if closed_day is not None:
            closed_per_day[closed_day] += 1

    history: Dict[str, DayTotals] = {}
    opened_accumulator = 0
    closed_accumulator = 0
    for day in each_day(start_day, end_day):
        opened_today = opened_per_day.get(day, 0)
        closed_today = closed_per_day.get(day, 0)

        closed_accumulator += closed_today
        opened_accumulator += opened_today
        opened_accumulator -= closed_today

        history[day.isoformat()] = DayTotals(
            total_opened=opened_accumulator,
            total_closed=closed_accumulator,
        )

    return history


def history_to_payload(history: IssueHistory) -> Dict[str, Dict[str, int]]:
    """Serialize a history mapping to its camelCase JSON shape."""
    return {day: totals.to_payload() for day, totals in history.items()}
