"""
Data models returned by the issue tracker connectors.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Issue:
    """Timestamps of a single issue (pull requests are never represented)."""

    created_at: datetime
    closed_at: Optional[datetime] = None


@dataclass(frozen=True)
class IssueCounts:
    """Server-side issue totals for a repository."""

    total_opened: int
    total_closed: int
