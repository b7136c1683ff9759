from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, TypedDict, Union

from typing_extensions import NotRequired


class IssueRow(TypedDict):
    # ISO 8601 strings as returned by the REST API, or parsed datetimes.
    created_at: Union[datetime, str]
    closed_at: NotRequired[Optional[Union[datetime, str]]]


@dataclass(frozen=True)
class DayTotals:
    total_opened: int
    total_closed: int

    def to_payload(self) -> Dict[str, int]:
        return {"totalOpened": self.total_opened, "totalClosed": self.total_closed}


IssueHistory = Dict[str, DayTotals]
