from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OWNER = "vercel"
DEFAULT_REPO = "next.js"
DEFAULT_PAGE_LIMIT = 2


class RepoRequest(BaseModel):
    secret: Optional[str] = None
    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO


class HistoryRequest(RepoRequest):
    # 0 or null removes the ceiling.
    page_limit: Optional[int] = Field(default=DEFAULT_PAGE_LIMIT, ge=0)
    skip_save: bool = False


class SnapshotRequest(RepoRequest):
    pass


class DayTotalsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_opened: int = Field(alias="totalOpened")
    total_closed: int = Field(alias="totalClosed")


class DayResponse(DayTotalsResponse):
    date: datetime.date


class MessageResponse(BaseModel):
    message: str
