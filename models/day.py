from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Day(Base):
    """Running issue totals for one calendar day."""

    __tablename__ = "days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True, comment="Calendar day (UTC)")
    total_opened = Column(
        Integer, nullable=False, comment="Issues open at the end of the day"
    )
    total_closed = Column(
        Integer, nullable=False, comment="Issues closed up to and including the day"
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __init__(
        self,
        date: date,
        total_opened: int = 0,
        total_closed: int = 0,
        **kwargs,
    ):
        super().__init__(
            date=date, total_opened=total_opened, total_closed=total_closed, **kwargs
        )

    def to_payload(self) -> dict:
        """Serialize to the camelCase shape returned by the API."""
        return {
            "date": self.date.isoformat(),
            "totalOpened": self.total_opened,
            "totalClosed": self.total_closed,
        }

    def __repr__(self) -> str:
        return (
            f"<Day {self.date} opened={self.total_opened} "
            f"closed={self.total_closed}>"
        )
