from datetime import date
from typing import Optional, get_type_hints

import pytest

from connectors.exceptions import APIException
from connectors.github import GitHubIssuesConnector
from connectors.models import IssueCounts
from fakes import FakeConnector
from metrics.job_history import run_issue_history_job
from metrics.job_snapshot import run_issue_snapshot_job
from metrics.schemas import DayTotals
from models import Day
from storage import DuplicateDayError, SQLAlchemyStore


class TestIssueHistoryJob:
    @pytest.mark.asyncio
    async def test_persists_every_day(self, sqlalchemy_store, sample_issues):
        connector = FakeConnector(issues=sample_issues)

        history = await run_issue_history_job(
            connector=connector,
            store=sqlalchemy_store,
            owner="vercel",
            repo="next.js",
            max_pages=2,
            today=date(2016, 10, 7),
        )

        assert connector.calls == [("get_issues", "vercel", "next.js", 2)]
        assert history["2016-10-07"] == DayTotals(total_opened=1, total_closed=1)
        days = await sqlalchemy_store.list_days()
        assert [(d.date.isoformat(), d.total_opened, d.total_closed) for d in days] == [
            ("2016-10-05", 2, 0),
            ("2016-10-06", 1, 1),
            ("2016-10-07", 1, 1),
        ]

    @pytest.mark.asyncio
    async def test_skip_save_does_not_touch_store(self, sample_issues):
        history = await run_issue_history_job(
            connector=FakeConnector(issues=sample_issues),
            store=None,
            owner="vercel",
            repo="next.js",
            skip_save=True,
            today=date(2016, 10, 6),
        )

        assert list(history) == ["2016-10-05", "2016-10-06"]

    @pytest.mark.asyncio
    async def test_duplicate_backfill_leaves_store_unchanged(
        self, sqlalchemy_store, sample_issues
    ):
        await sqlalchemy_store.create_day(
            Day(date=date(2016, 10, 6), total_opened=42, total_closed=7)
        )

        with pytest.raises(DuplicateDayError):
            await run_issue_history_job(
                connector=FakeConnector(issues=sample_issues),
                store=sqlalchemy_store,
                owner="vercel",
                repo="next.js",
                today=date(2016, 10, 7),
            )

        days = await sqlalchemy_store.list_days()
        assert [(d.date, d.total_opened) for d in days] == [(date(2016, 10, 6), 42)]

    @pytest.mark.asyncio
    async def test_fetch_failure_writes_nothing(self, fake_store):
        with pytest.raises(APIException):
            await run_issue_history_job(
                connector=FakeConnector(error=APIException("boom")),
                store=fake_store,
                owner="vercel",
                repo="next.js",
                today=date(2016, 10, 7),
            )

        assert fake_store.days == {}

    @pytest.mark.asyncio
    async def test_custom_start_day(self, fake_store, sample_issues):
        history = await run_issue_history_job(
            connector=FakeConnector(issues=sample_issues),
            store=fake_store,
            owner="vercel",
            repo="next.js",
            start_day=date(2016, 10, 6),
            today=date(2016, 10, 6),
        )

        # The two openings on 2016-10-05 fall before the range.
        assert history == {"2016-10-06": DayTotals(total_opened=-1, total_closed=1)}
        assert list(fake_store.days) == [date(2016, 10, 6)]


def test_jobs_declare_connector_and_store_types():
    history_hints = get_type_hints(run_issue_history_job)
    snapshot_hints = get_type_hints(run_issue_snapshot_job)

    assert history_hints["connector"] is GitHubIssuesConnector
    assert history_hints["store"] == Optional[SQLAlchemyStore]
    assert snapshot_hints["connector"] is GitHubIssuesConnector
    assert snapshot_hints["store"] is SQLAlchemyStore


class TestIssueSnapshotJob:
    @pytest.mark.asyncio
    async def test_stores_todays_counts(self, sqlalchemy_store):
        connector = FakeConnector(counts=IssueCounts(total_opened=5, total_closed=12))

        day = await run_issue_snapshot_job(
            connector=connector,
            store=sqlalchemy_store,
            owner="vercel",
            repo="next.js",
            today=date(2024, 5, 1),
        )

        assert connector.calls == [("get_issue_counts", "vercel", "next.js")]
        assert day.to_payload() == {
            "date": "2024-05-01",
            "totalOpened": 5,
            "totalClosed": 12,
        }
        stored = await sqlalchemy_store.get_day(date(2024, 5, 1))
        assert (stored.total_opened, stored.total_closed) == (5, 12)

    @pytest.mark.asyncio
    async def test_second_snapshot_same_day_fails(self, sqlalchemy_store):
        connector = FakeConnector(counts=IssueCounts(total_opened=5, total_closed=12))
        kwargs = dict(
            connector=connector,
            store=sqlalchemy_store,
            owner="vercel",
            repo="next.js",
            today=date(2024, 5, 1),
        )

        await run_issue_snapshot_job(**kwargs)
        with pytest.raises(DuplicateDayError):
            await run_issue_snapshot_job(**kwargs)

        assert len(await sqlalchemy_store.list_days()) == 1
