"""Shared test fixtures for the test suite."""
import pytest
import pytest_asyncio

from connectors.models import Issue
from fakes import FakeStore, utc
from settings import Settings
from storage import SQLAlchemyStore


@pytest.fixture
def settings():
    """Return settings with a known shared secret."""
    return Settings(secret="s3cret", github_token="test_token")


@pytest.fixture
def sample_issues():
    """Two issues opened on the first commit day, one closed the next day."""
    return [
        Issue(created_at=utc(2016, 10, 5), closed_at=utc(2016, 10, 6)),
        Issue(created_at=utc(2016, 10, 5, 18), closed_at=None),
    ]


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def test_db_url():
    """Return a SQLite in-memory database URL for testing."""
    return "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def sqlalchemy_store(test_db_url):
    """Create a SQLAlchemyStore with its tables in an in-memory database."""
    store = SQLAlchemyStore(test_db_url)
    async with store:
        yield store
