import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from models.day import Base, Day

logger = logging.getLogger(__name__)


class StorageException(Exception):
    """Base exception for datastore errors."""

    pass


class DuplicateDayError(StorageException):
    """Raised when a day record collides with an already stored date."""

    pass


def detect_db_type(conn_string: str) -> str:
    """
    Detect database type from connection string.

    :param conn_string: Database connection string.
    :return: Database type ('postgres' or 'sqlite').
    :raises ValueError: If database type cannot be determined.
    """
    if not conn_string:
        raise ValueError("Connection string is required")

    conn_lower = conn_string.lower()

    # PostgreSQL connection strings
    if conn_lower.startswith("postgresql://") or conn_lower.startswith("postgres://"):
        return "postgres"
    if conn_lower.startswith("postgresql+asyncpg://"):
        return "postgres"

    # SQLite connection strings
    if conn_lower.startswith("sqlite://") or conn_lower.startswith(
        "sqlite+aiosqlite://"
    ):
        return "sqlite"

    # Extract scheme for better error reporting
    scheme = conn_string.split("://", 1)[0] if "://" in conn_string else "unknown"
    raise ValueError(
        f"Could not detect database type from connection string. "
        f"Supported: postgresql://, postgres://, sqlite://, "
        f"or variations with async drivers. Got scheme: '{scheme}'"
    )


def _async_url(conn_string: str, db_type: str) -> str:
    """Rewrite a plain connection string to use the async driver."""
    scheme, sep, rest = conn_string.partition("://")
    if "+" in scheme:
        return conn_string
    if db_type == "postgres":
        return f"postgresql+asyncpg{sep}{rest}"
    return f"sqlite+aiosqlite{sep}{rest}"


def create_store(conn_string: str, echo: bool = False) -> "SQLAlchemyStore":
    """
    Create a storage backend based on the connection string.

    :param conn_string: Database connection string (PostgreSQL or SQLite).
    :param echo: Whether to echo SQL statements.
    :return: SQLAlchemyStore instance.
    """
    db_type = detect_db_type(conn_string)
    return SQLAlchemyStore(_async_url(conn_string, db_type), echo=echo)


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # asyncpg / psycopg expose the SQLSTATE code; sqlite only has the message.
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == "23505":
            return True
    return "unique" in str(orig if orig is not None else exc).lower()


def _to_day(item: Any) -> Day:
    if isinstance(item, Day):
        return item
    if isinstance(item, dict):
        return Day(
            date=item["date"],
            total_opened=item.get("total_opened", 0),
            total_closed=item.get("total_closed", 0),
        )
    raise TypeError(f"Cannot store {type(item).__name__} as a day record")


class SQLAlchemyStore:
    """Async day-record store backed by SQLAlchemy."""

    def __init__(self, conn_string: str, echo: bool = False) -> None:
        engine_kwargs: Dict[str, Any] = {"echo": echo}

        # Only add pooling parameters for databases that support them
        if "sqlite" not in conn_string.lower():
            engine_kwargs.update(
                {
                    "pool_size": 5,
                    "max_overflow": 10,
                    "pool_pre_ping": True,  # Verify connections before using
                    "pool_recycle": 3600,  # Recycle connections after 1 hour
                }
            )

        self.engine = create_async_engine(conn_string, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    async def __aenter__(self) -> "SQLAlchemyStore":
        # Create tables for SQLite automatically
        if self.engine.dialect.name == "sqlite":
            await self.create_tables()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.engine.dispose()

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def create_day(self, record: Any) -> Day:
        """
        Insert a single day record.

        :param record: ``Day`` instance or dict with ``date``/``total_opened``/``total_closed``.
        :return: The stored ``Day``.
        :raises DuplicateDayError: If a record for the same date already exists.
        :raises StorageException: On any other database error.
        """
        day = _to_day(record)
        await self._commit([day])
        logger.info(f"Stored day {day.date.isoformat()}")
        return day

    async def create_days(self, records: Iterable[Any]) -> None:
        """
        Insert many day records in one transaction.

        Either every record is stored or none is.

        :raises DuplicateDayError: If any date is already stored or repeated in the batch.
        :raises StorageException: On any other database error.
        """
        days = [_to_day(item) for item in records]
        if not days:
            return
        await self._commit(days)
        logger.info(
            f"Stored {len(days)} days "
            f"({days[0].date.isoformat()}..{days[-1].date.isoformat()})"
        )

    async def _commit(self, days: List[Day]) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all(days)
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateDayError(
                    f"Day record already exists: {e.orig if e.orig is not None else e}"
                ) from e
            raise StorageException(f"Failed to store day records: {e}") from e
        except SQLAlchemyError as e:
            raise StorageException(f"Failed to store day records: {e}") from e

    async def get_day(self, day: date) -> Optional[Day]:
        async with self.session_factory() as session:
            result = await session.execute(select(Day).where(Day.date == day))
            return result.scalar_one_or_none()

    async def list_days(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Day]:
        """Return stored days in date order, optionally bounded (inclusive)."""
        stmt = select(Day).order_by(Day.date)
        if start is not None:
            stmt = stmt.where(Day.date >= start)
        if end is not None:
            stmt = stmt.where(Day.date <= end)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
