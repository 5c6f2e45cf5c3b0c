import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from clinic_booking.core.config import settings
from clinic_booking.core.exceptions import ConflictError, ConflictReason, StorageError

logger = logging.getLogger(__name__)

# First key of pg_advisory_xact_lock(int, int); the second key is the date ordinal.
DAY_LOCK_NAMESPACE = 4207


def async_database_url(url: str) -> str:
    """Map a plain database URL (as used by Alembic) to its async driver."""
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("sqlite"):
        return url
    # asyncpg does not accept psycopg params like sslmode/channel_binding.
    # Convert scheme and strip incompatible query params; SSL is enabled via connect_args.
    parsed = urlparse(url)
    scheme = parsed.scheme
    if scheme in ("postgres", "postgresql"):
        scheme = "postgresql+asyncpg"
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.pop("sslmode", None)
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    return urlunparse((scheme, parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment))


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    pysqlite/aiosqlite defer BEGIN until the first write, which lets two
    transactions read the same "free" slot before either inserts. BEGIN
    IMMEDIATE serializes them instead; waiters block on the busy timeout.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_url(url: str, *, echo: bool = False) -> AsyncEngine:
    async_url = async_database_url(url)
    if async_url.startswith("sqlite"):
        engine = create_async_engine(async_url, echo=echo, poolclass=NullPool)
        _serialize_sqlite_writers(engine)
        return engine
    return create_async_engine(
        async_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        connect_args={"ssl": True} if settings.database_ssl else {},
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_from_url(settings.database_url, echo=settings.env == "development")

async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def _dialect_name(session: AsyncSession) -> str:
    return session.bind.dialect.name


async def lock_day(session: AsyncSession, day: date) -> None:
    """Serialize writers targeting `day` until the current transaction ends.

    PostgreSQL takes a transaction-scoped advisory lock, so the lock holds
    across processes and instances. SQLite transactions already run under
    BEGIN IMMEDIATE (see _serialize_sqlite_writers).
    """
    if _dialect_name(session) == "postgresql":
        await session.execute(
            text("SELECT pg_advisory_xact_lock(:ns, :day)").bindparams(
                ns=DAY_LOCK_NAMESPACE, day=day.toordinal()
            )
        )


async def begin_snapshot(session: AsyncSession) -> None:
    """Start a read transaction where all statements see one snapshot."""
    if session.in_transaction():
        return
    if _dialect_name(session) == "postgresql":
        await session.connection(execution_options={"isolation_level": "REPEATABLE READ"})


@asynccontextmanager
async def atomic(session: AsyncSession, conflict_reason: ConflictReason) -> AsyncIterator[None]:
    """Run a check-then-write section as one transaction.

    Commits on success. A unique/foreign key violation at flush or commit time
    becomes ConflictError(conflict_reason); other database failures become
    StorageError. The session is rolled back on every failure so the day lock
    is released before the error reaches the caller.
    """
    try:
        yield
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.info("Constraint violation mapped to conflict %s: %s", conflict_reason.value, e.orig)
        raise ConflictError(conflict_reason) from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Transaction aborted: %s", e)
        raise StorageError("Storage unavailable, please retry") from e
    except Exception:
        await session.rollback()
        raise
