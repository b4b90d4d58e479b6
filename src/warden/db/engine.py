"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for each store operation. The stores open one short session
per call, so services stay stateless between requests.

SQLite (used by the tests) ignores foreign keys unless asked, so every
new SQLite connection turns them on; otherwise the challenge → user
cascade would silently not happen.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from warden.db.models import Base


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine for `database_url`.

    In-memory SQLite needs a single shared connection (StaticPool), or each
    pooled connection would see its own empty database. Sessions on that
    one connection are not isolated from each other, so the ledger claim
    does not stop concurrent rotations there; use a SQLite file or
    PostgreSQL wherever requests run concurrently.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(database_url, echo=echo, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    # Connection pool: min 5, max 20 connections.
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=15,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory — each store call gets its own session."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables directly. Tests and local SQLite only; use Alembic elsewhere."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
