"""Async database engine and session management for the hosted backend."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


def _is_sqlite(database_url: str) -> bool:
    return "sqlite" in database_url


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine, auto-detecting the driver from the URL."""
    connect_args = {}
    engine_kwargs = {
        "echo": echo,  # Set True only when debugging SQL queries, very verbose
        "connect_args": connect_args,
    }
    if _is_sqlite(database_url):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30  # Wait up to 30s for write lock (default 5s)
        if database_url.rstrip("/").endswith(":memory:") or database_url.endswith("://"):
            # In-memory databases live on a single shared connection
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_async_engine(database_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables (for local dev). Use migrations for production."""
    # Register models with Base.metadata
    import warranty_hub.domain.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # WAL mode allows concurrent reads alongside a single writer
    if _is_sqlite(str(engine.url)) and engine.url.database not in (None, "", ":memory:"):
        async with engine.begin() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
            await conn.execute(text("PRAGMA busy_timeout=30000"))
