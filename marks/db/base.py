# marks/db/base.py
# Async engine and session helpers for the bookmarks database.

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from marks import config


def _to_asyncpg_url(url: str) -> str:
    """
    Point any PostgreSQL URL at the asyncpg driver.

    ``postgres://``, ``postgresql://`` and ``postgresql+psycopg2://`` (what
    testcontainers hands out) all become ``postgresql+asyncpg://``.
    """
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    parsed = make_url(url)
    return parsed.set(drivername="postgresql+asyncpg").render_as_string(hide_password=False)


# Tables register here; Alembic revisions mirror it by hand.
metadata: MetaData = MetaData()


ASYNC_DATABASE_URL: str = _to_asyncpg_url(config.DATABASE_URL)

# No connection is opened until the first query.
async_engine: AsyncEngine = create_async_engine(
    ASYNC_DATABASE_URL,
    echo=config.DEBUG,
    pool_pre_ping=True,
)

AsyncSessionFactory = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session; the caller commits."""
    async with AsyncSessionFactory() as session:
        yield session


@asynccontextmanager
async def transaction(session_factory=get_session) -> AsyncIterator[AsyncSession]:
    """Session wrapped in BEGIN ... COMMIT, rolled back if the block raises."""
    async with session_factory() as session:
        async with session.begin():
            yield session


async def select_one() -> int:
    """Round-trip ``SELECT 1`` used by the health probes."""
    async with get_session() as session:
        result = await session.execute(text("SELECT 1"))
        return result.scalar_one()
