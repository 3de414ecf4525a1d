import logging
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from booking_service.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL, **kwargs) -> AsyncEngine:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=SQL_ECHO, future=True, **kwargs)


engine = build_engine()
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        if conn.dialect.name == "postgresql":
            # the appointment overlap exclusion constraint needs "=" on an integer column in a gist index
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready on %s", bind.dialect.name)


async def begin_write(db: AsyncSession, lock_key: int) -> None:
    """Open a write transaction that serializes writers for ``lock_key``.

    SQLite takes the database write lock up front with ``BEGIN IMMEDIATE``;
    PostgreSQL takes a transaction-scoped advisory lock on the key. Must be
    the first statement of the session's transaction.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        await db.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        await db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": lock_key})
