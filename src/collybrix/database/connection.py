"""Engines and sessions.

PostgreSQL (asyncpg) runs with the pool sized from ``[database]``; SQLite
URLs (aiosqlite, used for local runs and tests) keep the dialect's own
pool because it rejects the sizing arguments.
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from collybrix.config import DatabaseConfig
from collybrix.database.models.base import Base
from collybrix.logging import get_logger

logger = get_logger(__name__)


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Async engine for ``config.url``."""
    if _is_sqlite(config.url):
        return create_async_engine(config.url, echo=config.echo)
    return create_async_engine(
        config.url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Loaded attributes stay readable after commit
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the tables missing from the database.

    Alembic owns production migrations; this covers fresh SQLite files and
    first-run installs.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("schema_created", tables=sorted(Base.metadata.tables))
