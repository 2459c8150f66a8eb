from __future__ import annotations
"""SQLAlchemy 2.0 async database engine and session management.

MySQL 8.0+ in production (utf8mb4 forced through table args). A ``sqlite+aiosqlite``
URL is accepted for local runs and tests, in which case pooling is disabled.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from storyframe.config import get_settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings appropriate for the driver."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, poolclass=NullPool)
    return create_async_engine(
        url,
        echo=echo,
        pool_recycle=3600,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        connect_args={"connect_timeout": 30},
    )


settings = get_settings()

engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Forces utf8mb4 charset to prevent Emoji crashes in MySQL.
    """

    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is committed on success and rolled back on error.
    Always closed after use.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables defined by Base metadata (best-effort).

    Only used when AUTO_CREATE_TABLES is set; Alembic owns the schema otherwise.
    """
    import storyframe.models  # noqa: F401  - registers all tables

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.warning("Could not run create_all (tables may already exist): %s", e)


async def close_db() -> None:
    """Dispose of the engine connection pool.

    Called at application shutdown.
    """
    await engine.dispose()
