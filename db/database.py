"""
Async SQLAlchemy engine and sessions for the profile and subscription lookups.
Matchmaking only reads these tables, so sessions are never committed.
"""
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from config.settings import settings
from db.models import Base

logger = logging.getLogger(__name__)

# Lookups run on every candidate evaluation, keep a warm pool
engine = create_async_engine(
    settings.mysql_url,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=3600,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a read-only session; it is rolled back and closed afterwards."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def init_db() -> None:
    """Create the users and vip_subscriptions tables if they are missing (dev setups)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug(f"Ensured tables: {', '.join(Base.metadata.tables)}")


async def close_db() -> None:
    await engine.dispose()
