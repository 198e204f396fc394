"""
Database session configuration.

One async engine backs both package stores: the normalized `packages` table
and the `orders` table with its embedded package snapshots, plus the
`tracking_events` history. Repositories get one AsyncSession per request and
commit each write on their own.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from tracking_backend.app.core.config import settings

# Async engine (asyncpg in production)
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

# Sessions keep loaded records usable after each per-write commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Declarative base for Order, Package and TrackingEvent
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.
    
    Yields the session a request's dual-store repository runs on and closes it afterwards.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
