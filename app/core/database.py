import logging
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from app.core.config import settings

logger = logging.getLogger(__name__)

# Connecting and every statement are bounded by STORE_TIMEOUT_SECONDS
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    poolclass=AsyncAdaptedQueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_timeout=settings.STORE_TIMEOUT_SECONDS,
    connect_args={
        "timeout": settings.STORE_TIMEOUT_SECONDS,
        "command_timeout": settings.STORE_TIMEOUT_SECONDS,
    },
)

# Shared by request handlers, the dashboard's parallel reads and the
# forwarder, which all need sessions of their own
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; anything left uncommitted on error is rolled back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.warning("Rolling back request session after a store error")
            await session.rollback()
            raise
