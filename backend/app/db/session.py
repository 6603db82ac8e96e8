from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.APP_ENV == "development",
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ─── Sync sessions (scheduler passes and Celery workers are synchronous) ───

@lru_cache
def _sync_sessionmaker() -> sessionmaker:
    sync_engine = create_engine(settings.DATABASE_URL_SYNC, pool_pre_ping=True, pool_size=5)
    return sessionmaker(bind=sync_engine, expire_on_commit=False, autoflush=False)


def get_sync_session() -> Session:
    """Return a sync SQLAlchemy session. Caller must close it."""
    return _sync_sessionmaker()()
