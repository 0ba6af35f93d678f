import os
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from contextlib import asynccontextmanager
import logging

from nhl_shots.config import DEFAULT_DATABASE_URL, normalize_database_url
from database.models import Base

logger = logging.getLogger(__name__)

def get_database_url(db_url: Optional[str] = None) -> str:
    """Get the async driver URL for the prediction store"""
    db_url = db_url or os.getenv("DATABASE_URL", "")

    if not db_url:
        logger.warning(f"DATABASE_URL not set, using {DEFAULT_DATABASE_URL}")
        return DEFAULT_DATABASE_URL

    db_url = normalize_database_url(db_url)

    try:
        url = make_url(db_url)
    except ArgumentError as e:
        logger.error(f"Failed to parse DATABASE_URL: {e}")
        raise

    logger.info(f"Database URL configured ({url.drivername})")

    return db_url


def create_engine_from_url(db_url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Create the async engine for the prediction store"""
    url = get_database_url(db_url)
    engine = create_async_engine(url, pool_pre_ping=True, **kwargs)
    logger.info(f"Database engine created ({engine.dialect.name})")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create tables that do not exist yet"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


@asynccontextmanager
async def get_db_session(session_factory: async_sessionmaker):
    """Get async database session"""
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
