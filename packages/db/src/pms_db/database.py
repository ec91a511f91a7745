# This project was developed with assistance from AI tools.
"""Async engine, session factory, and FastAPI session dependency."""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import db_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


engine = create_async_engine(
    db_settings.DATABASE_URL,
    echo=db_settings.SQL_ECHO,
    pool_size=db_settings.DB_POOL_SIZE,
    max_overflow=db_settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


class DatabaseService:
    """Thin wrapper used by the health endpoint to probe the database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def health_check(self) -> dict:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "healthy", "message": "PostgreSQL connection OK"}
        except Exception as exc:
            logger.warning("Database health check failed: %s", exc)
            return {"status": "unhealthy", "message": f"PostgreSQL unreachable: {exc}"}


db_service = DatabaseService(engine=engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yield a session, roll back on error."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_db_service() -> DatabaseService:
    return db_service
