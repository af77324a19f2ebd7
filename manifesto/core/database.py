"""
Database configuration and session management
Uses SQLAlchemy with async support
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import NullPool
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Any, Dict
from fastapi import Request
import logging
import time

from .config import Settings

logger = logging.getLogger(__name__)


def build_engine(
    url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 10,
    ssl: bool = False,
) -> AsyncEngine:
    """Create the async engine, with pooling parameters only where supported"""
    if url.startswith("sqlite"):
        # SQLite doesn't support connection pooling parameters
        return create_async_engine(url, echo=echo, poolclass=NullPool)

    connect_args: Dict[str, Any] = {}
    if ssl:
        connect_args["ssl"] = "require"

    return create_async_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,  # Verify connections before use
        connect_args=connect_args,
    )


class Database:
    """Owns the engine and session factory for one application instance"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url = settings.database_url_async
        engine = build_engine(
            url,
            echo=settings.DATABASE_ECHO,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            ssl=settings.DATABASE_SSL and url.startswith("postgresql"),
        )
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions
        Used for concurrent lookups that each need their own session
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create tables for every registered model"""
        from manifesto.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def describe(self) -> Dict[str, Any]:
        """Run a round trip against the database and report what came back"""
        started = time.perf_counter()
        async with self.engine.connect() as conn:
            if self.engine.dialect.name == "postgresql":
                row = (await conn.execute(text("SELECT NOW(), version()"))).one()
                current_time, db_version = row[0], row[1]
            else:
                row = (await conn.execute(text("SELECT CURRENT_TIMESTAMP, sqlite_version()"))).one()
                current_time, db_version = row[0], f"SQLite {row[1]}"
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        return {
            "currentTime": str(current_time),
            "dbVersion": db_version,
            "latencyMs": latency_ms,
        }

    async def dispose(self) -> None:
        """Close database connections"""
        await self.engine.dispose()
        logger.info("Database connections closed")


# Database dependency
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Create and yield database session
    Ensures proper cleanup after use
    """
    database: Database = request.app.state.context.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
