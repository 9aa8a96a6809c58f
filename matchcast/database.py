"""Async database connection using SQLAlchemy (supports SQLite and PostgreSQL)."""

import logging
import os

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from matchcast.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def get_database_url(url: str = None) -> str:
    """Convert database URL to async format."""
    url = url or settings.DATABASE_URL

    # SQLite
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    # PostgreSQL
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def build_engine(url: str):
    """Create an async engine with per-backend settings."""
    engine_kwargs = {"echo": False}

    if url.startswith("sqlite"):
        # SQLite file lives under ./data by default
        path = url.split("///", 1)[-1] if "///" in url else ""
        if path and path != ":memory:":
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
        engine_kwargs["pool_recycle"] = 300

    return create_async_engine(url, **engine_kwargs)


def build_session_factory(engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


DATABASE_URL = get_database_url()
async_engine = build_engine(DATABASE_URL)
AsyncSessionLocal = build_session_factory(async_engine)


async def init_db(engine=None) -> None:
    """Initialize database tables."""
    # Register table metadata before create_all
    from matchcast import models  # noqa: F401

    engine = engine or async_engine
    logger.info("Initializing database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created successfully.")


async def close_db(engine=None) -> None:
    """Close database connections."""
    engine = engine or async_engine
    logger.info("Closing database connections...")
    await engine.dispose()
    logger.info("Database connections closed.")
