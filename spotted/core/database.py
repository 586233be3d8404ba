from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from spotted.core.config import settings


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"pool_pre_ping": True}
    if "sqlite" in url:
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases live and die with their connection
        if url.endswith("://") or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = settings.DB_POOL_SIZE
        kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
    return kwargs


def create_engine(url: str):
    """Build an async engine; SQLite connections get foreign keys enforced."""
    async_engine = create_async_engine(url, **_engine_kwargs(url))

    if "sqlite" in url:
        @event.listens_for(async_engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return async_engine


engine = create_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create all tables. Called from the app lifespan."""
    from spotted.models import Base  # registers all models

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
