import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_scoped_session,
    async_sessionmaker,
    create_async_engine,
)

from catchup_feed.config import CatchupFeedConfig, DatabaseBackend
from catchup_feed.models import Base
from catchup_feed.models.embedding import (
    CREATE_POSTGRES_ARTICLE_EMBEDDINGS,
    CREATE_POSTGRES_ARTICLE_EMBEDDINGS_TYPE_INDEX,
    CREATE_POSTGRES_VECTOR_EXTENSION,
    CREATE_SQLITE_ARTICLE_EMBEDDINGS,
    CREATE_SQLITE_ARTICLE_EMBEDDINGS_TYPE_INDEX,
    DROP_ARTICLE_EMBEDDINGS,
)

# Module level state, keyed by database URL
_engines: dict[str, AsyncEngine] = {}
_session_makers: dict[str, async_sessionmaker[AsyncSession]] = {}


def get_db_url(app_config: CatchupFeedConfig) -> str:
    """Get SQLAlchemy URL for the configured backend."""
    if app_config.database_backend == DatabaseBackend.POSTGRES:
        url = app_config.database_url or ""
        # Accept plain postgres URLs and route them through asyncpg
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix) :]
        return url

    return f"sqlite+aiosqlite:///{app_config.database_path}"


def get_scoped_session_factory(
    session_maker: async_sessionmaker[AsyncSession],
) -> async_scoped_session:
    """Create a scoped session factory scoped to current task."""
    return async_scoped_session(session_maker, scopefunc=asyncio.current_task)


@asynccontextmanager
async def scoped_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a scoped session with proper lifecycle management.

    Args:
        session_maker: Session maker to create scoped sessions from
    """
    factory = get_scoped_session_factory(session_maker)
    session = factory()
    try:
        if session.bind is not None and session.bind.dialect.name == "sqlite":
            await session.execute(text("PRAGMA foreign_keys=ON"))
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
        await factory.remove()


def _create_engine_and_session(
    app_config: CatchupFeedConfig,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Internal helper to create engine and session maker."""
    db_url = get_db_url(app_config)
    logger.debug(f"Creating engine for backend: {app_config.database_backend.value}")

    if app_config.database_backend == DatabaseBackend.SQLITE:
        app_config.database_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_async_engine(db_url, pool_pre_ping=True)

    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    return engine, session_maker


async def create_tables(
    engine: AsyncEngine, backend: DatabaseBackend, drop_existing: bool = False
) -> None:
    """Create the declarative tables plus the backend-specific embeddings table."""
    async with engine.begin() as conn:
        if drop_existing:
            await conn.execute(DROP_ARTICLE_EMBEDDINGS)
            await conn.run_sync(Base.metadata.drop_all)

        if backend == DatabaseBackend.POSTGRES:
            await conn.execute(CREATE_POSTGRES_VECTOR_EXTENSION)

        await conn.run_sync(Base.metadata.create_all)

        if backend == DatabaseBackend.POSTGRES:
            await conn.execute(CREATE_POSTGRES_ARTICLE_EMBEDDINGS)
            await conn.execute(CREATE_POSTGRES_ARTICLE_EMBEDDINGS_TYPE_INDEX)
        else:
            await conn.execute(CREATE_SQLITE_ARTICLE_EMBEDDINGS)
            await conn.execute(CREATE_SQLITE_ARTICLE_EMBEDDINGS_TYPE_INDEX)

    logger.info(f"Database tables ready for backend: {backend.value}")


async def get_or_create_db(
    app_config: CatchupFeedConfig,
    ensure_tables: bool = True,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Get or create the cached engine and session maker for the configured database."""
    db_key = get_db_url(app_config)

    if db_key not in _engines:
        engine, session_maker = _create_engine_and_session(app_config)
        _engines[db_key] = engine
        _session_makers[db_key] = session_maker

        if ensure_tables:
            await create_tables(engine, app_config.database_backend)

    return _engines[db_key], _session_makers[db_key]


async def shutdown_db() -> None:
    """Clean up all database connections."""
    for engine in _engines.values():
        await engine.dispose()
        logger.debug("Disposed engine")

    _engines.clear()
    _session_makers.clear()


@asynccontextmanager
async def engine_session_factory(
    app_config: CatchupFeedConfig,
    drop_existing: bool = False,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Create engine and session factory with tables in place.

    Note: This is primarily used for testing where we want a fresh database
    for each test. For production use, use get_or_create_db() instead.
    """
    engine, session_maker = _create_engine_and_session(app_config)
    try:
        await create_tables(engine, app_config.database_backend, drop_existing=drop_existing)
        yield engine, session_maker
    finally:
        await engine.dispose()
