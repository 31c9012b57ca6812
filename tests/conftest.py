"""Common test fixtures."""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, List, Literal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from catchup_feed.config import CatchupFeedConfig, DatabaseBackend
from catchup_feed.db import engine_session_factory
from catchup_feed.repository.article_embedding_repository import (
    ArticleEmbeddingRepositoryBase,
    create_article_embedding_repository,
)
from catchup_feed.repository.article_repository import ArticleRepository
from catchup_feed.repository.source_repository import SourceRepository
from catchup_feed.schemas.feed import Article, ArticleCreate, Source, SourceCreate

POSTGRES_URL_ENV = "CATCHUP_FEED_TEST_POSTGRES_URL"

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(
    params=[
        pytest.param("sqlite", id="sqlite"),
        pytest.param("postgres", id="postgres", marks=pytest.mark.postgres),
    ]
)
def db_backend(request) -> Literal["sqlite", "postgres"]:
    """Parametrize database tests over SQLite and Postgres.

    The Postgres variant runs only when CATCHUP_FEED_TEST_POSTGRES_URL points at a
    database with the pgvector extension available.
    """
    if request.param == "postgres" and not os.environ.get(POSTGRES_URL_ENV):
        pytest.skip(f"{POSTGRES_URL_ENV} not set")
    return request.param


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def app_config(config_home, db_backend, tmp_path) -> CatchupFeedConfig:
    if db_backend == "postgres":
        return CatchupFeedConfig(
            env="test",
            database_backend=DatabaseBackend.POSTGRES,
            database_url=os.environ[POSTGRES_URL_ENV],
        )
    return CatchupFeedConfig(
        env="test",
        database_backend=DatabaseBackend.SQLITE,
        database_path=tmp_path / "catchup-test.db",
    )


@pytest_asyncio.fixture
async def engine_factory(
    app_config,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Fresh schema per test: a new SQLite file, or dropped and recreated Postgres tables."""
    async with engine_session_factory(app_config, drop_existing=True) as (engine, session_maker):
        yield engine, session_maker


@pytest.fixture
def session_maker(engine_factory) -> async_sessionmaker[AsyncSession]:
    _, session_maker = engine_factory
    return session_maker


@pytest.fixture
def article_repository(session_maker, app_config) -> ArticleRepository:
    return ArticleRepository(session_maker, app_config)


@pytest.fixture
def source_repository(session_maker, app_config) -> SourceRepository:
    return SourceRepository(session_maker, app_config)


@pytest.fixture
def embedding_repository(session_maker, app_config) -> ArticleEmbeddingRepositoryBase:
    return create_article_embedding_repository(session_maker, app_config)


@pytest_asyncio.fixture
async def sample_source(source_repository) -> Source:
    return await source_repository.create(
        SourceCreate(name="Go Weekly", feed_url="https://golangweekly.com/rss")
    )


@pytest_asyncio.fixture
async def other_source(source_repository) -> Source:
    return await source_repository.create(
        SourceCreate(name="Python Insider", feed_url="https://blog.python.org/feeds/posts/default")
    )


@pytest_asyncio.fixture
async def sample_articles(article_repository, sample_source, other_source) -> List[Article]:
    """Five articles over five days, oldest first.

    Titles and summaries contain literal ``%``, ``_`` and ``\\`` so escaping can be
    checked against real rows.
    """
    rows = [
        (sample_source.id, "Go 1.22 released", "Range over integers and loop variables"),
        (sample_source.id, "Testing in Go", "Table driven tests with subtests"),
        (other_source.id, "Python 3.12 released", "Faster CPython, 50% quicker startup"),
        (other_source.id, "snake_case naming", "Style guide for Go and Python"),
        (sample_source.id, "Windows paths", "Escaping C:\\temp in Go strings"),
    ]
    articles = []
    for day, (source_id, title, summary) in enumerate(rows):
        articles.append(
            await article_repository.create(
                ArticleCreate(
                    source_id=source_id,
                    title=title,
                    url=f"https://example.com/articles/{day}",
                    summary=summary,
                    published_at=BASE_TIME + timedelta(days=day),
                )
            )
        )
    return articles
