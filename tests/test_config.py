"""Test configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from catchup_feed.config import CatchupFeedConfig, ConfigManager, DatabaseBackend
from catchup_feed.db import get_db_url


class TestCatchupFeedConfig:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = CatchupFeedConfig()

        assert config.database_backend == DatabaseBackend.SQLITE
        assert config.database_path == Path(tmp_path) / ".catchup-feed" / "catchup.db"
        assert config.search_timeout == 5.0
        assert config.similarity_default_limit == 10
        assert config.similarity_max_limit == 100
        assert config.pagination_default_limit == 10
        assert config.batch_max_parameters == 999
        assert config.batch_chunking_enabled is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CATCHUP_FEED_SEARCH_TIMEOUT", "2.5")
        monkeypatch.setenv("CATCHUP_FEED_SIMILARITY_MAX_LIMIT", "50")
        monkeypatch.setenv("CATCHUP_FEED_LOG_LEVEL", "DEBUG")

        config = CatchupFeedConfig()

        assert config.search_timeout == 2.5
        assert config.similarity_max_limit == 50
        assert config.log_level == "DEBUG"

    def test_default_limit_cannot_exceed_max(self):
        with pytest.raises(ValidationError):
            CatchupFeedConfig(similarity_default_limit=200, similarity_max_limit=100)
        with pytest.raises(ValidationError):
            CatchupFeedConfig(pagination_default_limit=200, pagination_max_limit=100)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            CatchupFeedConfig(search_timeout=0)

    def test_postgres_requires_url(self, monkeypatch):
        monkeypatch.delenv("CATCHUP_FEED_DATABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            CatchupFeedConfig(database_backend=DatabaseBackend.POSTGRES)


class TestDatabaseUrl:
    def test_sqlite_url(self, tmp_path):
        config = CatchupFeedConfig(database_path=tmp_path / "feed.db")
        assert get_db_url(config) == f"sqlite+aiosqlite:///{tmp_path / 'feed.db'}"

    @pytest.mark.parametrize(
        "url",
        [
            "postgresql://user:pw@localhost:5432/feed",
            "postgres://user:pw@localhost:5432/feed",
            "postgresql+asyncpg://user:pw@localhost:5432/feed",
        ],
    )
    def test_postgres_urls_use_asyncpg(self, url):
        config = CatchupFeedConfig(database_backend=DatabaseBackend.POSTGRES, database_url=url)
        assert get_db_url(config) == "postgresql+asyncpg://user:pw@localhost:5432/feed"


def test_config_manager_caches_and_reloads(monkeypatch):
    monkeypatch.setenv("CATCHUP_FEED_SEARCH_TIMEOUT", "3")
    manager = ConfigManager()

    first = manager.config
    assert first.search_timeout == 3.0
    assert manager.config is first

    monkeypatch.setenv("CATCHUP_FEED_SEARCH_TIMEOUT", "4")
    assert manager.config.search_timeout == 3.0
    assert manager.reload().search_timeout == 4.0
