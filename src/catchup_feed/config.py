"""Configuration management for catchup-feed.

Settings are read from ``CATCHUP_FEED_*`` environment variables. Repositories and
services receive a config object explicitly; nothing below the CLI reads the
environment on its own.
"""

from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEARCH_TIMEOUT = 5.0
DEFAULT_PAGE_LIMIT = 10
SQLITE_MAX_PARAMETERS = 999


class DatabaseBackend(str, Enum):
    """Supported storage backends."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"


def _default_database_path() -> Path:
    return Path.home() / ".catchup-feed" / "catchup.db"


class CatchupFeedConfig(BaseSettings):
    """Runtime settings for the retrieval layer."""

    env: Literal["user", "dev", "test"] = Field(default="dev", description="Environment name")

    database_backend: DatabaseBackend = Field(
        default=DatabaseBackend.SQLITE,
        description="Storage backend used for articles, sources and embeddings",
    )
    database_path: Path = Field(
        default_factory=_default_database_path,
        description="SQLite database file (sqlite backend only)",
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Postgres connection URL (postgres backend only)",
    )

    search_timeout: float = Field(
        default=DEFAULT_SEARCH_TIMEOUT,
        gt=0,
        description="Seconds allowed for search, count and similarity queries",
    )
    similarity_default_limit: int = Field(default=10, gt=0)
    similarity_max_limit: int = Field(default=100, gt=0)

    pagination_default_limit: int = Field(default=DEFAULT_PAGE_LIMIT, gt=0)
    pagination_max_limit: int = Field(default=100, gt=0)

    batch_max_parameters: int = Field(
        default=SQLITE_MAX_PARAMETERS,
        gt=0,
        description="Bound-parameter ceiling for batch lookups on backends that impose one",
    )
    batch_chunking_enabled: bool = Field(
        default=True,
        description="Split oversized batch lookups instead of rejecting them",
    )

    log_level: str = Field(default="INFO", description="loguru level for the stderr sink")

    model_config = SettingsConfigDict(
        env_prefix="CATCHUP_FEED_",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_limits(self) -> "CatchupFeedConfig":
        if self.similarity_default_limit > self.similarity_max_limit:
            raise ValueError("similarity_default_limit must not exceed similarity_max_limit")
        if self.pagination_default_limit > self.pagination_max_limit:
            raise ValueError("pagination_default_limit must not exceed pagination_max_limit")
        if self.database_backend == DatabaseBackend.POSTGRES and not self.database_url:
            raise ValueError("database_url is required for the postgres backend")
        return self


class ConfigManager:
    """Lazily loads and caches the process configuration."""

    def __init__(self) -> None:
        self._config: Optional[CatchupFeedConfig] = None

    @property
    def config(self) -> CatchupFeedConfig:
        if self._config is None:
            self._config = CatchupFeedConfig()
            logger.debug(
                "Loaded configuration",
                backend=self._config.database_backend.value,
                env=self._config.env,
            )
        return self._config

    def reload(self) -> CatchupFeedConfig:
        self._config = None
        return self.config
