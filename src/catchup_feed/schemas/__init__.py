"""Pydantic models returned to callers of the repositories and services."""

from catchup_feed.schemas.embedding import (
    ArticleEmbedding,
    EmbeddingProvider,
    EmbeddingType,
    SimilarArticle,
)
from catchup_feed.schemas.feed import (
    Article,
    ArticleCreate,
    ArticleSearchFilters,
    ArticleUpdate,
    ArticleWithSource,
    NextJSScraperConfig,
    RemixScraperConfig,
    ScraperConfig,
    Source,
    SourceCreate,
    SourceSearchFilters,
    SourceType,
    SourceUpdate,
    WebflowScraperConfig,
)

__all__ = [
    "Article",
    "ArticleCreate",
    "ArticleEmbedding",
    "ArticleSearchFilters",
    "ArticleUpdate",
    "ArticleWithSource",
    "EmbeddingProvider",
    "EmbeddingType",
    "NextJSScraperConfig",
    "RemixScraperConfig",
    "ScraperConfig",
    "SimilarArticle",
    "Source",
    "SourceCreate",
    "SourceSearchFilters",
    "SourceType",
    "SourceUpdate",
    "WebflowScraperConfig",
]
