from catchup_feed.repository.article_embedding_repository import (
    ArticleEmbeddingRepositoryBase,
    PostgresArticleEmbeddingRepository,
    SQLiteArticleEmbeddingRepository,
    create_article_embedding_repository,
)
from catchup_feed.repository.article_repository import ArticleRepository
from catchup_feed.repository.predicate_builder import FilterCondition, Predicate, PredicateBuilder
from catchup_feed.repository.repository import Repository, SearchObserver
from catchup_feed.repository.source_repository import SourceRepository

__all__ = [
    "ArticleEmbeddingRepositoryBase",
    "ArticleRepository",
    "FilterCondition",
    "PostgresArticleEmbeddingRepository",
    "Predicate",
    "PredicateBuilder",
    "Repository",
    "SQLiteArticleEmbeddingRepository",
    "SearchObserver",
    "SourceRepository",
    "create_article_embedding_repository",
]
