"""Embedding store: validated upserts and cosine nearest-neighbor search.

Two backends share one base class:

- SQLite: vectors are float32 BLOBs compared with sqlite-vec's
  ``vec_distance_cosine``. The extension is loaded into the aiosqlite
  connection on first use.
- Postgres: vectors live in a pgvector ``vector`` column and are compared with
  the ``<=>`` cosine-distance operator.

Similarity is ``1 - cosine distance``. Search only compares vectors whose
stored dimension equals the query's.
"""

import asyncio
import json
import struct
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

import sqlite_vec
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catchup_feed.config import CatchupFeedConfig, DatabaseBackend
from catchup_feed.errors import ValidationError
from catchup_feed.repository.repository import Repository, SearchObserver
from catchup_feed.schemas.embedding import (
    ArticleEmbedding,
    EmbeddingProvider,
    EmbeddingType,
    SimilarArticle,
)

EMBEDDING_TYPES = frozenset(member.value for member in EmbeddingType)
EMBEDDING_PROVIDERS = frozenset(member.value for member in EmbeddingProvider)
SEARCH_FAILED = "search failed"


def _distance_to_similarity(distance: float) -> float:
    return 1.0 - float(distance)


def _is_zero_vector(vector: Sequence[float]) -> bool:
    return all(value == 0 for value in vector)


def validate_embedding(embedding: ArticleEmbedding) -> None:
    """Check an embedding before it is written. Checks run in a fixed order.

    Raises:
        ValidationError: naming the first field that fails
    """
    if embedding.article_id <= 0:
        raise ValidationError("article_id", "article_id must be positive")
    if not embedding.embedding:
        raise ValidationError("embedding", "embedding must not be empty")
    if _is_zero_vector(embedding.embedding):
        raise ValidationError("embedding", "embedding must have a non-zero norm")
    if embedding.dimension != len(embedding.embedding):
        raise ValidationError(
            "dimension",
            f"dimension mismatch: declared {embedding.dimension}, "
            f"vector has {len(embedding.embedding)} values",
        )
    if embedding.embedding_type not in EMBEDDING_TYPES:
        raise ValidationError(
            "embedding_type", "embedding_type must be one of: " + ", ".join(sorted(EMBEDDING_TYPES))
        )
    if embedding.provider not in EMBEDDING_PROVIDERS:
        raise ValidationError(
            "provider", "provider must be one of: " + ", ".join(sorted(EMBEDDING_PROVIDERS))
        )
    if not embedding.model:
        raise ValidationError("model", "model is required")


class ArticleEmbeddingRepositoryBase(Repository, ABC):
    """Backend-independent validation, limit handling and result mapping."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_config: CatchupFeedConfig,
        observer: Optional[SearchObserver] = None,
    ):
        super().__init__(session_maker, app_config, observer)

    # Backend hooks

    @abstractmethod
    def _timestamp_now_expr(self) -> str: ...

    @abstractmethod
    def _vector_param(self, vector: Sequence[float]) -> Any: ...

    @abstractmethod
    def _vector_expr(self, param: str) -> str:
        """SQL expression that turns the bound parameter into the stored vector type."""

    @abstractmethod
    def _stored_vector_column(self) -> str: ...

    @abstractmethod
    def _decode_vector(self, value: Any) -> List[float]: ...

    @abstractmethod
    def _distance_expr(self, param: str) -> str: ...

    @abstractmethod
    def _valid_distance_condition(self, column: str) -> str:
        """Condition excluding rows whose distance is undefined (zero-norm vectors)."""

    async def _prepare_session(self, session: AsyncSession) -> None:
        """Per-session setup before vector SQL runs."""

    # Limits

    def normalize_limit(self, limit: int) -> int:
        """Non-positive limits become the default, oversized limits are capped."""
        if limit <= 0:
            return self.app_config.similarity_default_limit
        return min(limit, self.app_config.similarity_max_limit)

    # Operations

    async def upsert(self, embedding: ArticleEmbedding) -> ArticleEmbedding:
        """Insert an embedding, or replace the vector of an existing one.

        The row is keyed by (article_id, embedding_type, provider, model). On
        conflict the dimension, vector and updated_at change; id and created_at
        are kept.

        Raises:
            ValidationError: before any write, see ``validate_embedding``
        """
        validate_embedding(embedding)
        now = self._timestamp_now_expr()
        sql = text(f"""
            INSERT INTO article_embeddings (
                article_id, embedding_type, provider, model, dimension, embedding,
                created_at, updated_at
            ) VALUES (
                :article_id, :embedding_type, :provider, :model, :dimension,
                {self._vector_expr(":embedding")}, {now}, {now}
            )
            ON CONFLICT (article_id, embedding_type, provider, model) DO UPDATE SET
                dimension = excluded.dimension,
                embedding = excluded.embedding,
                updated_at = {now}
            RETURNING id, created_at, updated_at
        """)
        params = {
            "article_id": embedding.article_id,
            "embedding_type": embedding.embedding_type,
            "provider": embedding.provider,
            "model": embedding.model,
            "dimension": embedding.dimension,
            "embedding": self._vector_param(embedding.embedding),
        }

        async def work(session: AsyncSession) -> ArticleEmbedding:
            await self._prepare_session(session)
            row = (await session.execute(sql, params)).one()
            return ArticleEmbedding.model_validate(
                {
                    **embedding.model_dump(),
                    "id": row.id,
                    "created_at": row.created_at,
                    "updated_at": row.updated_at,
                }
            )

        return await self.run("upsert", work)

    async def find_by_article_id(self, article_id: int) -> List[ArticleEmbedding]:
        """All embeddings of an article ordered by (type, provider, model)."""
        sql = text(f"""
            SELECT id, article_id, embedding_type, provider, model, dimension,
                   {self._stored_vector_column()} AS embedding, created_at, updated_at
            FROM article_embeddings
            WHERE article_id = :article_id
            ORDER BY embedding_type, provider, model
        """)

        async def work(session: AsyncSession) -> List[ArticleEmbedding]:
            await self._prepare_session(session)
            result = await session.execute(sql, {"article_id": article_id})
            return [
                ArticleEmbedding(
                    id=row.id,
                    article_id=row.article_id,
                    embedding_type=row.embedding_type,
                    provider=row.provider,
                    model=row.model,
                    dimension=row.dimension,
                    embedding=self._decode_vector(row.embedding),
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                )
                for row in result.fetchall()
            ]

        return await self.run("find_by_article_id", work)

    async def search_similar(
        self,
        query_vector: Sequence[float],
        embedding_type: str | EmbeddingType,
        limit: int = 0,
    ) -> List[SimilarArticle]:
        """Nearest articles to ``query_vector`` among embeddings of one type.

        Results are ordered by descending similarity, ties broken by article id.

        Raises:
            ValidationError: empty query vector, zero query vector or unknown embedding type
            SearchTimeoutError: the query ran past ``search_timeout``
            StorageError: tagged "search failed" on backend errors
        """
        if isinstance(embedding_type, EmbeddingType):
            embedding_type = embedding_type.value
        if not query_vector:
            raise ValidationError("query_vector", "query vector must not be empty")
        if _is_zero_vector(query_vector):
            raise ValidationError("query_vector", "query vector must have a non-zero norm")
        if embedding_type not in EMBEDDING_TYPES:
            raise ValidationError(
                "embedding_type",
                "embedding_type must be one of: " + ", ".join(sorted(EMBEDDING_TYPES)),
            )

        resolved_limit = self.normalize_limit(limit)
        sql = text(f"""
            SELECT article_id, distance FROM (
                SELECT article_id, {self._distance_expr(":query_vector")} AS distance
                FROM article_embeddings
                WHERE embedding_type = :embedding_type AND dimension = :dimension
            ) AS scored
            WHERE {self._valid_distance_condition("distance")}
            ORDER BY distance ASC, article_id ASC
            LIMIT :limit
        """)
        params = {
            "query_vector": self._vector_param(query_vector),
            "embedding_type": embedding_type,
            "dimension": len(query_vector),
            "limit": resolved_limit,
        }

        async def work(session: AsyncSession) -> List[SimilarArticle]:
            await self._prepare_session(session)
            result = await session.execute(sql, params)
            return [
                SimilarArticle(
                    article_id=row.article_id, similarity=_distance_to_similarity(row.distance)
                )
                for row in result.fetchall()
            ]

        logger.debug(
            "Similarity search",
            embedding_type=embedding_type,
            dimension=len(query_vector),
            limit=resolved_limit,
        )
        return await self.run(
            "search_similar", work, timeout=self.search_timeout, failure_message=SEARCH_FAILED
        )

    async def delete_by_article_id(self, article_id: int) -> int:
        """Delete every embedding of an article. Returns the number of rows removed."""
        sql = text("DELETE FROM article_embeddings WHERE article_id = :article_id")

        async def work(session: AsyncSession) -> int:
            result = await session.execute(sql, {"article_id": article_id})
            return int(result.rowcount or 0)

        return await self.run("delete_by_article_id", work, row_count=lambda deleted: deleted)


class SQLiteArticleEmbeddingRepository(ArticleEmbeddingRepositoryBase):
    """Embedding store on SQLite with sqlite-vec."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_config: CatchupFeedConfig,
        observer: Optional[SearchObserver] = None,
    ):
        super().__init__(session_maker, app_config, observer)
        self._sqlite_vec_lock = asyncio.Lock()

    def _timestamp_now_expr(self) -> str:
        return "CURRENT_TIMESTAMP"

    def _vector_param(self, vector: Sequence[float]) -> Any:
        return sqlite_vec.serialize_float32([float(value) for value in vector])

    def _vector_expr(self, param: str) -> str:
        return param

    def _stored_vector_column(self) -> str:
        return "embedding"

    def _decode_vector(self, value: Any) -> List[float]:
        blob = bytes(value)
        return list(struct.unpack(f"{len(blob) // 4}f", blob))

    def _distance_expr(self, param: str) -> str:
        return f"vec_distance_cosine(embedding, {param})"

    def _valid_distance_condition(self, column: str) -> str:
        return f"{column} IS NOT NULL"

    async def _prepare_session(self, session: AsyncSession) -> None:
        await self._ensure_sqlite_vec_loaded(session)

    async def _vec_available(self, session: AsyncSession) -> bool:
        try:
            await session.execute(text("SELECT vec_version()"))
        except OperationalError:
            return False
        return True

    async def _ensure_sqlite_vec_loaded(self, session: AsyncSession) -> None:
        if await self._vec_available(session):
            return

        async with self._sqlite_vec_lock:
            if await self._vec_available(session):
                return

            async_connection = await session.connection()
            raw_connection = await async_connection.get_raw_connection()
            driver_connection = raw_connection.driver_connection
            await driver_connection.enable_load_extension(True)
            await driver_connection.load_extension(sqlite_vec.loadable_path())
            await driver_connection.enable_load_extension(False)
            await session.execute(text("SELECT vec_version()"))
            logger.debug("Loaded sqlite-vec extension")


class PostgresArticleEmbeddingRepository(ArticleEmbeddingRepositoryBase):
    """Embedding store on Postgres with pgvector."""

    def _timestamp_now_expr(self) -> str:
        return "NOW()"

    def _vector_param(self, vector: Sequence[float]) -> Any:
        return self._format_pgvector_literal(vector)

    @staticmethod
    def _format_pgvector_literal(vector: Sequence[float]) -> str:
        if not vector:
            return "[]"
        values = ",".join(f"{float(value):.12g}" for value in vector)
        return f"[{values}]"

    def _vector_expr(self, param: str) -> str:
        return f"CAST({param} AS vector)"

    def _stored_vector_column(self) -> str:
        return "embedding::text"

    def _decode_vector(self, value: Any) -> List[float]:
        return [float(v) for v in json.loads(value)]

    def _distance_expr(self, param: str) -> str:
        return f"(embedding <=> CAST({param} AS vector))"

    def _valid_distance_condition(self, column: str) -> str:
        # pgvector returns NaN rather than NULL for a zero vector
        return f"{column} IS NOT NULL AND {column} <> 'NaN'::float8"


def create_article_embedding_repository(
    session_maker: async_sessionmaker[AsyncSession],
    app_config: CatchupFeedConfig,
    observer: Optional[SearchObserver] = None,
) -> ArticleEmbeddingRepositoryBase:
    """Pick the embedding store implementation for the configured backend."""
    if app_config.database_backend == DatabaseBackend.POSTGRES:
        return PostgresArticleEmbeddingRepository(session_maker, app_config, observer)
    return SQLiteArticleEmbeddingRepository(session_maker, app_config, observer)
