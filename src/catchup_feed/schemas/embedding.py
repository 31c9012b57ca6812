"""Models for stored article embeddings and similarity search results."""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from catchup_feed.utils import ensure_utc


class EmbeddingType(str, Enum):
    TITLE = "title"
    CONTENT = "content"
    SUMMARY = "summary"


class EmbeddingProvider(str, Enum):
    OPENAI = "openai"
    VOYAGE = "voyage"


class ArticleEmbedding(BaseModel):
    """One embedding vector for an article.

    ``embedding_type`` and ``provider`` are kept as plain strings so that an
    out-of-range value reaches the repository's ordered validation instead of
    failing here. Enum members are accepted and stored by value.
    """

    id: Optional[int] = None
    article_id: int
    embedding_type: str
    provider: str
    model: str
    dimension: int
    embedding: List[float] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("embedding_type", "provider", mode="before")
    @classmethod
    def enum_to_value(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class SimilarArticle(BaseModel):
    """A nearest-neighbor hit. ``similarity`` is ``1 - cosine distance``."""

    article_id: int
    similarity: float
