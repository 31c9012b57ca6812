"""Service layer for articles: input validation, partial updates and paginated results."""

from typing import List, Optional, Sequence

from loguru import logger

from catchup_feed import pagination
from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import NotFoundError, ValidationError
from catchup_feed.pagination import PaginatedResult, PaginationMetadata
from catchup_feed.repository.article_repository import ArticleRepository
from catchup_feed.schemas.feed import (
    Article,
    ArticleCreate,
    ArticleSearchFilters,
    ArticleUpdate,
    ArticleWithSource,
)
from catchup_feed.utils import validate_url


def _check_article_id(article_id: int) -> None:
    if article_id <= 0:
        raise ValidationError("id", "article id must be positive")


class ArticleService:
    """Validates caller input before it reaches the article repository."""

    def __init__(self, repository: ArticleRepository, app_config: CatchupFeedConfig):
        self.repository = repository
        self.app_config = app_config

    def _page_params(self, page: int, limit: int) -> tuple[int, int]:
        page, limit = pagination.normalize(page, limit, self.app_config.pagination_default_limit)
        if limit > self.app_config.pagination_max_limit:
            raise ValidationError(
                "limit", f"limit must not exceed {self.app_config.pagination_max_limit}"
            )
        return page, limit

    async def list_all(self) -> List[Article]:
        return await self.repository.list_all()

    async def list_with_source(self) -> List[ArticleWithSource]:
        return await self.repository.list_with_source()

    async def list_with_source_paginated(
        self, page: int = 1, limit: int = 0
    ) -> PaginatedResult[ArticleWithSource]:
        page, limit = self._page_params(page, limit)
        total = await self.repository.count()
        rows = await self.repository.list_with_source_paginated(
            pagination.to_offset(page, limit), limit
        )
        return PaginatedResult[ArticleWithSource](
            data=rows, pagination=PaginationMetadata.build(total, page, limit)
        )

    async def get(self, article_id: int) -> Article:
        _check_article_id(article_id)
        article = await self.repository.get_by_id(article_id)
        if article is None:
            raise NotFoundError(f"article {article_id} not found")
        return article

    async def get_with_source(self, article_id: int) -> ArticleWithSource:
        _check_article_id(article_id)
        article = await self.repository.get_with_source(article_id)
        if article is None:
            raise NotFoundError(f"article {article_id} not found")
        return article

    async def search(self, keyword: str) -> List[Article]:
        return await self.repository.search(keyword)

    async def search_with_filters(
        self, keywords: Sequence[str], filters: Optional[ArticleSearchFilters] = None
    ) -> List[Article]:
        return await self.repository.search_with_filters(keywords, filters)

    async def search_with_filters_paginated(
        self,
        keywords: Sequence[str],
        filters: Optional[ArticleSearchFilters] = None,
        page: int = 1,
        limit: int = 0,
    ) -> PaginatedResult[ArticleWithSource]:
        """One page of search results plus totals computed from the same predicate."""
        page, limit = self._page_params(page, limit)
        rows, total = await self.repository.search_with_filters_paginated(
            keywords, filters, pagination.to_offset(page, limit), limit
        )
        return PaginatedResult[ArticleWithSource](
            data=rows, pagination=PaginationMetadata.build(total, page, limit)
        )

    async def create(self, data: ArticleCreate) -> Article:
        if data.source_id <= 0:
            raise ValidationError("source_id", "must be positive")
        if not data.title:
            raise ValidationError("title", "is required")
        validate_url(data.url)

        article = await self.repository.create(data)
        logger.info(f"Created article {article.id} for source {article.source_id}")
        return article

    async def update(self, article_id: int, data: ArticleUpdate) -> Article:
        """Apply only the fields set on ``data`` to the stored article."""
        _check_article_id(article_id)
        changes = data.model_dump(exclude_unset=True)

        if "source_id" in changes and changes["source_id"] <= 0:
            raise ValidationError("source_id", "must be positive")
        if "title" in changes and not changes["title"]:
            raise ValidationError("title", "cannot be empty")
        if "url" in changes:
            validate_url(changes["url"])

        article = await self.get(article_id)
        updated = article.model_copy(update=changes)
        return await self.repository.update(updated)

    async def delete(self, article_id: int) -> None:
        _check_article_id(article_id)
        await self.repository.delete(article_id)
        logger.info(f"Deleted article {article_id}")
