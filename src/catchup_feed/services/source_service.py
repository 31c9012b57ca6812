"""Service layer for sources."""

from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from catchup_feed.errors import NotFoundError, ValidationError
from catchup_feed.repository.source_repository import SourceRepository
from catchup_feed.schemas.feed import (
    Source,
    SourceCreate,
    SourceSearchFilters,
    SourceType,
    SourceUpdate,
    parse_scraper_config,
)
from catchup_feed.utils import validate_url


def _check_source_id(source_id: int) -> None:
    if source_id <= 0:
        raise ValidationError("id", "source id must be positive")


class SourceService:
    def __init__(self, repository: SourceRepository):
        self.repository = repository

    async def list_all(self) -> List[Source]:
        return await self.repository.list_all()

    async def list_active(self) -> List[Source]:
        return await self.repository.list_active()

    async def get(self, source_id: int) -> Source:
        _check_source_id(source_id)
        source = await self.repository.get_by_id(source_id)
        if source is None:
            raise NotFoundError(f"source {source_id} not found")
        return source

    async def search(self, keyword: str) -> List[Source]:
        return await self.repository.search(keyword)

    async def search_with_filters(
        self, keywords: Sequence[str], filters: Optional[SourceSearchFilters] = None
    ) -> List[Source]:
        """Sources matching the keywords and filters. No keywords and no filters lists all."""
        return await self.repository.search_with_filters(keywords, filters)

    async def create(self, data: SourceCreate) -> Source:
        if not data.name:
            raise ValidationError("name", "is required")
        validate_url(data.feed_url, field="feed_url")

        source = await self.repository.create(data)
        logger.info(f"Created source {source.id} ({source.source_type.value})")
        return source

    async def update(self, source_id: int, data: SourceUpdate) -> Source:
        """Apply only the fields set on ``data``.

        Changing the source type without a new scraper config re-validates the
        existing config against the new type.
        """
        _check_source_id(source_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and not changes["name"]:
            raise ValidationError("name", "cannot be empty")
        if "feed_url" in changes:
            if changes["feed_url"] is None:
                raise ValidationError("feed_url", "cannot be empty")
            validate_url(changes["feed_url"], field="feed_url")
        if "active" in changes and changes["active"] is None:
            raise ValidationError("active", "cannot be null")

        source = await self.get(source_id)
        source_type = changes.get("source_type") or source.source_type
        # model_dump turned a config model into a dict; use the value as passed
        if "scraper_config" in changes:
            raw_config = data.scraper_config
        elif source_type == SourceType.RSS:
            raw_config = None
        else:
            raw_config = source.scraper_config
        changes["source_type"] = source_type
        changes["scraper_config"] = parse_scraper_config(source_type, raw_config)

        updated = source.model_copy(update=changes)
        return await self.repository.update(updated)

    async def delete(self, source_id: int) -> None:
        _check_source_id(source_id)
        await self.repository.delete(source_id)
        logger.info(f"Deleted source {source_id}")

    async def touch_crawled_at(self, source_id: int, crawled_at: datetime) -> None:
        _check_source_id(source_id)
        await self.repository.touch_crawled_at(source_id, crawled_at)
