"""Tests for SourceService."""

import pytest

from catchup_feed.errors import NotFoundError, ValidationError
from catchup_feed.schemas.feed import (
    NextJSScraperConfig,
    SourceCreate,
    SourceSearchFilters,
    SourceType,
    SourceUpdate,
)


@pytest.mark.asyncio
async def test_create_validates_feed_url(source_service):
    with pytest.raises(ValidationError) as exc:
        await source_service.create(SourceCreate(name="Bad", feed_url="example.com/rss"))
    assert exc.value.field == "feed_url"

    with pytest.raises(ValidationError) as exc:
        await source_service.create(SourceCreate(name="", feed_url="https://example.com/rss"))
    assert exc.value.field == "name"


@pytest.mark.asyncio
async def test_get_not_found(source_service):
    with pytest.raises(NotFoundError):
        await source_service.get(12)


@pytest.mark.asyncio
async def test_partial_update(source_service, sample_source):
    updated = await source_service.update(sample_source.id, SourceUpdate(active=False))

    assert updated.active is False
    stored = await source_service.get(sample_source.id)
    assert stored.active is False
    assert stored.name == sample_source.name
    assert stored.feed_url == sample_source.feed_url


@pytest.mark.asyncio
async def test_update_switches_type_with_config(source_service, sample_source):
    updated = await source_service.update(
        sample_source.id,
        SourceUpdate(source_type=SourceType.NEXTJS, scraper_config={"data_key": "posts"}),
    )

    assert updated.source_type == SourceType.NEXTJS
    stored = await source_service.get(sample_source.id)
    assert stored.scraper_config == NextJSScraperConfig(data_key="posts")

    # Back to RSS drops the config
    updated = await source_service.update(sample_source.id, SourceUpdate(source_type="RSS"))
    assert updated.scraper_config is None
    assert (await source_service.get(sample_source.id)).scraper_config is None


@pytest.mark.asyncio
async def test_update_to_scraper_type_requires_config(source_service, sample_source):
    with pytest.raises(ValidationError):
        await source_service.update(sample_source.id, SourceUpdate(source_type=SourceType.REMIX))


@pytest.mark.asyncio
async def test_update_validates_fields(source_service, sample_source):
    with pytest.raises(ValidationError):
        await source_service.update(sample_source.id, SourceUpdate(name=""))
    with pytest.raises(ValidationError):
        await source_service.update(sample_source.id, SourceUpdate(feed_url="nope"))


@pytest.mark.asyncio
async def test_search_with_filters_browse(source_service, sample_source, other_source):
    assert len(await source_service.search_with_filters([])) == 2
    active = await source_service.search_with_filters([], SourceSearchFilters(active=True))
    assert len(active) == 2
    assert [s.name for s in await source_service.search("python")] == ["Python Insider"]
