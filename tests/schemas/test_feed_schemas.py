"""Tests for article and source models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from catchup_feed.errors import ValidationError
from catchup_feed.schemas.feed import (
    Article,
    ArticleUpdate,
    NextJSScraperConfig,
    RemixScraperConfig,
    SourceType,
    WebflowScraperConfig,
    dump_scraper_config,
    parse_scraper_config,
)


class TestScraperConfig:
    def test_rss_takes_no_config(self):
        assert parse_scraper_config(SourceType.RSS, None) is None
        with pytest.raises(ValidationError):
            parse_scraper_config(SourceType.RSS, {"data_key": "x"})

    @pytest.mark.parametrize(
        "source_type", [SourceType.WEBFLOW, SourceType.NEXTJS, SourceType.REMIX]
    )
    def test_scraper_types_require_config(self, source_type):
        with pytest.raises(ValidationError) as exc:
            parse_scraper_config(source_type, None)
        assert exc.value.field == "scraper_config"

    def test_parses_mapping_and_json(self):
        webflow = parse_scraper_config(
            SourceType.WEBFLOW,
            {"item_selector": ".post", "title_selector": "h2", "url_selector": "a"},
        )
        assert isinstance(webflow, WebflowScraperConfig)

        remix = parse_scraper_config(SourceType.REMIX, '{"context_key": "routes/blog"}')
        assert remix == RemixScraperConfig(context_key="routes/blog")

    def test_dump_then_parse_keeps_values(self):
        config = NextJSScraperConfig(data_key="props.pageProps.posts", url_prefix="https://x.dev")
        raw = dump_scraper_config(config)

        assert parse_scraper_config(SourceType.NEXTJS, raw) == config
        assert dump_scraper_config(None) is None

    @pytest.mark.parametrize(
        "raw",
        [
            "{broken",
            '{"data_key": ""}',
            '{"data_key": "posts", "unexpected": 1}',
            {"context_key": "posts"},
        ],
    )
    def test_rejects_invalid_config(self, raw):
        with pytest.raises(ValidationError):
            parse_scraper_config(SourceType.NEXTJS, raw)

    def test_rejects_model_of_other_type(self):
        with pytest.raises(ValidationError):
            parse_scraper_config(SourceType.NEXTJS, RemixScraperConfig(context_key="x"))


def test_article_datetimes_normalized_to_utc():
    article = Article(
        id=1,
        source_id=1,
        title="t",
        url="https://example.com",
        published_at="2024-03-01 12:00:00.000000",
        created_at=datetime(2024, 3, 1, 13, 0),
    )

    assert article.published_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert article.created_at.tzinfo == timezone.utc


def test_article_update_tracks_set_fields():
    update = ArticleUpdate(title="New title")
    assert update.model_dump(exclude_unset=True) == {"title": "New title"}

    with pytest.raises(PydanticValidationError):
        ArticleUpdate(title=None)
