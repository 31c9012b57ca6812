"""Pydantic models for articles and sources returned by the repositories.

The models are detached copies of stored rows. Datetimes are always timezone
aware (UTC); rows read back from SQLite arrive naive and are normalized here.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from catchup_feed.errors import ValidationError
from catchup_feed.utils import ensure_utc


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class SourceType(str, Enum):
    """How a source is crawled."""

    RSS = "RSS"
    WEBFLOW = "Webflow"
    NEXTJS = "NextJS"
    REMIX = "Remix"


class WebflowScraperConfig(BaseModel):
    """CSS selectors for a Webflow CMS listing page."""

    model_config = ConfigDict(extra="forbid")

    item_selector: str = Field(min_length=1)
    title_selector: str = Field(min_length=1)
    url_selector: str = Field(min_length=1)
    date_selector: str = ""
    date_format: str = ""
    url_prefix: str = ""


class NextJSScraperConfig(BaseModel):
    """Where to find the article list inside ``__NEXT_DATA__``."""

    model_config = ConfigDict(extra="forbid")

    data_key: str = Field(min_length=1)
    url_prefix: str = ""


class RemixScraperConfig(BaseModel):
    """Where to find the article list inside ``window.__remixContext``."""

    model_config = ConfigDict(extra="forbid")

    context_key: str = Field(min_length=1)
    url_prefix: str = ""


ScraperConfig = Union[WebflowScraperConfig, NextJSScraperConfig, RemixScraperConfig]

SCRAPER_CONFIG_MODELS: dict[SourceType, type[BaseModel]] = {
    SourceType.WEBFLOW: WebflowScraperConfig,
    SourceType.NEXTJS: NextJSScraperConfig,
    SourceType.REMIX: RemixScraperConfig,
}


def parse_scraper_config(source_type: SourceType, raw: Any) -> Optional[ScraperConfig]:
    """Build the scraper config variant that belongs to ``source_type``.

    Args:
        source_type: Type of the owning source
        raw: A model instance, a mapping, a JSON string or None

    Raises:
        ValidationError: when the value does not fit the variant, when an RSS
            source carries a config, or when a non-RSS source has none.
    """
    if source_type == SourceType.RSS:
        if raw is not None:
            raise ValidationError("scraper_config", "RSS sources do not take a scraper config")
        return None

    if raw is None:
        raise ValidationError("scraper_config", "scraper_config is required for non-RSS sources")

    model = SCRAPER_CONFIG_MODELS[source_type]
    if isinstance(raw, model):
        return raw  # type: ignore[return-value]
    if isinstance(raw, BaseModel):
        raise ValidationError(
            "scraper_config",
            f"{type(raw).__name__} does not match source_type {source_type.value}",
        )

    try:
        if isinstance(raw, (str, bytes)):
            return model.model_validate_json(raw)  # type: ignore[return-value]
        return model.model_validate(raw)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        raise ValidationError(
            "scraper_config", f"invalid config for {source_type.value}: {exc.error_count()} error(s)"
        ) from exc


def dump_scraper_config(config: Optional[ScraperConfig]) -> Optional[str]:
    if config is None:
        return None
    return json.dumps(config.model_dump(), sort_keys=True)


class Source(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    feed_url: str
    last_crawled_at: Optional[UtcDatetime] = None
    active: bool = True
    source_type: SourceType = SourceType.RSS
    scraper_config: Optional[ScraperConfig] = None


class SourceCreate(BaseModel):
    name: str
    feed_url: str
    active: bool = True
    source_type: Optional[SourceType] = None
    scraper_config: Optional[Union[ScraperConfig, dict[str, Any]]] = None


class SourceUpdate(BaseModel):
    """Partial update. Only fields that were explicitly set are applied."""

    name: Optional[str] = None
    feed_url: Optional[str] = None
    active: Optional[bool] = None
    source_type: Optional[SourceType] = None
    scraper_config: Optional[Union[ScraperConfig, dict[str, Any]]] = None


class SourceSearchFilters(BaseModel):
    source_type: Optional[SourceType] = None
    active: Optional[bool] = None


class Article(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_id: int
    title: str
    url: str
    summary: str = ""
    published_at: UtcDatetime
    created_at: UtcDatetime


class ArticleWithSource(BaseModel):
    """An article plus the display name of the source it came from."""

    article: Article
    source_name: str


class ArticleCreate(BaseModel):
    source_id: int
    title: str
    url: str
    summary: str = ""
    published_at: UtcDatetime


class ArticleUpdate(BaseModel):
    """Partial update. Only fields that were explicitly set are applied."""

    source_id: Optional[int] = None
    title: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None
    published_at: Optional[UtcDatetime] = None

    @field_validator("source_id", "title", "url", "summary", "published_at")
    @classmethod
    def reject_explicit_none(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field may be omitted but not set to null")
        return value


class ArticleSearchFilters(BaseModel):
    """Structured article filters. Date bounds are inclusive."""

    source_id: Optional[int] = None
    published_from: Optional[UtcDatetime] = None
    published_to: Optional[UtcDatetime] = None
