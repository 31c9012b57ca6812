"""Services layer."""

from catchup_feed.services.article_service import ArticleService
from catchup_feed.services.source_service import SourceService

__all__ = ["ArticleService", "SourceService"]
