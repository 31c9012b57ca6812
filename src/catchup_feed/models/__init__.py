"""Models package for catchup-feed."""

from catchup_feed.models.base import Base
from catchup_feed.models.feed import Article, Source

__all__ = [
    "Base",
    "Article",
    "Source",
]
