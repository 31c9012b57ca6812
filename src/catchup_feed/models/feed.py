"""Tables for feed sources and the articles crawled from them."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catchup_feed.models.base import Base

# SQLite only auto-assigns ids for INTEGER PRIMARY KEY columns
BigIntId = BigInteger().with_variant(Integer, "sqlite")


class Source(Base):
    """A crawlable feed or scraped site."""

    __tablename__ = "sources"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    feed_url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
    last_crawled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    source_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default="RSS", server_default="RSS"
    )
    # JSON text, interpreted according to source_type
    scraper_config: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    articles: Mapped[List["Article"]] = relationship(
        back_populates="source", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_sources_active", "active"),
        Index("ix_sources_source_type", "source_type"),
    )

    def __repr__(self) -> str:
        return f"Source(id={self.id}, name='{self.name}', source_type='{self.source_type}')"


class Article(Base):
    """A single article discovered on a source."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("sources.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    source: Mapped[Source] = relationship(back_populates="articles")

    __table_args__ = (
        Index("ix_articles_published_at", "published_at"),
        Index("ix_articles_source_id", "source_id"),
    )

    def __repr__(self) -> str:
        return f"Article(id={self.id}, source_id={self.source_id}, url='{self.url}')"
