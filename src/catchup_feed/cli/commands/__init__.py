"""CLI commands for catchup-feed."""

from . import articles, db, sources

__all__ = ["articles", "db", "sources"]
