"""Main CLI entry point for catchup-feed."""  # pragma: no cover

from catchup_feed.cli.app import app  # pragma: no cover

# Register commands
from catchup_feed.cli.commands import articles, db, sources  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
