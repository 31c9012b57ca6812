"""Article search command."""

import asyncio
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from catchup_feed import db
from catchup_feed.cli.app import articles_app
from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import CatchupFeedError
from catchup_feed.pagination import PaginatedResult
from catchup_feed.repository.article_repository import ArticleRepository
from catchup_feed.schemas.feed import ArticleSearchFilters, ArticleWithSource
from catchup_feed.services.article_service import ArticleService

console = Console()


async def _search_articles(
    app_config: CatchupFeedConfig,
    keywords: List[str],
    filters: ArticleSearchFilters,
    page: int,
    limit: int,
) -> PaginatedResult[ArticleWithSource]:
    try:
        _, session_maker = await db.get_or_create_db(app_config)
        service = ArticleService(ArticleRepository(session_maker, app_config), app_config)
        return await service.search_with_filters_paginated(keywords, filters, page, limit)
    finally:
        await db.shutdown_db()


@articles_app.command("search")
def search(
    ctx: typer.Context,
    keywords: List[str] = typer.Argument(..., help="Keywords; every keyword must match"),
    source_id: Optional[int] = typer.Option(None, "--source-id", help="Only this source"),
    published_from: Optional[datetime] = typer.Option(
        None, "--from", help="Published at or after (UTC if no offset)"
    ),
    published_to: Optional[datetime] = typer.Option(
        None, "--to", help="Published at or before (UTC if no offset)"
    ),
    page: int = typer.Option(1, "--page", help="Page number, starting at 1"),
    limit: int = typer.Option(0, "--limit", help="Results per page (0 uses the default)"),
):
    """Search article titles and summaries."""
    app_config: CatchupFeedConfig = ctx.obj
    filters = ArticleSearchFilters(
        source_id=source_id, published_from=published_from, published_to=published_to
    )

    try:
        result = asyncio.run(_search_articles(app_config, keywords, filters, page, limit))
    except CatchupFeedError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    table = Table(title=f"Articles matching {' '.join(keywords)!r}")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Published", style="green")
    table.add_column("Source")
    table.add_column("Title")
    table.add_column("URL", style="dim")
    for row in result.data:
        table.add_row(
            str(row.article.id),
            row.article.published_at.strftime("%Y-%m-%d %H:%M"),
            row.source_name,
            row.article.title,
            row.article.url,
        )

    console.print(table)
    meta = result.pagination
    console.print(f"Page {meta.page} of {meta.total_pages} ({meta.total} total)")
