"""Source search command."""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from catchup_feed import db
from catchup_feed.cli.app import sources_app
from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import CatchupFeedError
from catchup_feed.repository.source_repository import SourceRepository
from catchup_feed.schemas.feed import Source, SourceSearchFilters, SourceType
from catchup_feed.services.source_service import SourceService

console = Console()


async def _search_sources(
    app_config: CatchupFeedConfig, keywords: List[str], filters: SourceSearchFilters
) -> List[Source]:
    try:
        _, session_maker = await db.get_or_create_db(app_config)
        service = SourceService(SourceRepository(session_maker, app_config))
        return await service.search_with_filters(keywords, filters)
    finally:
        await db.shutdown_db()


@sources_app.command("search")
def search(
    ctx: typer.Context,
    keywords: Optional[List[str]] = typer.Argument(
        None, help="Keywords matched against name and feed URL; omit to list all"
    ),
    source_type: Optional[SourceType] = typer.Option(None, "--type", help="Source type"),
    active: Optional[bool] = typer.Option(None, "--active/--inactive", help="Active flag"),
):
    """Search or browse feed sources."""
    app_config: CatchupFeedConfig = ctx.obj
    filters = SourceSearchFilters(source_type=source_type, active=active)

    try:
        sources = asyncio.run(_search_sources(app_config, keywords or [], filters))
    except CatchupFeedError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    table = Table(title="Sources")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="magenta")
    table.add_column("Active")
    table.add_column("Feed URL", style="dim")
    table.add_column("Last crawled", style="green")
    for source in sources:
        table.add_row(
            str(source.id),
            source.name,
            source.source_type.value,
            "yes" if source.active else "no",
            source.feed_url,
            source.last_crawled_at.strftime("%Y-%m-%d %H:%M") if source.last_crawled_at else "-",
        )

    console.print(table)
    console.print(f"{len(sources)} source(s)")
