"""Database management commands."""

import asyncio

import typer
from loguru import logger
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from catchup_feed import db
from catchup_feed.cli.app import app
from catchup_feed.config import CatchupFeedConfig

console = Console()


async def _init_db(app_config: CatchupFeedConfig, drop_existing: bool) -> None:
    try:
        engine, _ = await db.get_or_create_db(app_config, ensure_tables=False)
        await db.create_tables(engine, app_config.database_backend, drop_existing=drop_existing)
    finally:
        await db.shutdown_db()


@app.command("init-db")
def init_db(
    ctx: typer.Context,
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables first"),
):
    """Create the sources, articles and article_embeddings tables."""
    app_config: CatchupFeedConfig = ctx.obj
    if drop and not typer.confirm("Drop all tables and recreate them?"):
        raise typer.Exit()

    try:
        asyncio.run(_init_db(app_config, drop))
    except SQLAlchemyError as exc:
        logger.error(f"init-db failed: {type(exc).__name__}")
        console.print(f"[red]Error:[/red] could not initialize database ({type(exc).__name__})")
        raise typer.Exit(1)

    console.print(f"[green]Database ready[/green] ({app_config.database_backend.value})")
