from typing import Optional

import typer

from catchup_feed.config import ConfigManager
from catchup_feed.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        import catchup_feed

        typer.echo(f"catchup-feed version: {catchup_feed.__version__}")
        raise typer.Exit()


app = typer.Typer(name="catchup-feed")


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """catchup-feed - article and source retrieval for the feed aggregator."""
    if ctx.invoked_subcommand is not None:
        app_config = ConfigManager().config
        setup_logging(app_config.log_level)
        ctx.obj = app_config


# Register sub-command groups
articles_app = typer.Typer(help="Search stored articles")
app.add_typer(articles_app, name="articles")

sources_app = typer.Typer(help="Search feed sources")
app.add_typer(sources_app, name="sources")
