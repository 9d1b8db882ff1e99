"""Main Typer application: imports and registers all CLI commands.

Entry point: ``stillframe`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from stillframe.cli.commands.digest import digest_app
from stillframe.cli.commands.display import mode_app, render_cmd, select_cmd, status_cmd
from stillframe.cli.commands.inscribe import inscribe_cmd, thumbnail_cmd
from stillframe.cli.commands.log import log_app
from stillframe.cli.commands.sources import sources_app
from stillframe.cli.context import configure_logging
from stillframe.config import StillframeConfig

app = typer.Typer(
    name="stillframe",
    help="Stillframe: compressed on-chain thumbnails with digest-verified full-resolution sources.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (defaults to STILLFRAME_LOG_LEVEL)."
    ),
) -> None:
    configure_logging(log_level or StillframeConfig().log_level)


# Register subcommands
app.command(name="inscribe", help="Store a compressed thumbnail.")(inscribe_cmd)
app.command(name="thumbnail", help="Write the stored thumbnail to a file.")(thumbnail_cmd)
app.command(name="select", help="Choose the artist source shown in direct mode.")(select_cmd)
app.command(name="render", help="Resolve the current display output.")(render_cmd)
app.command(name="status", help="Show preserver state.")(status_cmd)
app.add_typer(sources_app, name="sources")
app.add_typer(digest_app, name="digest")
app.add_typer(mode_app, name="mode")
app.add_typer(log_app, name="log")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
