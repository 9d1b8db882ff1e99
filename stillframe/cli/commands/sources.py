"""``stillframe sources`` manages the artist and collector source lists.

Artist sources may only be changed by the artist.  Collector sources
may be changed by the artist or the current holder; removal uses
swap-with-last, so the last entry moves into the removed slot.
"""

from __future__ import annotations

from pathlib import Path

import typer

from stillframe.cli.context import (
    CALLER_OPTION,
    CHANGELOG_OPTION,
    STATE_OPTION,
    command_errors,
    console,
    open_preserver,
    resolve_caller,
)
from stillframe.models.sources import SourceRole
from stillframe.monitor.renderer import StateRenderer

sources_app = typer.Typer(
    name="sources",
    help="List and edit candidate sources.",
    no_args_is_help=True,
)


@sources_app.command(name="list", help="Show all sources in priority order.")
def list_cmd(
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    preserver = open_preserver(state_db, changelog_db)
    if not preserver.combined_ordered():
        console.print("[dim]No sources configured.[/dim]")
        return
    console.print(StateRenderer(console).render_sources(preserver))


@sources_app.command(name="add", help="Append a source URI to a partition.")
def add_cmd(
    uri: str = typer.Argument(..., help="Location of a full-resolution copy."),
    role: SourceRole = typer.Option(
        SourceRole.COLLECTOR, "--role", "-r", help="Partition to add to."
    ),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        if role == SourceRole.ARTIST:
            preserver.add_artist_source(who, uri)
            count = len(preserver.sources.artist_sources)
        else:
            preserver.add_collector_source(who, uri)
            count = len(preserver.sources.collector_sources)
    console.print(
        f"[green]Added[/green] {uri} to {role.value} sources "
        f"(index {count - 1})."
    )


@sources_app.command(name="remove", help="Remove a collector source by index.")
def remove_cmd(
    index: int = typer.Argument(..., help="Index into the collector list."),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        record = preserver.remove_collector_source(who, index)
    console.print(f"[green]Removed[/green] {record.removed_uri} from index {record.index}.")
    if record.moved_uri is not None:
        console.print(
            f"[yellow]Note:[/yellow] {record.moved_uri} moved into index {record.index}."
        )


@sources_app.command(name="replace", help="Replace the whole artist list.")
def replace_cmd(
    uris: list[str] = typer.Argument(None, help="New artist URIs, in order."),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    uris = uris or []
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        preserver.replace_artist_sources(who, uris)
    console.print(f"[green]Artist sources replaced[/green] ({len(uris)} entries).")
