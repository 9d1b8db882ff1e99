"""``stillframe log`` inspects and verifies the hash-chained change log."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.table import Table

from stillframe.cli.context import (
    CHANGELOG_OPTION,
    STATE_OPTION,
    command_errors,
    console,
    open_preserver,
)

log_app = typer.Typer(
    name="log",
    help="Inspect the change log.",
    no_args_is_help=True,
)


@log_app.command(name="verify", help="Recompute every hash and link in the change log.")
def verify_cmd(
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    preserver = open_preserver(state_db, changelog_db)
    change_log = preserver.change_log
    with command_errors():
        change_log.verify_chain()
    console.print(f"[bold green]Chain valid[/bold green] ({len(change_log)} entries).")


@log_app.command(name="show", help="List change-log entries.")
def show_cmd(
    kind: str = typer.Option(None, "--kind", "-k", help="Filter by change kind."),
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    preserver = open_preserver(state_db, changelog_db)
    entries = preserver.change_log.entries(kind=kind)
    if not entries:
        console.print("[dim]No entries.[/dim]")
        return

    table = Table(title="Change Log")
    table.add_column("Time (UTC)")
    table.add_column("Kind", style="cyan")
    table.add_column("Actor")
    table.add_column("Role")
    table.add_column("Payload")
    table.add_column("Hash", style="dim")
    for entry in entries:
        table.add_row(
            entry.timestamp_utc.strftime("%Y-%m-%d %H:%M:%S"),
            entry.kind.value,
            entry.actor or "-",
            entry.role or "-",
            json.dumps(entry.payload, sort_keys=True),
            entry.entry_hash[:12],
        )
    console.print(table)
