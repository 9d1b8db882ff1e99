"""``stillframe digest`` sets the expected SHA-256 of the full-resolution artifact."""

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
from stillframe.core.hasher import sha256_hex

digest_app = typer.Typer(
    name="digest",
    help="Set the expected digest used by verified mode.",
    no_args_is_help=True,
)


def _apply(digest: str, caller: str | None, state_db: Path | None, changelog_db: Path | None) -> None:
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        normalized = preserver.set_expected_digest(who, digest)
    if normalized:
        console.print(f"[green]Expected digest set:[/green] {normalized}")
    else:
        console.print("[yellow]Expected digest cleared; verified mode will refuse all sources.[/yellow]")


@digest_app.command(name="set", help="Set the digest from a hex string (empty clears it).")
def set_cmd(
    digest: str = typer.Argument(..., help="64 hex characters, optionally 0x- or sha256:-prefixed."),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    _apply(digest, caller, state_db, changelog_db)


@digest_app.command(name="compute", help="Set the digest to the SHA-256 of a local file.")
def compute_cmd(
    artifact: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Full-resolution artifact."
    ),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    _apply(sha256_hex(artifact.read_bytes()), caller, state_db, changelog_db)
