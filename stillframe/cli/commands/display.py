"""Display-state commands: ``mode``, ``select``, ``render`` and ``status``."""

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
from stillframe.core.verifier import NoVerifiedSourceAvailableError
from stillframe.models.state import DisplayMode
from stillframe.monitor.renderer import StateRenderer

mode_app = typer.Typer(
    name="mode",
    help="Switch between direct and verified display.",
    no_args_is_help=True,
)


@mode_app.command(name="set", help="Set the display mode.")
def mode_set_cmd(
    mode: DisplayMode = typer.Argument(..., help="direct or verified."),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        state = preserver.set_mode(who, mode)
    console.print(f"[green]Mode set:[/green] {state.mode.value}")


def select_cmd(
    index: int = typer.Argument(..., help="Index into the artist source list."),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    """Choose which artist source direct mode displays."""
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        state = preserver.select(who, index)
    console.print(f"[green]Selected index:[/green] {state.selected_index}")
    if state.selected_index >= len(preserver.sources.artist_sources):
        console.print(
            "[yellow]Warning:[/yellow] no artist source at that index yet; "
            "direct rendering will fail until one is added."
        )


def render_cmd(
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    """Resolve what should be displayed right now.

    In verified mode every candidate is fetched and hashed in priority
    order; the audit table is printed whether or not one is accepted.
    """
    renderer = StateRenderer(console)
    preserver = open_preserver(state_db, changelog_db)
    try:
        with command_errors():
            output = preserver.render()
    except NoVerifiedSourceAvailableError as exc:
        if exc.attempts:
            console.print(renderer.render_attempts(exc.attempts))
        console.print(f"[bold red]No verified source ({exc.reason.value}):[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    if output.verification is not None:
        console.print(renderer.render_attempts(output.verification.attempts))
    console.print(renderer.render_output(output))


def status_cmd(
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    """Show the stored thumbnail, digest, mode and sources."""
    preserver = open_preserver(state_db, changelog_db)
    StateRenderer(console).print_status(preserver)
