"""Shared wiring for CLI commands: builds a preserver from config and options."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from stillframe.bridge.http_fetcher import HttpFetcher
from stillframe.config import StillframeConfig
from stillframe.core.access import StaticWriterCapability, UnauthorizedError
from stillframe.core.change_log import ChangeLog, ChangeLogIntegrityError
from stillframe.core.chunk_store import ChunkNotFoundError
from stillframe.core.codec import MalformedInputError
from stillframe.core.mode_controller import InvalidSelectionError
from stillframe.core.preserver import ArtifactPreserver
from stillframe.core.source_list import (
    DuplicateIdentifierError,
    EmptyIdentifierError,
    SourceIndexOutOfRangeError,
)
from stillframe.core.state_store import StateStore

console = Console()

# Domain errors that end a command with exit code 1 and a one-line message.
_COMMAND_ERRORS: tuple[type[Exception], ...] = (
    UnauthorizedError,
    ChunkNotFoundError,
    MalformedInputError,
    EmptyIdentifierError,
    DuplicateIdentifierError,
    SourceIndexOutOfRangeError,
    InvalidSelectionError,
    ChangeLogIntegrityError,
    ValueError,
)

STATE_OPTION = typer.Option(
    None, "--state", "-s", help="Path to the state SQLite database."
)
CHANGELOG_OPTION = typer.Option(
    None, "--changelog", help="Path to the change-log SQLite database."
)
CALLER_OPTION = typer.Option(
    None,
    "--caller",
    "-c",
    help="Identity performing the action (defaults to STILLFRAME_ARTIST_ID).",
)


def configure_logging(level: str) -> None:
    """Route stdlib logging through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def resolve_caller(caller: str | None, config: StillframeConfig) -> str:
    return caller if caller is not None else config.artist_id


def open_preserver(
    state_db: Path | None = None,
    changelog_db: Path | None = None,
    *,
    config: StillframeConfig | None = None,
) -> ArtifactPreserver:
    """Build a persistent preserver from config plus CLI overrides."""
    config = config or StillframeConfig()
    capability = StaticWriterCapability(config.artist_id, config.holder_id)
    fetcher = HttpFetcher(
        ipfs_gateway=config.ipfs_gateway,
        arweave_gateway=config.arweave_gateway,
    )
    return ArtifactPreserver(
        capability,
        fetcher,
        config=config,
        state_store=StateStore(state_db or config.state_db_path),
        change_log=ChangeLog(changelog_db or config.changelog_path),
    )


@contextmanager
def command_errors() -> Iterator[None]:
    """Turn domain errors into a red message and exit code 1."""
    try:
        yield
    except _COMMAND_ERRORS as exc:
        console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
