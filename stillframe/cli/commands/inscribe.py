"""``stillframe inscribe`` and ``stillframe thumbnail``: write and read the thumbnail.

``inscribe`` compresses an image, splits it at the configured chunk
limit, and replaces all stored chunks.  ``thumbnail`` reassembles and
decompresses the stored chunks back into a file.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from stillframe.cli.context import (
    CALLER_OPTION,
    CHANGELOG_OPTION,
    STATE_OPTION,
    command_errors,
    console,
    open_preserver,
    resolve_caller,
)
from stillframe.core.codec import compression_ratio
from stillframe.core.hasher import sha256_hex


def inscribe_cmd(
    image: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Image file to store."
    ),
    set_digest: bool = typer.Option(
        False,
        "--set-digest/--no-set-digest",
        help="Also set the expected digest to the SHA-256 of IMAGE.",
    ),
    caller: str = CALLER_OPTION,
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    """Compress IMAGE into size-bounded chunks and replace the stored thumbnail."""
    data = image.read_bytes()
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        who = resolve_caller(caller, preserver.config)
        chunks = preserver.write_thumbnail(who, data)
        digest = preserver.set_expected_digest(who, sha256_hex(data)) if set_digest else ""

    compressed = sum(len(c) for c in chunks)
    lines = [
        "[bold green]Thumbnail inscribed.[/bold green]",
        "",
        f"[bold]Source:[/bold]      {image}",
        f"[bold]Original:[/bold]    {len(data)} bytes",
        f"[bold]Compressed:[/bold]  {compressed} bytes "
        f"({compression_ratio(len(data), compressed):.1%})",
        f"[bold]Chunks:[/bold]      {len(chunks)} "
        f"(limit {preserver.config.chunk_size_limit} bytes)",
    ]
    if digest:
        lines.append(f"[bold]Digest:[/bold]      {digest}")
    console.print(Panel("\n".join(lines), title="[bold]Stillframe[/bold]", border_style="green"))


def thumbnail_cmd(
    output: Path = typer.Argument(..., dir_okay=False, help="Where to write the image."),
    state_db: Path = STATE_OPTION,
    changelog_db: Path = CHANGELOG_OPTION,
) -> None:
    """Reassemble and decompress the stored thumbnail into OUTPUT."""
    with command_errors():
        preserver = open_preserver(state_db, changelog_db)
        image = preserver.thumbnail()
    output.write_bytes(image)
    console.print(f"Wrote {len(image)} bytes to [bold]{output}[/bold]")
