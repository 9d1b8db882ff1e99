"""Rich terminal renderer for preserver state and verification runs.

Color scheme
------------
- green     : verified candidate / thumbnail present
- yellow    : digest mismatch
- red       : fetch failure / missing data
- dim       : unset values
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stillframe.models.verification import AttemptOutcome, FetchAttempt

if TYPE_CHECKING:
    from stillframe.core.mode_controller import DisplayOutput
    from stillframe.core.preserver import ArtifactPreserver


_OUTCOME_LABELS: dict[AttemptOutcome, str] = {
    AttemptOutcome.VERIFIED: "[green]VERIFIED[/green]",
    AttemptOutcome.DIGEST_MISMATCH: "[yellow]MISMATCH[/yellow]",
    AttemptOutcome.FETCH_FAILED: "[bold red]UNREACHABLE[/bold red]",
}


class StateRenderer:
    """Renders preserver state and verification audits as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Renderables
    # ------------------------------------------------------------------

    def render_status(self, preserver: ArtifactPreserver) -> Panel:
        state = preserver.display_state
        if preserver.has_thumbnail():
            thumb = (
                f"[green]{len(preserver.chunks)} chunk(s), "
                f"{preserver.chunks.total_size} bytes[/green]"
            )
        else:
            thumb = "[red]not written[/red]"
        digest = preserver.expected_digest or "[dim]<unset, verification fails closed>[/dim]"
        lines = [
            f"[bold]Thumbnail:[/bold]        {thumb}",
            f"[bold]Expected digest:[/bold]  {digest}",
            f"[bold]Mode:[/bold]             {state.mode.value}",
            f"[bold]Selected index:[/bold]   {state.selected_index}",
            f"[bold]Artist sources:[/bold]   {len(preserver.sources.artist_sources)}",
            f"[bold]Collector sources:[/bold] {len(preserver.sources.collector_sources)}",
        ]
        return Panel(
            "\n".join(lines),
            title="[bold]Stillframe[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )

    def render_sources(self, preserver: ArtifactPreserver) -> Table:
        table = Table(title="Candidate Sources (priority order)")
        table.add_column("#", justify="right")
        table.add_column("Partition")
        table.add_column("Index", justify="right")
        table.add_column("URI", style="cyan")

        position = 0
        for partition, uris in (
            ("artist", preserver.sources.artist_sources),
            ("collector", preserver.sources.collector_sources),
        ):
            for index, uri in enumerate(uris):
                table.add_row(str(position), partition, str(index), uri)
                position += 1
        return table

    def render_attempts(self, attempts: list[FetchAttempt]) -> Table:
        table = Table(title="Verification Attempts")
        table.add_column("#", justify="right")
        table.add_column("URI", style="cyan")
        table.add_column("Outcome", justify="center")
        table.add_column("Detail")

        for attempt in attempts:
            detail = attempt.error or (attempt.digest[:16] + "…" if attempt.digest else "")
            table.add_row(
                str(attempt.index),
                attempt.uri,
                _OUTCOME_LABELS[attempt.outcome],
                detail,
            )
        return table

    def render_output(self, output: DisplayOutput) -> Panel:
        lines = [
            f"[bold]Mode:[/bold] {output.mode.value}",
            f"[bold]Display:[/bold] {output.uri}",
        ]
        if output.verification is not None:
            lines.append(
                f"[bold]Verified:[/bold] candidate {output.verification.index}, "
                f"{len(output.verification.content)} bytes, "
                f"sha256 {output.verification.digest}"
            )
        return Panel("\n".join(lines), border_style="green", padding=(1, 2))

    # ------------------------------------------------------------------
    # Print helpers
    # ------------------------------------------------------------------

    def print_status(self, preserver: ArtifactPreserver) -> None:
        self.console.print(self.render_status(preserver))
        self.console.print(self.render_sources(preserver))
