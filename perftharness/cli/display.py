"""
Rich-based CLI event consumer.

Everything here prints to stderr. Stdout is reserved for the single result
line written by perftharness.driver.emit(), so the command can be piped.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from perftharness.events import (
    CommandSentEvent,
    EchoConfirmedEvent,
    OutputCapturedEvent,
    ResultExtractedEvent,
    SessionEvent,
    SessionFailedEvent,
    SessionStartEvent,
    SessionState,
    StateChangedEvent,
)
from perftharness.extract import PerftReport

console = Console(stderr=True, legacy_windows=False)


def display_event(event: SessionEvent) -> None:
    """Dispatch a SessionEvent to the appropriate display function."""
    match event:
        case SessionStartEvent():
            _session_start(event)
        case StateChangedEvent():
            style = "red" if event.state == SessionState.FAILED else "dim"
            console.print(f"  [{style}]→ {event.state.value}[/]")
        case CommandSentEvent():
            console.print(f"  [cyan]>>[/] {event.payload!r}", highlight=False)
        case EchoConfirmedEvent():
            console.print(
                f"  [green]✓[/] echo after [bold]{event.elapsed:.3f}s[/] "
                f"[dim]({event.buffered} bytes buffered)[/]"
            )
        case OutputCapturedEvent():
            console.print(f"  [dim]captured {len(event.buffer)} bytes[/]")
        case ResultExtractedEvent():
            console.print(f"  [green]✓[/] result {event.result!r}", highlight=False)
        case SessionFailedEvent():
            display_failure(event)


def display_failure(event: SessionFailedEvent) -> None:
    tail = event.buffer[-200:]
    console.print(
        Panel(
            f"[bold red]{event.error.kind}[/] in state [bold]{event.last_state.value}[/]\n"
            f"{event.error}\n"
            f"[dim]last output: {tail!r}[/]",
            title="[bold red]Session failed[/]",
            border_style="red",
            expand=False,
        ),
        highlight=False,
    )


def display_report(report: PerftReport) -> None:
    """Per-move divide table followed by the total."""
    table = Table(title="Perft divide", show_header=True, header_style="bold")
    table.add_column("Move", style="bold")
    table.add_column("Nodes", justify="right")
    for move, nodes in report.moves:
        table.add_row(move, f"{nodes:,}")
    console.print(table)

    total = f"{report.total:,}" if report.total is not None else "[red]missing[/]"
    check = "" if report.consistent or not report.moves else "  [yellow](moves do not add up)[/]"
    console.print(f"[bold]Total:[/] {total}{check}")


def _session_start(event: SessionStartEvent) -> None:
    request = event.request
    console.print(
        Panel(
            f"[bold]depth[/] {request.depth}\n"
            f"[bold]fen[/]   {request.fen}\n"
            f"[bold]moves[/] {' '.join(request.moves) or '[dim](none)[/]'}\n"
            f"[dim]{' '.join(event.command)} via {event.transport}[/]",
            title="[bold green] Perft Session [/]",
            border_style="green",
            expand=False,
        ),
        highlight=False,
    )
