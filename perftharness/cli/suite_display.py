"""
Rich-based display for suite runs: one row per (position, depth), then a summary.
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from perftharness.cli.display import console
from perftharness.suite import SuiteCaseEvent, SuiteCompleteEvent, SuiteEvent


def new_results_table() -> Table:
    table = Table(show_header=True, header_style="bold", expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("FEN", overflow="fold", max_width=60)
    table.add_column("Depth", justify="right")
    table.add_column("Expected", justify="right")
    table.add_column("Actual", justify="right")
    table.add_column("Status")
    return table


def display_suite_event(event: SuiteEvent, table: Table) -> None:
    """Add case rows to table; print table and summary when the suite completes."""
    match event:
        case SuiteCaseEvent():
            _add_case(event, table)
        case SuiteCompleteEvent():
            console.print(table)
            _suite_complete(event)


def _add_case(event: SuiteCaseEvent, table: Table) -> None:
    actual = f"{event.actual:,}" if event.actual is not None else "—"
    if event.passed:
        status = "[green]✓ pass[/]"
    elif event.error:
        status = f"[red]✗ {event.error}[/]"
    else:
        status = "[red]✗ mismatch[/]"
    table.add_row(
        str(event.entry.line_no),
        event.entry.fen,
        str(event.depth),
        f"{event.expected:,}",
        actual,
        status,
    )


def _suite_complete(event: SuiteCompleteEvent) -> None:
    style = "green" if event.failed == 0 else "red"
    console.print(
        Panel(
            f"[bold {style}]{event.passed}/{event.total}[/] cases passed"
            + (f"\n[red]{event.failed} failed[/]" if event.failed else ""),
            title="[bold]Suite complete[/]",
            border_style=style,
            expand=False,
        )
    )
