"""
Perft suite — command-line entry point.

Usage:
    perftharness-suite perftsuite.epd [--engine CMD] [--max-depth N]

Runs every (position, depth) pair of an EPD suite through the session driver
and prints a pass/fail table. Exits 0 only when every case passes.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from perftharness.cli.app import add_engine_options, configure_logging, resolve_config
from perftharness.cli.display import console
from perftharness.cli.suite_display import display_suite_event, new_results_table
from perftharness.config import Config
from perftharness.suite import SuiteCompleteEvent, SuiteEntry, load_suite, run_suite


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perftharness-suite",
        description="Check an engine's perft counts against an EPD suite.",
    )
    parser.add_argument("suite", help="Suite file: '<fen> ;D1 <nodes> ;D2 <nodes> ...' per line.")
    add_engine_options(parser)
    parser.add_argument("--max-depth", type=int, default=None, help="Skip depths above this.")
    return parser


async def _main(entries: list[SuiteEntry], config: Config, max_depth: int | None) -> int:
    console.print(
        f"\n[dim]Running [bold]{len(entries)}[/] positions against "
        f"[bold]{' '.join(config.engine.command)}[/]…[/]\n"
    )
    table = new_results_table()
    failed = 0
    async for event in run_suite(entries, config, max_depth=max_depth):
        display_suite_event(event, table)
        if isinstance(event, SuiteCompleteEvent):
            failed = event.failed
    return 0 if failed == 0 else 1


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
        entries = load_suite(args.suite)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config)
    sys.exit(asyncio.run(_main(entries, config, args.max_depth)))


if __name__ == "__main__":
    main()
