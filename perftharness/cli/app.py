"""
Perft driver — command-line entry point.

Usage:
    perftharness <depth> <fen> [moves ...] [--engine CMD] [--divide] [-v]

Wires together:  config → request → session driver → event display → stdout

Stdout carries only the extracted result. Exit codes: 0 success, 1 spawn
failure or bad config, 2 synchronization timeout, 3 sentinel not found.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import shlex
import sys
from pathlib import Path

from perftharness.cli.display import console, display_event, display_report
from perftharness.commands import CommandRequest
from perftharness.config import Config, load_config, validate
from perftharness.driver import emit, run_session
from perftharness.events import ResultExtractedEvent, SessionFailedEvent
from perftharness.extract import parse_perft_output
from perftharness.transcript import SessionTranscript

_OUTPUT_HELP = """\
output:
  stdout is everything the engine printed after the echo of "quit", minus the
  final line ending, passed through unchanged. An engine that prints a divide
  listing gives one "<move> <nodes>" line per root move, a blank line, then the
  total, so stdout is multi-line; an engine that prints only the total gives
  one line. Use --divide to also see the listing as a table on stderr.

exit codes:
  0 success, 1 spawn failure or bad config, 2 synchronization timeout,
  3 sentinel not found or malformed output
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perftharness",
        description="Ask a chess engine for a perft count and print the engine's answer.",
        epilog=_OUTPUT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("depth", type=_non_negative_int, help="Perft search depth.")
    parser.add_argument("fen", help="Starting position in FEN, quoted as one argument.")
    parser.add_argument("moves", nargs="*", help="Moves to play from the FEN before counting.")
    add_engine_options(parser)
    parser.add_argument("--divide", action="store_true", help="Show the per-move table on stderr.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show session events on stderr.")
    parser.add_argument("--transcript-dir", default=None, help="Write a session transcript here.")
    return parser


def add_engine_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="YAML config (default: ./perftharness.yaml if present).")
    parser.add_argument("--engine", default=None, help="Engine command line, overrides engine.command.")
    parser.add_argument("--transport", choices=("pty", "pipe"), default=None)
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for each echo.")


def resolve_config(args: argparse.Namespace) -> Config:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)
    if args.engine:
        config.engine.command = shlex.split(args.engine)
    if args.transport:
        config.engine.transport = args.transport
    if args.timeout is not None:
        config.protocol.sync_timeout = args.timeout
    if getattr(args, "transcript_dir", None):
        config.logging.transcript_dir = args.transcript_dir
    validate(config)
    return config


def configure_logging(config: Config) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.logging.file:
        log_file = Path(config.logging.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
                encoding="utf-8",
            )
        )
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
    )


async def _main(args: argparse.Namespace, config: Config) -> int:
    request = CommandRequest(depth=args.depth, fen=args.fen, moves=tuple(args.moves))
    transcript = SessionTranscript(config.transcript_path, request) if config.transcript_path else None
    exit_code = 0

    async for event in run_session(request, config):
        if transcript is not None:
            transcript.record(event)
        if args.verbose:
            display_event(event)

        match event:
            case ResultExtractedEvent():
                emit(event.result)
                if args.divide:
                    display_report(parse_perft_output(event.result))
            case SessionFailedEvent():
                if not args.verbose:
                    console.print(f"[red]Error:[/] {event.error.kind}: {event.error}", highlight=False)
                exit_code = event.error.exit_code

    if transcript is not None and args.verbose:
        console.print(f"[dim]Transcript: {transcript.path}[/]")
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config)
    sys.exit(asyncio.run(_main(args, config)))


def _non_negative_int(value: str) -> int:
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"depth must be an integer, got {value!r}") from None
    if depth < 0:
        raise argparse.ArgumentTypeError(f"depth must be >= 0, got {depth}")
    return depth


if __name__ == "__main__":
    main()
