"""
EPD perft suite runner.

Suite files hold one position per line with the expected node count for each
depth, separated by semicolons:

    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 ;D1 20 ;D2 400 ;D3 8902

run_suite() runs one driver session per (position, depth) and yields an event
per case, so a failing engine surfaces as failed cases rather than an abort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator

from perftharness.commands import CommandRequest
from perftharness.config import Config
from perftharness.driver import run_perft
from perftharness.errors import SessionError
from perftharness.extract import parse_perft_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuiteEntry:
    fen: str
    expected: dict[int, int]   # depth -> node count
    line_no: int = 0


@dataclass(frozen=True)
class SuiteCaseEvent:
    entry: SuiteEntry
    depth: int
    expected: int
    actual: int | None          # None when the session failed or had no total
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and self.actual == self.expected


@dataclass(frozen=True)
class SuiteCompleteEvent:
    passed: int
    failed: int
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def total(self) -> int:
        return self.passed + self.failed


SuiteEvent = SuiteCaseEvent | SuiteCompleteEvent


def parse_suite_line(line: str, line_no: int = 0) -> SuiteEntry | None:
    """
    Parse one EPD suite line. Blank lines and # comments give None.

    Raises:
        ValueError: a depth field is not of the form "D<depth> <nodes>".
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    fen, *fields = (part.strip() for part in line.split(";"))
    expected: dict[int, int] = {}
    for raw in fields:
        if not raw:
            continue
        parts = raw.split()
        if len(parts) != 2 or not parts[0].upper().startswith("D"):
            raise ValueError(f"line {line_no}: bad depth field {raw!r}")
        try:
            expected[int(parts[0][1:])] = int(parts[1])
        except ValueError as exc:
            raise ValueError(f"line {line_no}: bad depth field {raw!r}") from exc

    return SuiteEntry(fen=fen, expected=expected, line_no=line_no)


def load_suite(path: str | Path) -> list[SuiteEntry]:
    suite_path = Path(path)
    if not suite_path.exists():
        raise FileNotFoundError(f"Suite file not found: {suite_path.resolve()}")

    entries: list[SuiteEntry] = []
    with suite_path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            entry = parse_suite_line(line, line_no)
            if entry is not None:
                entries.append(entry)
    return entries


async def run_suite(
    entries: list[SuiteEntry],
    config: Config,
    max_depth: int | None = None,
) -> AsyncGenerator[SuiteEvent, None]:
    passed = failed = 0

    for entry in entries:
        for depth in sorted(entry.expected):
            if max_depth is not None and depth > max_depth:
                continue
            expected = entry.expected[depth]
            request = CommandRequest(depth=depth, fen=entry.fen)

            try:
                result = await run_perft(request, config)
            except SessionError as exc:
                logger.warning("Suite line %d depth %d: %s", entry.line_no, depth, exc)
                event = SuiteCaseEvent(entry, depth, expected, None, error=f"{exc.kind}: {exc}")
            else:
                total = parse_perft_output(result).total
                error = None if total is not None else f"no node count in {result!r}"
                event = SuiteCaseEvent(entry, depth, expected, total, error=error)

            if event.passed:
                passed += 1
            else:
                failed += 1
            yield event

    yield SuiteCompleteEvent(passed=passed, failed=failed)
