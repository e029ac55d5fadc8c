"""
Result extraction from the captured engine output.

The engine's output is unstructured: both echoes, any chatter, then the perft
listing. The result is anchored on the first echoed sentinel line and runs to
the end of the buffer minus the trailing control bytes. Both offsets come from
the protocol config and are checked against the buffer before slicing.

Also parses an extracted result into a PerftReport when the engine answers
with a divide listing ("<move> <nodes>" per root move, blank line, total).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from perftharness.config import ProtocolConfig
from perftharness.errors import MalformedSlice, SentinelNotFound


def extract_result(
    buffer: bytes,
    *,
    sentinel: str = "quit",
    line_ending: str = "\r\n",
    trailing_bytes: int = 1,
) -> str:
    """
    Return the text between the line after the first sentinel and the end of the output.

    The end drops the final line_ending when the buffer closes with one,
    otherwise trailing_bytes control bytes.

    Raises:
        SentinelNotFound: the sentinel does not occur in buffer.
        MalformedSlice: the sentinel is not followed by line_ending, the slice
            would be inverted, or a dropped trailing byte is not a control byte.
    """
    token = sentinel.encode("utf-8")
    marker = line_ending.encode("utf-8")

    idx = buffer.find(token)
    if idx < 0:
        raise SentinelNotFound(f"sentinel {sentinel!r} not found in {len(buffer)} bytes of engine output")

    after = idx + len(token)
    start = after + len(marker)
    if marker and buffer.endswith(marker) and len(buffer) - len(marker) > start:
        end = len(buffer) - len(marker)
    else:
        end = len(buffer) - trailing_bytes

    if buffer[after:start] != marker:
        raise MalformedSlice(
            f"sentinel {sentinel!r} at offset {idx} is followed by "
            f"{buffer[after:start]!r}, expected {marker!r}"
        )
    if start > end:
        raise MalformedSlice(
            f"result slice [{start}:{end}] is empty or inverted; "
            f"the engine wrote nothing after {sentinel!r}"
        )
    dropped = buffer[end:]
    if any(not _is_control(b) for b in dropped):
        raise MalformedSlice(f"expected {trailing_bytes} trailing control byte(s), got {dropped!r}")

    result = buffer[start:end]
    if all(_is_control(b) for b in result):
        raise MalformedSlice(
            f"result slice [{start}:{end}] holds only control bytes {result!r}; "
            f"the engine wrote no answer after {sentinel!r}"
        )
    return result.decode("utf-8", errors="replace")


def extract_with(buffer: bytes, protocol: ProtocolConfig) -> str:
    return extract_result(
        buffer,
        sentinel=protocol.sentinel,
        line_ending=protocol.line_ending,
        trailing_bytes=protocol.trailing_bytes,
    )


def _is_control(byte: int) -> bool:
    return byte < 0x20 or byte == 0x7F


# --------------------------------------------------------------------------- #
# Divide listing                                                               #
# --------------------------------------------------------------------------- #

@dataclass
class PerftReport:
    moves: list[tuple[str, int]] = field(default_factory=list)
    total: int | None = None

    @property
    def consistent(self) -> bool:
        """True when the per-move counts add up to the reported total."""
        if self.total is None:
            return False
        if not self.moves:
            return True
        return sum(nodes for _, nodes in self.moves) == self.total


def parse_perft_output(text: str) -> PerftReport:
    """
    Parse an extracted result into per-move counts and the total.

    The total is the last non-empty line when it is a bare integer. Lines that
    are neither "<move> <int>" nor the total are ignored.
    """
    lines = [line.strip() for line in text.replace("\r", "\n").split("\n")]
    lines = [line for line in lines if line]

    report = PerftReport()
    if lines and lines[-1].isdigit():
        report.total = int(lines.pop())

    for line in lines:
        parts = line.split()
        if len(parts) == 2 and parts[1].isdigit():
            report.moves.append((parts[0], int(parts[1])))

    return report
