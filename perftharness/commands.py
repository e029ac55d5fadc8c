"""
Protocol commands sent to the engine.

A session sends exactly two payloads: the position setup line, then the
perft query followed by quit. Both are built from one immutable CommandRequest.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandRequest:
    """What to ask the engine: search depth, starting FEN, moves to replay."""

    depth: int
    fen: str
    moves: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        # Accept any iterable of moves but store a tuple so the request stays hashable
        object.__setattr__(self, "moves", tuple(self.moves))

    @property
    def init_lines(self) -> list[str]:
        # The "moves" clause is always sent, even with nothing after it
        return [f"position fen {self.fen} moves {' '.join(self.moves)}"]

    @property
    def perft_lines(self) -> list[str]:
        return [f"perft {self.depth}", "quit"]


def encode_lines(lines: list[str], terminator: str) -> bytes:
    """Join lines into the bytes written to the engine, each ending in terminator."""
    return "".join(line + terminator for line in lines).encode("utf-8")


def echo_pattern(lines: list[str], line_ending: str) -> bytes:
    """The bytes the channel reflects back once the engine has read these lines."""
    return "".join(line + line_ending for line in lines).encode("utf-8")
