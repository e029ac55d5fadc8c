"""
Reference perft engine built on python-chess.

Speaks the same line protocol as the engines the driver talks to, so a run
against it cross-checks another engine's move generator, and the test suite
uses it as a real collaborator.

    position startpos [moves e2e4 ...]
    position fen <FEN> [moves e2e4 ...]
    perft <depth>      one "<move> <nodes>" line per root move, a blank line, the total
    isready            replies readyok
    quit

Input is read on a background thread and queued for the command loop. With
--echo every chunk is written back the moment it is read, before any command
in it runs, which is what a terminal does for an engine on a pty. Diagnostics
go to stderr only.

Run with:  python -m perftharness.reference_engine [--echo] [--crlf] [--no-divide]
"""

from __future__ import annotations

import argparse
import os
import queue
import sys
import threading
from typing import BinaryIO

import chess


def perft(board: chess.Board, depth: int) -> int:
    """Count leaf nodes of the legal move tree to the given depth."""
    if depth == 0:
        return 1
    if depth == 1:
        return board.legal_moves.count()

    nodes = 0
    for move in list(board.legal_moves):
        board.push(move)
        nodes += perft(board, depth - 1)
        board.pop()
    return nodes


def perft_divide(board: chess.Board, depth: int) -> tuple[list[tuple[str, int]], int]:
    """Per-root-move node counts plus their total. Depth 0 has no root moves and counts 1."""
    if depth == 0:
        return [], 1

    divide: list[tuple[str, int]] = []
    for move in list(board.legal_moves):
        board.push(move)
        divide.append((move.uci(), perft(board, depth - 1)))
        board.pop()
    return divide, sum(nodes for _, nodes in divide)


class ReferenceEngine:
    """
    Command loop state: the current board and where to write replies.

    Attributes:
        board:   Position set by the last valid "position" command.
        divide:  Print the per-move listing before the total.
        newline: Line ending for everything written to out.
    """

    def __init__(self, out: BinaryIO, *, divide: bool = True, newline: str = "\n") -> None:
        self.board = chess.Board()
        self.divide = divide
        self.newline = newline
        self._out = out
        self._lock = threading.Lock()

    def send(self, text: str) -> None:
        self.echo(text + "\n")

    def echo(self, text: str) -> None:
        data = text.replace("\n", self.newline).encode("utf-8")
        with self._lock:
            self._out.write(data)
            self._out.flush()

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False once the loop should stop."""
        tokens = line.split()
        if not tokens:
            return True

        match tokens[0]:
            case "quit":
                return False
            case "isready":
                self.send("readyok")
            case "position":
                self.handle_position(tokens[1:])
            case "perft":
                self.handle_perft(tokens[1:])
            case _:
                _log(f"unknown command: {line}")
        return True

    def handle_position(self, tokens: list[str]) -> None:
        """Set the board; an invalid FEN or move leaves the previous board untouched."""
        if not tokens:
            return

        if "moves" in tokens:
            moves_idx = tokens.index("moves")
            setup, move_tokens = tokens[:moves_idx], tokens[moves_idx + 1:]
        else:
            setup, move_tokens = tokens, []

        try:
            if setup[0] == "startpos":
                board = chess.Board()
            elif setup[0] == "fen":
                board = chess.Board(" ".join(setup[1:]))
            else:
                _log(f"unknown position type: {setup[0]}")
                return

            for uci_move in move_tokens:
                move = chess.Move.from_uci(uci_move)
                if not board.is_legal(move):
                    _log(f"illegal move in position command: {uci_move}")
                    return
                board.push(move)
        except ValueError as exc:
            _log(f"bad position command: {exc}")
            return

        self.board = board

    def handle_perft(self, tokens: list[str]) -> None:
        if not tokens or not tokens[0].isdigit():
            _log("perft needs a non-negative depth")
            return

        divide, total = perft_divide(self.board, int(tokens[0]))
        if not self.divide or not divide:
            # Depth 0 has no root moves to list
            self.send(str(total))
            return
        lines = [f"{move} {nodes}" for move, nodes in divide]
        self.send("\n".join(lines + ["", str(total)]))


def _log(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def _read_input(fd: int, commands: queue.Queue, engine: ReferenceEngine, echo: bool) -> None:
    """Reader thread: echo raw chunks when asked, queue complete lines, None at EOF."""
    pending = b""
    while True:
        try:
            chunk = os.read(fd, 4096)
        except OSError:
            chunk = b""
        if not chunk:
            commands.put(None)
            return

        if echo:
            text = chunk.decode("utf-8", errors="replace").replace("\r\n", "\n").replace("\r", "\n")
            engine.echo(text)

        pending += chunk
        *lines, pending = pending.split(b"\n")
        for raw in lines:
            commands.put(raw.decode("utf-8", errors="replace").strip())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="python-chess perft engine for the perftharness protocol.")
    parser.add_argument("--echo", action="store_true", help="Echo input back as it is read.")
    parser.add_argument("--crlf", action="store_true", help="End output lines with \\r\\n.")
    parser.add_argument("--no-divide", action="store_true", help="Print only the perft total.")
    args = parser.parse_args(argv)

    engine = ReferenceEngine(
        sys.stdout.buffer,
        divide=not args.no_divide,
        newline="\r\n" if args.crlf else "\n",
    )
    commands: queue.Queue = queue.Queue()
    reader = threading.Thread(
        target=_read_input,
        args=(sys.stdin.fileno(), commands, engine, args.echo),
        daemon=True,
    )
    reader.start()

    while True:
        line = commands.get()
        if line is None or not engine.handle(line):
            return 0


if __name__ == "__main__":
    raise SystemExit(main())
