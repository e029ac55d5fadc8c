"""
Session transcript — writes the full exchange with the engine to a text file.

One file is created per session, named by timestamp, depth and a sanitised
slice of the FEN. Each command sent is recorded, followed by the captured
output (escaped so control bytes stay visible) and the result or error.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from perftharness.commands import CommandRequest
from perftharness.events import (
    CommandSentEvent,
    EchoConfirmedEvent,
    OutputCapturedEvent,
    ResultExtractedEvent,
    SessionEvent,
    SessionFailedEvent,
    SessionStartEvent,
)

_SEP = "=" * 80
_THIN = "-" * 80


class SessionTranscript:
    def __init__(self, log_dir: Path, request: CommandRequest) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        board = _safe(request.fen.split(" ")[0])[:40]
        self._path = log_dir / f"perft_{timestamp}_d{request.depth}_{board}.log"
        self._write(
            f"{_SEP}\n"
            f"  Perft Session Transcript\n"
            f"  depth {request.depth} | fen {request.fen}\n"
            f"  moves {' '.join(request.moves) or '(none)'}\n"
            f"  Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"{_SEP}\n"
        )

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def record(self, event: SessionEvent) -> None:
        match event:
            case SessionStartEvent():
                self._write(f"[ENGINE] {' '.join(event.command)} ({event.transport})\n")
            case CommandSentEvent():
                self._write(f"\n[SENT]\n{_escape(event.payload)}\n")
            case EchoConfirmedEvent():
                self._write(f"[ECHO] confirmed after {event.elapsed:.3f}s, {event.buffered} bytes buffered\n")
            case OutputCapturedEvent():
                self._write(f"\n{_THIN}\n[OUTPUT — {len(event.buffer)} bytes]\n{_escape(event.buffer)}\n{_THIN}\n")
            case ResultExtractedEvent():
                self._write(f"\n[RESULT]\n{event.result}\n")
            case SessionFailedEvent():
                self._write(
                    f"\n[FAILED — {event.error.kind} in state {event.last_state.value}]\n"
                    f"{event.error}\n"
                    f"[OUTPUT SO FAR — {len(event.buffer)} bytes]\n{_escape(event.buffer)}\n"
                )

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _write(self, text: str) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(text)


def _escape(data: bytes) -> str:
    """Show \\r and other control bytes literally while keeping line structure."""
    text = data.decode("utf-8", errors="backslashreplace")
    return "".join(
        ch if ch == "\n" or ch >= " " else ch.encode("unicode_escape").decode("ascii")
        for ch in text
    )


def _safe(name: str) -> str:
    """Strip characters that are problematic in filenames."""
    return "".join(c if c.isalnum() or c in "_-" else "_" for c in name).strip()
