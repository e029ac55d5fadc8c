"""
Typed session event dataclasses — the shared language between the driver and any consumer.

run_session() yields these. The CLI display, the suite runner and the tests
consume them. All events are frozen so they can be passed around freely and
serialised with dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from perftharness.commands import CommandRequest
from perftharness.errors import SessionError


class SessionState(str, Enum):
    SPAWNED = "spawned"
    INIT_SENT = "init_sent"
    INIT_CONFIRMED = "init_confirmed"
    PERFT_SENT = "perft_sent"
    PERFT_CONFIRMED = "perft_confirmed"
    CAPTURED = "captured"
    EXTRACTED = "extracted"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionStartEvent:
    request: CommandRequest
    command: list[str]
    transport: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class StateChangedEvent:
    state: SessionState


@dataclass(frozen=True)
class CommandSentEvent:
    payload: bytes
    echo_pattern: bytes


@dataclass(frozen=True)
class EchoConfirmedEvent:
    echo_pattern: bytes
    buffered: int        # bytes accumulated so far
    elapsed: float       # seconds spent waiting for the echo


@dataclass(frozen=True)
class OutputCapturedEvent:
    buffer: bytes


@dataclass(frozen=True)
class ResultExtractedEvent:
    result: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SessionFailedEvent:
    error: SessionError
    last_state: SessionState
    buffer: bytes = b""   # whatever had been read before the failure
    timestamp: datetime = field(default_factory=datetime.now)


SessionEvent = (
    SessionStartEvent
    | StateChangedEvent
    | CommandSentEvent
    | EchoConfirmedEvent
    | OutputCapturedEvent
    | ResultExtractedEvent
    | SessionFailedEvent
)
