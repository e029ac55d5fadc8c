"""
perftharness — drive a chess engine over its text protocol and pull out the perft count.
"""

from perftharness.commands import CommandRequest
from perftharness.driver import SessionDriver, run_perft, run_session
from perftharness.errors import (
    MalformedSlice,
    SentinelNotFound,
    SessionError,
    SpawnFailure,
    SynchronizationTimeout,
)

__all__ = [
    "CommandRequest",
    "SessionDriver",
    "run_perft",
    "run_session",
    "SessionError",
    "SpawnFailure",
    "SynchronizationTimeout",
    "SentinelNotFound",
    "MalformedSlice",
]
