"""
Session error hierarchy.

Every failure is terminal for the session; nothing is retried. Each class
carries the process exit code the CLI reports for it.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base for every failure that ends a perft session."""

    exit_code = 1

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class SpawnFailure(SessionError):
    """The engine process could not be started."""

    exit_code = 1


class SynchronizationTimeout(SessionError):
    """An expected echo (or end-of-stream) did not arrive within the bound."""

    exit_code = 2


class SentinelNotFound(SessionError):
    """The captured output does not contain the sentinel the result is anchored on."""

    exit_code = 3


class MalformedSlice(SentinelNotFound):
    """The sentinel was found but the slice around it does not fit the buffer."""
