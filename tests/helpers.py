"""Shared fixtures: configs that point the driver at the bundled reference engine."""

from __future__ import annotations

import sys

from perftharness.config import Config, EngineConfig, ProtocolConfig

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def reference_command(*flags: str) -> list[str]:
    return [sys.executable, "-m", "perftharness.reference_engine", *flags]


def pipe_config(*flags: str, sync_timeout: float = 10.0) -> Config:
    """Reference engine on pipes, echoing itself with \\r\\n like a terminal would."""
    return Config(
        engine=EngineConfig(command=reference_command("--echo", "--crlf", *flags), transport="pipe"),
        protocol=ProtocolConfig(sync_timeout=sync_timeout, capture_timeout=60.0),
    )


def script_config(source: str, sync_timeout: float = 10.0, capture_timeout: float = 10.0) -> Config:
    """A throwaway python -c engine on pipes, for misbehaving collaborators."""
    return Config(
        engine=EngineConfig(command=[sys.executable, "-c", source], transport="pipe"),
        protocol=ProtocolConfig(sync_timeout=sync_timeout, capture_timeout=capture_timeout),
    )
