"""
Configuration loading from perftharness.yaml.

Uses typed dataclasses throughout so the driver, the suite runner and the CLI
share one view of the engine command and the protocol constants.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

Transport = Literal["pty", "pipe"]

DEFAULT_CONFIG_PATH = Path("perftharness.yaml")


@dataclass
class EngineConfig:
    command: list[str] = field(default_factory=lambda: ["./target/release/chess"])
    transport: Transport = "pty"
    cwd: str | None = None


@dataclass
class ProtocolConfig:
    send_terminator: str = "\n"   # appended to every line written to the engine
    line_ending: str = "\r\n"     # how the engine's output (and echo) ends a line
    sentinel: str = "quit"
    trailing_bytes: int = 1       # control bytes dropped from the end of the buffer
    sync_timeout: float = 10.0    # seconds to wait for each echo
    capture_timeout: float = 300.0  # seconds to wait for end-of-stream after quit


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str | None = None
    transcript_dir: str | None = None


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def transcript_path(self) -> Path | None:
        if not self.logging.transcript_dir:
            return None
        return Path(self.logging.transcript_dir)


def load_config(path: str | Path | None = None) -> Config:
    """
    Load and validate perftharness.yaml.

    With no path, perftharness.yaml in the working directory is used when it
    exists and built-in defaults otherwise.

    Raises:
        FileNotFoundError: an explicitly named config file is missing.
        ValueError: fields are invalid.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return Config()
        cfg_path = DEFAULT_CONFIG_PATH
    else:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config file not found: {cfg_path.resolve()}")

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        engine_raw = raw.get("engine") or {}
        command = engine_raw.get("command", EngineConfig().command)
        if isinstance(command, str):
            command = shlex.split(command)
        engine_cfg = EngineConfig(
            command=[str(part) for part in command],
            transport=engine_raw.get("transport", "pty"),
            cwd=engine_raw.get("cwd"),
        )

        proto_raw = raw.get("protocol") or {}
        defaults = ProtocolConfig()
        protocol_cfg = ProtocolConfig(
            send_terminator=str(proto_raw.get("send_terminator", defaults.send_terminator)),
            line_ending=str(proto_raw.get("line_ending", defaults.line_ending)),
            sentinel=str(proto_raw.get("sentinel", defaults.sentinel)),
            trailing_bytes=int(proto_raw.get("trailing_bytes", defaults.trailing_bytes)),
            sync_timeout=float(proto_raw.get("sync_timeout", defaults.sync_timeout)),
            capture_timeout=float(proto_raw.get("capture_timeout", defaults.capture_timeout)),
        )

        log_raw = raw.get("logging") or {}
        logging_cfg = LoggingConfig(
            level=str(log_raw.get("level", "WARNING")).upper(),
            file=log_raw.get("file"),
            transcript_dir=log_raw.get("transcript_dir"),
        )

        config = Config(engine=engine_cfg, protocol=protocol_cfg, logging=logging_cfg)
        validate(config)
        return config

    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid perftharness.yaml structure: {exc}") from exc


def validate(config: Config) -> None:
    valid_transports = ("pty", "pipe")
    if config.engine.transport not in valid_transports:
        raise ValueError(
            f"engine.transport must be one of {valid_transports}, got '{config.engine.transport}'"
        )
    if not config.engine.command:
        raise ValueError("engine.command must not be empty")
    if not config.protocol.sentinel:
        raise ValueError("protocol.sentinel must not be empty")
    if not config.protocol.send_terminator:
        raise ValueError("protocol.send_terminator must not be empty")
    if config.protocol.trailing_bytes < 0:
        raise ValueError("protocol.trailing_bytes must be >= 0")
    if config.protocol.sync_timeout <= 0 or config.protocol.capture_timeout <= 0:
        raise ValueError("protocol timeouts must be > 0")
    if config.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"logging.level '{config.logging.level}' is not a logging level")
