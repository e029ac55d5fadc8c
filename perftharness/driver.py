"""
Session driver — the core orchestrator.

Runs one perft session against an engine process:

    spawn → send position → wait for its echo → send perft + quit →
    wait for their echo → read to end-of-stream → extract → emit

Each wait is bounded by a timeout from the protocol config, and the engine
process is killed and reaped on every exit path.

run_session() is UI-agnostic: it yields typed SessionEvent objects and never
prints. run_perft() drains it and hands back the result string.

Usage:
    async for event in run_session(request, config):
        display_event(event)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import AsyncGenerator, TextIO

from perftharness.commands import CommandRequest, echo_pattern, encode_lines
from perftharness.config import Config
from perftharness.errors import SentinelNotFound, SessionError, SynchronizationTimeout
from perftharness.events import (
    CommandSentEvent,
    EchoConfirmedEvent,
    OutputCapturedEvent,
    ResultExtractedEvent,
    SessionEvent,
    SessionFailedEvent,
    SessionStartEvent,
    SessionState,
    StateChangedEvent,
)
from perftharness.extract import extract_with
from perftharness.transcript import SessionTranscript
from perftharness.transport import EngineTransport, open_transport

logger = logging.getLogger(__name__)


class SessionDriver:
    """
    Owns one engine process and the output buffer read from it.

    Use as an async context manager so the process is released however the
    session ends:

        async with SessionDriver(config) as driver:
            await driver.spawn()
            await driver.send_and_sync(payload, echo)
            ...
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.protocol = config.protocol
        self.state: SessionState | None = None
        self.buffer = bytearray()
        self._cursor = 0   # end of the last matched echo
        self._transport: EngineTransport | None = None

    async def __aenter__(self) -> SessionDriver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Operations                                                           #
    # ------------------------------------------------------------------ #

    async def spawn(self) -> None:
        transport = open_transport(self.config.engine)
        await transport.start()
        self._transport = transport
        self.state = SessionState.SPAWNED

    async def send(self, payload: bytes) -> None:
        assert self._transport is not None, "spawn() first"
        try:
            await self._transport.write(payload)
        except (BrokenPipeError, ConnectionResetError) as exc:
            # The engine is gone; the following read will see end-of-stream
            logger.warning("Engine closed its input [pid=%s]: %s", self._transport.pid, exc)

    async def sync(self, pattern: bytes) -> float:
        """
        Block until pattern shows up in the output after the previous match.

        Returns the seconds spent waiting.

        Raises:
            SynchronizationTimeout: not seen within protocol.sync_timeout.
            SentinelNotFound: the engine's output ended first.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await asyncio.wait_for(self._read_until(pattern), self.protocol.sync_timeout)
        except asyncio.TimeoutError:
            raise SynchronizationTimeout(
                f"no echo of {pattern!r} within {self.protocol.sync_timeout:g}s "
                f"({len(self.buffer)} bytes read)"
            ) from None
        return loop.time() - started

    async def send_and_sync(self, payload: bytes, pattern: bytes) -> float:
        await self.send(payload)
        return await self.sync(pattern)

    async def capture(self) -> bytes:
        """Read until the engine's output ends and return everything read this session."""
        try:
            await asyncio.wait_for(self._read_to_end(), self.protocol.capture_timeout)
        except asyncio.TimeoutError:
            raise SynchronizationTimeout(
                f"engine output did not end within {self.protocol.capture_timeout:g}s after quit"
            ) from None
        return bytes(self.buffer)

    def extract(self, buffer: bytes) -> str:
        return extract_with(buffer, self.protocol)

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()
            self._transport = None

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    async def _read_until(self, pattern: bytes) -> None:
        while True:
            idx = self.buffer.find(pattern, self._cursor)
            if idx >= 0:
                self._cursor = idx + len(pattern)
                return
            chunk = await self._read_chunk()
            if not chunk:
                raise SentinelNotFound(
                    f"engine output ended before it echoed {pattern!r} "
                    f"(exit code {self._transport.returncode if self._transport else None})"
                )

    async def _read_to_end(self) -> None:
        while await self._read_chunk():
            pass

    async def _read_chunk(self) -> bytes:
        assert self._transport is not None
        chunk = await self._transport.read()
        if chunk:
            logger.debug("Read %d bytes: %r", len(chunk), chunk)
            self.buffer.extend(chunk)
        return chunk


async def run_session(
    request: CommandRequest,
    config: Config,
) -> AsyncGenerator[SessionEvent, None]:
    """
    Run a complete perft session, yielding events for every step.

    The generator ends after a ResultExtractedEvent on success or a
    SessionFailedEvent on failure; session errors are reported, not raised.
    """
    protocol = config.protocol
    exchanges = [
        (request.init_lines, SessionState.INIT_SENT, SessionState.INIT_CONFIRMED),
        (request.perft_lines, SessionState.PERFT_SENT, SessionState.PERFT_CONFIRMED),
    ]

    yield SessionStartEvent(
        request=request,
        command=list(config.engine.command),
        transport=config.engine.transport,
    )

    async with SessionDriver(config) as driver:
        try:
            await driver.spawn()
            yield StateChangedEvent(SessionState.SPAWNED)

            for lines, sent_state, confirmed_state in exchanges:
                payload = encode_lines(lines, protocol.send_terminator)
                pattern = echo_pattern(lines, protocol.line_ending)

                await driver.send(payload)
                driver.state = sent_state
                yield CommandSentEvent(payload=payload, echo_pattern=pattern)
                yield StateChangedEvent(sent_state)

                elapsed = await driver.sync(pattern)
                driver.state = confirmed_state
                yield EchoConfirmedEvent(echo_pattern=pattern, buffered=len(driver.buffer), elapsed=elapsed)
                yield StateChangedEvent(confirmed_state)

            buffer = await driver.capture()
            driver.state = SessionState.CAPTURED
            yield OutputCapturedEvent(buffer=buffer)
            yield StateChangedEvent(SessionState.CAPTURED)

            result = driver.extract(buffer)
            driver.state = SessionState.EXTRACTED
            yield StateChangedEvent(SessionState.EXTRACTED)
            yield ResultExtractedEvent(result=result)

        except SessionError as exc:
            last_state = driver.state or SessionState.FAILED
            logger.error("Session failed in state %s: %s", last_state.value, exc)
            driver.state = SessionState.FAILED
            yield StateChangedEvent(SessionState.FAILED)
            yield SessionFailedEvent(error=exc, last_state=last_state, buffer=bytes(driver.buffer))
            return

    driver.state = SessionState.DONE
    yield StateChangedEvent(SessionState.DONE)


async def run_perft(request: CommandRequest, config: Config) -> str:
    """
    Run a session to completion and return the extracted result.

    Writes a transcript when config.logging.transcript_dir is set.

    Raises:
        SessionError: whichever failure ended the session.
    """
    transcript = SessionTranscript(config.transcript_path, request) if config.transcript_path else None
    result: str | None = None
    error: SessionError | None = None

    async for event in run_session(request, config):
        if transcript is not None:
            transcript.record(event)
        match event:
            case ResultExtractedEvent():
                result = event.result
            case SessionFailedEvent():
                error = event.error

    if error is not None:
        raise error
    assert result is not None
    return result


def emit(result: str, stream: TextIO | None = None) -> None:
    """Write the result as a single undecorated line."""
    out = stream or sys.stdout
    out.write(result + "\n")
    out.flush()
