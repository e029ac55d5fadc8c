"""
Engine process transports.

A transport starts the engine and gives the driver raw byte access to its
input and output. Two flavours:

  PtyTransport   engine runs on the slave side of a pseudo-terminal, so the
                 terminal line discipline echoes whatever is sent and turns
                 the engine's "\n" into "\r\n". Works with engines that never
                 echo on their own.
  PipeTransport  plain pipes; the engine must echo by itself.

Reads return b"" once the engine's output has ended.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
from abc import ABC, abstractmethod

from perftharness.config import EngineConfig
from perftharness.errors import SpawnFailure

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096


class EngineTransport(ABC):
    """Abstract base for a running engine process and its byte streams."""

    def __init__(self, command: list[str], cwd: str | None = None) -> None:
        self.command = command
        self.cwd = cwd
        self._proc: asyncio.subprocess.Process | None = None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc else None

    @abstractmethod
    async def start(self) -> None:
        """
        Launch the engine.

        Raises:
            SpawnFailure: the process could not be created.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    async def read(self) -> bytes:
        """Return the next chunk of engine output, or b"" at end-of-stream."""
        ...

    async def close(self) -> None:
        """Kill the engine if it is still running and reap it."""
        proc = self._proc
        if proc is None:
            return
        if proc.returncode is None:
            logger.debug("Killing engine [pid=%s]", proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
        logger.debug("Engine exited [pid=%s returncode=%s]", proc.pid, proc.returncode)

    def _spawn_failure(self, exc: OSError) -> SpawnFailure:
        logger.error("Could not start engine %r: %s", self.command, exc)
        return SpawnFailure(f"could not start engine {' '.join(self.command)!r}: {exc}", cause=exc)


class PipeTransport(EngineTransport):
    async def start(self) -> None:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                cwd=self.cwd,
            )
        except OSError as exc:
            raise self._spawn_failure(exc) from exc
        logger.debug("Engine started on pipes [pid=%s]", self._proc.pid)

    async def write(self, data: bytes) -> None:
        assert self._proc is not None and self._proc.stdin is not None
        self._proc.stdin.write(data)
        await self._proc.stdin.drain()

    async def read(self) -> bytes:
        assert self._proc is not None and self._proc.stdout is not None
        return await self._proc.stdout.read(_READ_CHUNK)

    async def close(self) -> None:
        if self._proc is not None and self._proc.stdin is not None:
            self._proc.stdin.close()
        await super().close()


class _PtyReaderProtocol(asyncio.StreamReaderProtocol):
    def connection_lost(self, exc: Exception | None) -> None:
        # Linux reports a hung-up pty master as EIO rather than EOF
        if isinstance(exc, OSError) and exc.errno == errno.EIO:
            exc = None
        super().connection_lost(exc)


class PtyTransport(EngineTransport):
    def __init__(self, command: list[str], cwd: str | None = None) -> None:
        super().__init__(command, cwd)
        self._master_fd: int | None = None
        self._master = None
        self._reader: asyncio.StreamReader | None = None
        self._read_transport: asyncio.ReadTransport | None = None

    async def start(self) -> None:
        try:
            master_fd, slave_fd = os.openpty()
        except OSError as exc:
            raise self._spawn_failure(exc) from exc

        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=self.cwd,
            )
        except OSError as exc:
            os.close(master_fd)
            raise self._spawn_failure(exc) from exc
        finally:
            # The child holds its own copy; keeping ours open would hide EOF
            os.close(slave_fd)

        loop = asyncio.get_running_loop()
        try:
            self._master = os.fdopen(master_fd, "rb", buffering=0)
            self._reader = asyncio.StreamReader()
            self._read_transport, _ = await loop.connect_read_pipe(
                lambda: _PtyReaderProtocol(self._reader), self._master
            )
        except OSError as exc:
            if self._master is not None:
                self._master.close()
            else:
                os.close(master_fd)
            self._master = None
            await super().close()
            raise self._spawn_failure(exc) from exc
        self._master_fd = master_fd
        logger.debug("Engine started on pty [pid=%s]", self._proc.pid)

    async def write(self, data: bytes) -> None:
        assert self._master_fd is not None
        view = memoryview(data)
        while view:
            try:
                written = os.write(self._master_fd, view)
            except BlockingIOError:
                # connect_read_pipe made the master non-blocking
                await asyncio.sleep(0.01)
                continue
            except OSError as exc:
                if exc.errno == errno.EIO:
                    raise BrokenPipeError(errno.EPIPE, "engine hung up the terminal") from exc
                raise
            view = view[written:]

    async def read(self) -> bytes:
        assert self._reader is not None
        return await self._reader.read(_READ_CHUNK)

    async def close(self) -> None:
        if self._read_transport is not None:
            self._read_transport.close()
        await super().close()


def open_transport(engine: EngineConfig) -> EngineTransport:
    """Instantiate the transport named in the engine config (not started yet)."""
    match engine.transport:
        case "pty":
            return PtyTransport(engine.command, engine.cwd)
        case "pipe":
            return PipeTransport(engine.command, engine.cwd)
        case _:
            raise ValueError(f"Unknown transport '{engine.transport}'")
