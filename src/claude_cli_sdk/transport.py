"""transport.py — The CLI subprocess and its stdout stream.

The CLI is one-directional: it takes the prompt on argv, never reads
stdin, and writes newline-delimited JSON to stdout. The transport owns
three channels:
  1. stdout — one JSON message per line, read lazily
  2. stderr — drained in the background into a bounded tail buffer
  3. stdin  — /dev/null

Lifecycle:

    DISCONNECTED --connect()--> CONNECTED --disconnect() | exit--> DISCONNECTED

One transport per query. There is no reconnect.

Usage:
    async with SubprocessCLITransport("Hello", options) as transport:
        async for item in transport.receive_messages():
            if isinstance(item, CLIJSONDecodeError):
                continue  # or raise item
            print(item)

The message stream is pull-driven: each step reads exactly one line,
so a slow consumer throttles how fast stdout is drained. However the
stream ends (exhausted, aclose()d, cancelled, or raising), a process
that is still alive gets a non-blocking kill.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections import deque
from enum import Enum, auto
from typing import AsyncIterator, Protocol, Union, runtime_checkable

import logfire

from .command import Invocation, build_invocation
from .errors import (
    CLIConnectionError,
    CLIJSONDecodeError,
    CLIStreamError,
    NotConnectedError,
    ProcessError,
    SpawnError,
)
from .types import ClaudeCodeOptions, Message, MessageParseError, parse_message

# How long to wait for the CLI to exit, both after EOF and after SIGTERM.
DEFAULT_EXIT_TIMEOUT = 5.0

# StreamReader line limit. Assistant messages with large tool inputs
# blow through asyncio's 64 KiB default.
DEFAULT_LINE_LIMIT = 1024 * 1024

# Lines of stderr kept for ProcessError diagnostics.
DEFAULT_STDERR_LINES = 100

StreamItem = Union[Message, CLIJSONDecodeError]


class TransportState(Enum):
    """Connection state of a transport."""

    DISCONNECTED = auto()
    CONNECTED = auto()


@runtime_checkable
class Transport(Protocol):
    """Something that can run one query and stream its messages.

    Used as an async context manager: enter connects, exit disconnects.
    """

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    def receive_messages(self) -> AsyncIterator[StreamItem]:
        ...

    def is_connected(self) -> bool:
        ...

    async def __aenter__(self) -> Transport:
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


class SubprocessCLITransport:
    """Runs the Claude Code CLI as a child process for a single query."""

    def __init__(
        self,
        prompt: str,
        options: ClaudeCodeOptions | None = None,
        *,
        cli_path: str | None = None,
        exit_timeout: float = DEFAULT_EXIT_TIMEOUT,
        line_limit: int = DEFAULT_LINE_LIMIT,
        stderr_lines: int = DEFAULT_STDERR_LINES,
    ):
        self.prompt = prompt
        self.options = options or ClaudeCodeOptions()
        self.cli_path = cli_path
        self.exit_timeout = exit_timeout
        self.line_limit = line_limit

        self._state = TransportState.DISCONNECTED
        self._proc: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task | None = None
        self._stderr_tail: deque[str] = deque(maxlen=stderr_lines)
        self._stream_taken = False
        self._used = False

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def stderr(self) -> str:
        """Tail of the CLI's stderr captured so far."""
        return "\n".join(self._stderr_tail)

    def is_connected(self) -> bool:
        return self._state is TransportState.CONNECTED

    # -- Lifecycle ------------------------------------------------------------

    async def connect(self) -> None:
        """Build the invocation and spawn the CLI.

        No-op when already connected. Raises CLINotFoundError when the
        binary cannot be resolved and SpawnError when the OS refuses to
        start it; in both cases the transport stays DISCONNECTED.
        """
        if self._state is TransportState.CONNECTED:
            return
        if self._used:
            raise CLIConnectionError("transport already used; create a new one per query")

        with logfire.span("connect", cli_path=self.cli_path):
            invocation = build_invocation(self.prompt, self.options, cli_path=self.cli_path)
            proc = await self._spawn(invocation)

            self._used = True
            self._proc = proc
            self._stderr_task = asyncio.create_task(self._drain_stderr(proc))
            self._state = TransportState.CONNECTED
            logfire.info(
                "Spawned {program} (pid {pid})",
                program=invocation.program,
                pid=proc.pid,
                args=list(invocation.args[:-1]),
            )

    async def disconnect(self) -> None:
        """Stop the CLI and release the process handle.

        Best effort: SIGTERM, wait up to exit_timeout, then SIGKILL and
        reap. Never raises anything except cancellation.
        """
        proc, self._proc = self._proc, None
        self._state = TransportState.DISCONNECTED
        if proc is None:
            await self._stop_stderr_task()
            return

        with logfire.span("disconnect", pid=proc.pid):
            try:
                await self._reap(proc)
            except asyncio.CancelledError:
                self._kill_nowait(proc)
                raise
            except Exception as exc:
                logfire.warning("Failed to stop CLI cleanly: {error}", error=repr(exc))
                self._kill_nowait(proc)
            finally:
                await self._stop_stderr_task()

    async def __aenter__(self) -> SubprocessCLITransport:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        proc = self._proc
        try:
            await self.disconnect()
        finally:
            if proc is not None:
                self._kill_nowait(proc)

    # -- Message stream -------------------------------------------------------

    def receive_messages(self) -> AsyncIterator[StreamItem]:
        """Return the lazy message stream.

        Raises NotConnectedError before connect(), and CLIConnectionError
        if the stream was already taken (stdout can only be read once).

        Items are Message objects or CLIJSONDecodeError instances for
        lines that could not be decoded. Iteration raises ProcessError
        when the CLI exits non-zero and CLIStreamError when stdout
        cannot be read.
        """
        if self._state is not TransportState.CONNECTED or self._proc is None:
            raise NotConnectedError()
        if self._stream_taken:
            raise CLIConnectionError("message stream already taken")
        self._stream_taken = True
        return self._read_messages(self._proc)

    async def _read_messages(self, proc: asyncio.subprocess.Process) -> AsyncIterator[StreamItem]:
        assert proc.stdout is not None
        try:
            while True:
                try:
                    line = await proc.stdout.readline()
                except (OSError, ValueError) as exc:
                    raise CLIStreamError(exc) from exc
                if not line:
                    break
                yield self._decode_line(line)

            await self._finish(proc)
        finally:
            if proc.returncode is None:
                self._kill_nowait(proc)
                self._state = TransportState.DISCONNECTED

    @staticmethod
    def _decode_line(line: bytes) -> StreamItem:
        """Decode one raw stdout line into a Message or a decode error.

        Blank lines are errors, not skips: every line the CLI writes is
        supposed to be a message.
        """
        try:
            text = line.decode("utf-8").rstrip("\r\n")
        except UnicodeDecodeError as exc:
            logfire.warning("Non-UTF-8 line from CLI: {error}", error=str(exc))
            return CLIJSONDecodeError(line.decode("utf-8", errors="replace"), exc)

        if not text.strip():
            logfire.warning("Empty line from CLI")
            return CLIJSONDecodeError(text, "Empty line received")

        try:
            return parse_message(json.loads(text))
        except (json.JSONDecodeError, MessageParseError) as exc:
            logfire.warning("Undecodable line from CLI: {error}", error=str(exc), line=text)
            return CLIJSONDecodeError(text, exc)

    async def _finish(self, proc: asyncio.subprocess.Process) -> None:
        """stdout hit EOF. Wait for the exit status and report failure."""
        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self.exit_timeout)
        except asyncio.TimeoutError:
            logfire.warning(
                "CLI closed stdout but is still running, cutting stream short (pid {pid})",
                pid=proc.pid,
            )
            return

        self._state = TransportState.DISCONNECTED
        if self._stderr_task is not None:
            await asyncio.wait({self._stderr_task}, timeout=self.exit_timeout)

        if returncode != 0:
            logfire.error("CLI exited with code {code}", code=returncode, stderr=self.stderr)
            raise ProcessError(returncode, self.stderr)
        logfire.info("CLI exited cleanly (pid {pid})", pid=proc.pid)

    # -- Subprocess management ------------------------------------------------

    async def _spawn(self, invocation: Invocation) -> asyncio.subprocess.Process:
        # Clear CLAUDECODE so the CLI can be launched from inside another
        # agent session; explicit overrides win over everything inherited.
        env = {k: v for k, v in os.environ.items() if k != "CLAUDECODE"}
        env.update(invocation.env)

        try:
            return await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=invocation.cwd,
                env=env,
                limit=self.line_limit,
            )
        except OSError as exc:
            logfire.error("Failed to spawn {program}: {error}", program=invocation.program, error=str(exc))
            raise SpawnError(exc) from exc

    async def _drain_stderr(self, proc: asyncio.subprocess.Process) -> None:
        """Read stderr in the background so the pipe never fills up."""
        assert proc.stderr is not None
        while True:
            try:
                line = await proc.stderr.readline()
            except ValueError:
                self._stderr_tail.append("[stderr line exceeded buffer limit]")
                continue
            except OSError:
                break
            if not line:
                break
            self._stderr_tail.append(line.decode("utf-8", errors="replace").rstrip())

    async def _stop_stderr_task(self) -> None:
        task, self._stderr_task = self._stderr_task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            await proc.wait()
            return

        try:
            proc.terminate()
        except ProcessLookupError:
            await proc.wait()
            return

        try:
            await asyncio.wait_for(proc.wait(), timeout=self.exit_timeout)
        except asyncio.TimeoutError:
            logfire.warning("CLI ignored SIGTERM, killing (pid {pid})", pid=proc.pid)
            self._kill_nowait(proc)
            await proc.wait()

    @staticmethod
    def _kill_nowait(proc: asyncio.subprocess.Process) -> None:
        """Send SIGKILL without waiting for confirmation."""
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            return
        logfire.debug("Sent SIGKILL to CLI (pid {pid})", pid=proc.pid)
