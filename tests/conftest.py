"""Shared test fixtures for claude_cli_sdk.

Two kinds of fakes:
  - FakeProcess: stands in for asyncio.subprocess.Process. Lets tests
    drive stdout/stderr byte by byte and observe terminate()/kill().
  - fake_cli: writes a real executable that prints canned lines, so
    end-to-end tests exercise an actual subprocess.
"""

import asyncio
import json
import sys
import textwrap

import logfire
import pytest


# -- Markers / logging --------------------------------------------------------


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: marks tests that need a real claude-code binary on PATH",
    )
    logfire.configure(send_to_logfire=False, console=False)


# -- Canned protocol fixtures -------------------------------------------------


@pytest.fixture
def sample_system_message():
    return {"type": "system", "content": "ready"}


@pytest.fixture
def sample_assistant_message():
    """An assistant response with a text content block."""
    return {"type": "assistant", "content": [{"type": "text", "text": "hi"}]}


@pytest.fixture
def sample_tool_use_message():
    """An assistant response containing a tool use block."""
    return {
        "type": "assistant",
        "content": [
            {"type": "text", "text": "Let me check that."},
            {
                "type": "tool_use",
                "id": "tool_01ABC",
                "name": "Bash",
                "input": {"command": "echo hello"},
            },
        ],
    }


@pytest.fixture
def sample_user_message():
    """A user message carrying a tool result back to the model."""
    return {
        "type": "user",
        "content": [
            {
                "type": "tool_result",
                "tool_use_id": "tool_01ABC",
                "content": "hello",
                "is_error": False,
            }
        ],
    }


@pytest.fixture
def sample_result():
    """End-of-query result message."""
    return {
        "type": "result",
        "id": "r1",
        "exit_code": 0,
        "content": "done",
        "cost_usd": 0.0042,
        "tokens_input": 150,
        "tokens_output": 42,
        "reasoning_tokens": 7,
        "canceled": False,
    }


@pytest.fixture
def sample_conversation(sample_system_message, sample_assistant_message):
    """The three-line exchange: system, assistant, result."""
    return [
        sample_system_message,
        sample_assistant_message,
        {"type": "result", "id": "r1", "exit_code": 0},
    ]


# -- Helpers ------------------------------------------------------------------


@pytest.fixture
def ndjson_lines():
    """Helper: convert a list of dicts to newline-delimited JSON bytes."""
    def _make(events: list[dict]) -> bytes:
        lines = [json.dumps(e) for e in events]
        return ("\n".join(lines) + "\n").encode()
    return _make


class FakeProcess:
    """Enough of asyncio.subprocess.Process for the transport.

    exit_code=None means the process keeps running until terminate()
    or kill(). ignore_sigterm makes terminate() a no-op.
    """

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_code: int | None = 0,
        stdout_eof: bool = True,
        ignore_sigterm: bool = False,
        limit: int = 2**16,
        pid: int = 4242,
    ):
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = asyncio.StreamReader(limit=limit)
        self.stderr = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        if stdout_eof:
            self.stdout.feed_eof()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()

        self.ignore_sigterm = ignore_sigterm
        self.terminate_error: BaseException | None = None
        self.terminated = False
        self.killed = False
        self._exited = asyncio.Event()
        if exit_code is not None:
            self._exit(exit_code)

    def _exit(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    def terminate(self) -> None:
        if self.terminate_error is not None:
            raise self.terminate_error
        self.terminated = True
        if not self.ignore_sigterm and self.returncode is None:
            self._exit(-15)

    def kill(self) -> None:
        self.killed = True
        if self.returncode is None:
            self._exit(-9)

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


@pytest.fixture
def attach_fake():
    """Make a transport spawn the given FakeProcess instead of a real one.

    Returns the list of Invocations the transport tried to spawn.
    """
    def _attach(transport, proc: FakeProcess) -> list:
        spawned = []

        async def _spawn(invocation):
            spawned.append(invocation)
            return proc

        transport._spawn = _spawn
        return spawned
    return _attach


_FAKE_CLI_BODY = """
import json, os, sys, time

with open({record_path!r}, "w") as f:
    json.dump({{"argv": sys.argv[1:], "env": dict(os.environ), "cwd": os.getcwd()}}, f)

for line in {lines!r}:
    sys.stdout.write(line + "\\n")
    sys.stdout.flush()

sys.stderr.write({stderr!r})
sys.stderr.flush()
time.sleep({sleep!r})
sys.exit({exit_code!r})
"""


@pytest.fixture
def fake_cli(tmp_path):
    """Factory for a fake CLI executable.

    The fake records its argv, environment, and cwd to
    `<tmp>/invocation.json`, prints `lines` to stdout, writes `stderr`,
    sleeps, and exits with `exit_code`. Returns the executable's path;
    the recorded invocation is available via fake_cli.record().
    """
    record_path = tmp_path / "invocation.json"

    def _make(lines, exit_code=0, stderr="", sleep=0.0) -> str:
        script = tmp_path / "fake_cli.py"
        script.write_text(
            textwrap.dedent(
                _FAKE_CLI_BODY.format(
                    record_path=str(record_path),
                    lines=list(lines),
                    stderr=stderr,
                    sleep=sleep,
                    exit_code=exit_code,
                )
            )
        )
        launcher = tmp_path / "claude-code"
        launcher.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
        launcher.chmod(0o755)
        return str(launcher)

    def _record() -> dict:
        return json.loads(record_path.read_text())

    _make.record = _record
    return _make
