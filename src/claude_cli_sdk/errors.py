"""errors.py — Everything that can go wrong talking to the CLI.

Build and connect failures are raised before any streaming begins.
Per-line decode failures are yielded in-band by the transport so the
consumer decides whether to keep reading. Process and I/O failures are
raised and end the stream.
"""

from __future__ import annotations


class ClaudeSDKError(Exception):
    """Base exception for the SDK."""


class InvalidOptionError(ClaudeSDKError, ValueError):
    """An option holds a value the CLI has no flag for."""


class CLINotFoundError(ClaudeSDKError):
    """No candidate path resolved to the Claude Code CLI."""

    def __init__(self, candidates: tuple[str, ...] | list[str] = ()):
        self.candidates = tuple(candidates)
        super().__init__(
            "Claude Code CLI not found. Please install it with: "
            "npm install -g @anthropic-ai/claude-code"
        )


class CLIConnectionError(ClaudeSDKError):
    """The transport could not reach (or is not attached to) the CLI."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"CLI connection error: {message}")


class NotConnectedError(CLIConnectionError):
    """An operation that needs a live process was called before connect()."""

    def __init__(self, message: str = "Not connected"):
        super().__init__(message)


class SpawnError(CLIConnectionError):
    """Process creation failed (missing binary, permissions, resources)."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Failed to spawn CLI process: {cause}")


class ProcessError(ClaudeSDKError):
    """The CLI exited with a non-zero status.

    Carries the exit code and the tail of whatever the process wrote
    to stderr.
    """

    def __init__(self, exit_code: int, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Process failed with exit code {exit_code}: {stderr}")


class CLIJSONDecodeError(ClaudeSDKError):
    """One line of CLI output could not be decoded into a message.

    Non-terminal: the transport yields these as stream items.
    """

    def __init__(self, line: str, cause: BaseException | str):
        self.line = line
        self.cause = cause
        super().__init__(f"Failed to decode JSON response: {cause} (line: {line!r})")


class CLIStreamError(ClaudeSDKError):
    """Reading the CLI's stdout failed."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"I/O error reading CLI output: {cause}")
