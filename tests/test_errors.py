"""Tests for errors.py — messages and carried context."""

import pytest

from claude_cli_sdk.errors import (
    ClaudeSDKError,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    CLIStreamError,
    InvalidOptionError,
    NotConnectedError,
    ProcessError,
    SpawnError,
)


class TestErrorMessages:
    def test_cli_connection_error(self):
        error = CLIConnectionError("Connection failed")
        assert error.message == "Connection failed"
        assert str(error) == "CLI connection error: Connection failed"

    def test_cli_not_found_error(self):
        error = CLINotFoundError()
        assert str(error) == (
            "Claude Code CLI not found. Please install it with: "
            "npm install -g @anthropic-ai/claude-code"
        )
        assert error.candidates == ()

    def test_process_error(self):
        error = ProcessError(1, "Command failed")
        assert error.exit_code == 1
        assert error.stderr == "Command failed"
        assert str(error) == "Process failed with exit code 1: Command failed"

    def test_json_decode_error_keeps_line(self):
        cause = ValueError("Expecting value")
        error = CLIJSONDecodeError("not json", cause)
        assert error.line == "not json"
        assert error.cause is cause
        assert "Failed to decode JSON response" in str(error)
        assert "not json" in str(error)

    def test_not_connected(self):
        error = NotConnectedError()
        assert str(error) == "CLI connection error: Not connected"

    def test_spawn_error_keeps_cause(self):
        cause = PermissionError(13, "Permission denied")
        error = SpawnError(cause)
        assert error.cause is cause
        assert "Failed to spawn CLI process" in str(error)

    def test_stream_error_keeps_cause(self):
        cause = OSError("broken pipe")
        error = CLIStreamError(cause)
        assert error.cause is cause
        assert "broken pipe" in str(error)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            CLINotFoundError(),
            InvalidOptionError("x"),
            CLIConnectionError("x"),
            NotConnectedError(),
            SpawnError(OSError()),
            ProcessError(2),
            CLIJSONDecodeError("", "empty"),
            CLIStreamError(OSError()),
        ],
    )
    def test_all_are_sdk_errors(self, error):
        assert isinstance(error, ClaudeSDKError)

    def test_invalid_option_is_value_error(self):
        assert isinstance(InvalidOptionError("x"), ValueError)

    def test_connection_family(self):
        assert isinstance(NotConnectedError(), CLIConnectionError)
        assert isinstance(SpawnError(OSError()), CLIConnectionError)

    def test_decode_is_not_process_error(self):
        assert not isinstance(CLIJSONDecodeError("x", "y"), ProcessError)
        assert not isinstance(ProcessError(1), CLIJSONDecodeError)
