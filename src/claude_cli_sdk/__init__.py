"""claude_cli_sdk - Stream typed messages from the Claude Code CLI.

Architecture:
- command: prompt + options -> argv/env for the CLI (pure)
- transport: spawns the CLI, reads NDJSON from stdout lazily
- client: ties one transport to one query with guaranteed teardown

Usage:
    async with contextlib.aclosing(query("What is 2 + 2?")) as stream:
        async for item in stream:
            if isinstance(item, AssistantMessage):
                print(item.text)
"""

from __future__ import annotations

import os
from contextlib import aclosing
from typing import AsyncIterator

from .client import InternalClient
from .command import CLI_CANDIDATES, Invocation, build_args, build_env, build_invocation, find_cli_binary
from .errors import (
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
from .observability import configure as configure_observability
from .transport import StreamItem, SubprocessCLITransport, Transport, TransportState
from .types import (
    AssistantMessage,
    ClaudeCodeOptions,
    ContentBlock,
    McpServerConfig,
    Message,
    MessageParseError,
    PermissionMode,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    parse_content_block,
    parse_message,
)

__version__ = "0.1.0"

ENTRYPOINT_ENV = "CLAUDE_CODE_ENTRYPOINT"


async def query(
    prompt: str,
    options: ClaudeCodeOptions | None = None,
    *,
    cli_path: str | None = None,
) -> AsyncIterator[StreamItem]:
    """Run one prompt through the CLI and stream what comes back.

    Yields Message objects, and CLIJSONDecodeError instances for output
    lines that could not be decoded. Raises CLINotFoundError or
    CLIConnectionError before the first item if the CLI cannot be
    started, and ProcessError if it exits non-zero.

    Args:
        prompt: The prompt, passed as the CLI's final argument.
        options: Query configuration. Defaults to ClaudeCodeOptions().
        cli_path: Explicit CLI binary, skipping the candidate search.
    """
    os.environ[ENTRYPOINT_ENV] = "sdk-py"

    client = InternalClient(cli_path=cli_path)
    async with aclosing(client.process_query(prompt, options or ClaudeCodeOptions())) as stream:
        async for item in stream:
            yield item


__all__ = [
    # Entry point
    "query",
    "InternalClient",
    # Transport
    "Transport",
    "TransportState",
    "SubprocessCLITransport",
    "StreamItem",
    # Command building
    "CLI_CANDIDATES",
    "Invocation",
    "build_args",
    "build_env",
    "build_invocation",
    "find_cli_binary",
    # Options
    "ClaudeCodeOptions",
    "PermissionMode",
    "McpServerConfig",
    # Messages
    "Message",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ResultMessage",
    "ContentBlock",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "parse_message",
    "parse_content_block",
    "MessageParseError",
    # Errors
    "ClaudeSDKError",
    "CLINotFoundError",
    "InvalidOptionError",
    "CLIConnectionError",
    "NotConnectedError",
    "SpawnError",
    "ProcessError",
    "CLIJSONDecodeError",
    "CLIStreamError",
    # Observability
    "configure_observability",
]
