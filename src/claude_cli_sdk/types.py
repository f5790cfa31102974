"""types.py — Options, messages, and content blocks.

The CLI writes one JSON object per line. Every object carries a `type`
discriminator; parse_message() reads it first and then validates the
fields of the indicated variant. Anything that does not fit raises
MessageParseError.

Wire shapes:
  {"type": "user",      "content": [<block>, ...]}
  {"type": "assistant", "content": [<block>, ...]}
  {"type": "system",    "content": "..."}
  {"type": "result",    "id": "...", "exit_code": 0, "cost_usd": 0.01, ...}

Blocks:
  {"type": "text",        "text": "..."}
  {"type": "tool_use",    "id": "...", "name": "...", "input": {...}}
  {"type": "tool_result", "tool_use_id": "...", "content": ..., "is_error": false}
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Union

from .errors import InvalidOptionError


class MessageParseError(ValueError):
    """A JSON value does not match any known message or block shape."""


# -- Options ------------------------------------------------------------------


class PermissionMode(str, Enum):
    """How the CLI handles tool permission prompts."""

    DEFAULT = "default"
    ACCEPT_EDITS = "accept_edits"
    BYPASS_PERMISSIONS = "bypass_permissions"


@dataclass
class McpServerConfig:
    """An MCP server the CLI could launch. Reserved; not passed to the CLI yet."""

    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] | None = None


@dataclass
class ClaudeCodeOptions:
    """Per-query configuration.

    Only a subset reaches the command line (see command.build_args).
    The rest are reserved: accepted and stored, but never emitted,
    because the CLI flags they would map to are unconfirmed.
    """

    cwd: str | Path | None = None
    allowed_tools: list[str] | None = None
    permission_mode: PermissionMode | None = None
    system_prompt: str | None = None
    max_turns: int | None = None
    disable_safety_suggestions: bool | None = None
    disable_telemetry: bool | None = None
    disable_stream: bool | None = None
    disable_vision: bool | None = None
    disable_search: bool | None = None
    claude_model: str | None = None
    claude_api_key: str | None = None
    env: dict[str, str] | None = None

    # Reserved
    claude_host: str | None = None
    claude_anthropic_version: str | None = None
    claude_max_tokens: int | None = None
    claude_temperature: float | None = None
    claude_top_k: int | None = None
    claude_top_p: float | None = None
    claude_stop_sequences: list[str] | None = None
    claude_timeout: int | None = None
    claude_stream: bool | None = None
    claude_extra_headers: dict[str, str] | None = None
    claude_default_headers: dict[str, str] | None = None
    mcp_servers: list[McpServerConfig] | None = None
    mcp_timeout: int | None = None
    mcp_disable_tools: bool | None = None
    mcp_disable_resources: bool | None = None
    mcp_disable_prompts: bool | None = None
    mcp_disable_sampling: bool | None = None
    mcp_disable_roots: bool | None = None
    mcp_extra_logging: bool | None = None
    mcp_batch_requests: bool | None = None
    mcp_batch_delay: int | None = None
    allow_tools: bool | None = None
    no_tools: bool | None = None
    no_prompt_validation: bool | None = None
    no_prompt_cache: bool | None = None
    no_model_timeout: bool | None = None
    no_output_timeout: bool | None = None
    no_input_timeout: bool | None = None
    input_timeout: int | None = None
    output_timeout: int | None = None
    model_timeout: int | None = None
    prompt_cache_dir: str | Path | None = None
    log_level: str | None = None
    config_file: str | Path | None = None

    # -- Fluent setters (each returns a new options object) -------------------

    def with_cwd(self, cwd: str | Path) -> ClaudeCodeOptions:
        return dataclasses.replace(self, cwd=cwd)

    def with_allowed_tools(self, tools: list[str]) -> ClaudeCodeOptions:
        return dataclasses.replace(self, allowed_tools=list(tools))

    def with_permission_mode(self, mode: PermissionMode) -> ClaudeCodeOptions:
        try:
            mode = PermissionMode(mode)
        except ValueError as exc:
            raise InvalidOptionError(f"Unknown permission mode: {mode!r}") from exc
        return dataclasses.replace(self, permission_mode=mode)

    def with_system_prompt(self, prompt: str) -> ClaudeCodeOptions:
        return dataclasses.replace(self, system_prompt=prompt)

    def with_max_turns(self, turns: int) -> ClaudeCodeOptions:
        return dataclasses.replace(self, max_turns=turns)

    def with_model(self, model: str) -> ClaudeCodeOptions:
        return dataclasses.replace(self, claude_model=model)

    def with_api_key(self, api_key: str) -> ClaudeCodeOptions:
        return dataclasses.replace(self, claude_api_key=api_key)

    def with_env(self, env: dict[str, str]) -> ClaudeCodeOptions:
        merged = dict(self.env or {})
        merged.update(env)
        return dataclasses.replace(self, env=merged)


# -- Content blocks -----------------------------------------------------------


@dataclass
class TextBlock:
    text: str

    type: ClassVar[str] = "text"

    def to_dict(self) -> dict:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    type: ClassVar[str] = "tool_use"

    def to_dict(self) -> dict:
        return {"type": self.type, "id": self.id, "name": self.name, "input": self.input}


@dataclass
class ToolResultBlock:
    """Result of a tool call.

    content is usually a string, but the CLI may also send a list of
    content blocks; that list is kept as raw dicts.
    """

    tool_use_id: str
    content: str | list[dict[str, Any]] | None = None
    is_error: bool | None = None

    type: ClassVar[str] = "tool_result"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type, "tool_use_id": self.tool_use_id}
        if self.content is not None:
            data["content"] = self.content
        if self.is_error is not None:
            data["is_error"] = self.is_error
        return data


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


# -- Messages -----------------------------------------------------------------


@dataclass
class UserMessage:
    content: list[ContentBlock] = field(default_factory=list)

    type: ClassVar[str] = "user"

    def to_dict(self) -> dict:
        return {"type": self.type, "content": [b.to_dict() for b in self.content]}


@dataclass
class AssistantMessage:
    content: list[ContentBlock] = field(default_factory=list)

    type: ClassVar[str] = "assistant"

    @property
    def text(self) -> str:
        """Concatenated text of all TextBlocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    def to_dict(self) -> dict:
        return {"type": self.type, "content": [b.to_dict() for b in self.content]}


@dataclass
class SystemMessage:
    content: str

    type: ClassVar[str] = "system"

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass
class ResultMessage:
    """End-of-query summary: exit status, cost, and token usage."""

    id: str
    exit_code: int | None = None
    content: str | None = None
    cost_usd: float | None = None
    tokens_input: int | None = None
    tokens_output: int | None = None
    reasoning_tokens: int | None = None
    canceled: bool | None = None

    type: ClassVar[str] = "result"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is not None:
                data[f.name] = value
        return data


Message = Union[UserMessage, AssistantMessage, SystemMessage, ResultMessage]


# -- Decoding -----------------------------------------------------------------
# Discriminator first, then per-variant field validation. Extra keys are
# ignored so newer CLI versions can add fields without breaking us.


def _check(value: Any, expected: type | tuple[type, ...]) -> bool:
    # bool is an int subclass; a JSON true is never a valid count.
    if isinstance(value, bool) and bool not in (
        expected if isinstance(expected, tuple) else (expected,)
    ):
        return False
    return isinstance(value, expected)


def _required(data: dict, key: str, expected: type | tuple[type, ...], kind: str) -> Any:
    if key not in data:
        raise MessageParseError(f"{kind}: missing required field '{key}'")
    value = data[key]
    if not _check(value, expected):
        raise MessageParseError(
            f"{kind}: field '{key}' has wrong type {type(value).__name__}"
        )
    return value


def _optional(data: dict, key: str, expected: type | tuple[type, ...], kind: str) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if not _check(value, expected):
        raise MessageParseError(
            f"{kind}: field '{key}' has wrong type {type(value).__name__}"
        )
    return value


def _discriminator(data: Any, kind: str) -> str:
    if not isinstance(data, dict):
        raise MessageParseError(f"{kind} must be a JSON object, got {type(data).__name__}")
    tag = data.get("type")
    if tag is None:
        raise MessageParseError(f"{kind} has no 'type' field")
    if not isinstance(tag, str):
        raise MessageParseError(f"{kind} 'type' must be a string")
    return tag


def parse_content_block(data: Any) -> ContentBlock:
    """Decode one content block dict."""
    tag = _discriminator(data, "content block")

    if tag == "text":
        return TextBlock(text=_required(data, "text", str, "text block"))

    if tag == "tool_use":
        tool_input = data.get("input")
        if tool_input is None:
            tool_input = {}
        elif not isinstance(tool_input, dict):
            raise MessageParseError("tool_use block: field 'input' must be an object")
        return ToolUseBlock(
            id=_required(data, "id", str, "tool_use block"),
            name=_required(data, "name", str, "tool_use block"),
            input=tool_input,
        )

    if tag == "tool_result":
        return ToolResultBlock(
            tool_use_id=_required(data, "tool_use_id", str, "tool_result block"),
            content=_optional(data, "content", (str, list), "tool_result block"),
            is_error=_optional(data, "is_error", bool, "tool_result block"),
        )

    raise MessageParseError(f"unknown content block type: {tag!r}")


def _parse_blocks(data: dict, kind: str) -> list[ContentBlock]:
    blocks = _required(data, "content", list, kind)
    return [parse_content_block(b) for b in blocks]


def parse_message(data: Any) -> Message:
    """Decode one parsed JSON value into a Message.

    This is the single point where the wire protocol maps to our types.
    """
    tag = _discriminator(data, "message")

    if tag == "user":
        return UserMessage(content=_parse_blocks(data, "user message"))

    if tag == "assistant":
        return AssistantMessage(content=_parse_blocks(data, "assistant message"))

    if tag == "system":
        return SystemMessage(content=_required(data, "content", str, "system message"))

    if tag == "result":
        kind = "result message"
        return ResultMessage(
            id=_required(data, "id", str, kind),
            exit_code=_optional(data, "exit_code", int, kind),
            content=_optional(data, "content", str, kind),
            cost_usd=_optional(data, "cost_usd", (int, float), kind),
            tokens_input=_optional(data, "tokens_input", int, kind),
            tokens_output=_optional(data, "tokens_output", int, kind),
            reasoning_tokens=_optional(data, "reasoning_tokens", int, kind),
            canceled=_optional(data, "canceled", bool, kind),
        )

    raise MessageParseError(f"unknown message type: {tag!r}")
