"""command.py — Turn a prompt + options into a CLI invocation.

Nothing here spawns anything. The only outside contact is binary
lookup, and even that goes through an injectable `which` so tests can
drive it directly.

Argument order is fixed and never depends on dict or set iteration:

    <cli> --format json
          [--system <text>]
          [--max-turns <n>]
          [--accept-edits | --bypass-permissions]
          [--tool <name>]...
          [--disable-safety-suggestions] [--disable-telemetry]
          [--disable-stream] [--disable-vision] [--disable-search]
          [--model <name>]
          <prompt>
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Sequence

import logfire

from .errors import CLINotFoundError, InvalidOptionError
from .types import ClaudeCodeOptions, PermissionMode

# Searched in order; first hit wins.
CLI_CANDIDATES: tuple[str, ...] = (
    "claude-code",
    "/usr/local/bin/claude-code",
    "/opt/homebrew/bin/claude-code",
)

API_KEY_ENV = "ANTHROPIC_API_KEY"

_PERMISSION_FLAGS: dict[PermissionMode, str | None] = {
    PermissionMode.DEFAULT: None,
    PermissionMode.ACCEPT_EDITS: "--accept-edits",
    PermissionMode.BYPASS_PERMISSIONS: "--bypass-permissions",
}

# (option attribute, flag); emitted only when the option is exactly True.
_DISABLE_FLAGS: tuple[tuple[str, str], ...] = (
    ("disable_safety_suggestions", "--disable-safety-suggestions"),
    ("disable_telemetry", "--disable-telemetry"),
    ("disable_stream", "--disable-stream"),
    ("disable_vision", "--disable-vision"),
    ("disable_search", "--disable-search"),
)

Which = Callable[[str], "str | None"]


@dataclass(frozen=True)
class Invocation:
    """Everything needed to launch the CLI once.

    env holds only the overrides; the transport lays them over the
    inherited environment at spawn time.
    """

    program: str
    args: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    cwd: str | None = None

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


def find_cli_binary(
    candidates: Sequence[str] | None = None,
    which: Which | None = None,
) -> str:
    """Resolve the CLI binary.

    Tries each candidate (default CLI_CANDIDATES) in order and returns
    the first path `which` (default shutil.which) resolves. Raises
    CLINotFoundError if none do.
    """
    if candidates is None:
        candidates = CLI_CANDIDATES
    if which is None:
        which = shutil.which
    for candidate in candidates:
        resolved = which(candidate)
        if resolved:
            logfire.debug("Resolved CLI {candidate} -> {path}", candidate=candidate, path=resolved)
            return resolved
    raise CLINotFoundError(tuple(candidates))


def permission_flag(mode: PermissionMode | None) -> str | None:
    """The flag for a permission mode, or None when the mode adds nothing."""
    if mode is None:
        return None
    try:
        mode = PermissionMode(mode)
    except ValueError as exc:
        raise InvalidOptionError(f"Unknown permission mode: {mode!r}") from exc
    return _PERMISSION_FLAGS[mode]


def build_args(prompt: str, options: ClaudeCodeOptions) -> list[str]:
    """Build the CLI argument list (without the program itself)."""
    args = ["--format", "json"]

    if options.system_prompt is not None:
        args.extend(["--system", options.system_prompt])

    if options.max_turns is not None:
        args.extend(["--max-turns", str(options.max_turns)])

    flag = permission_flag(options.permission_mode)
    if flag:
        args.append(flag)

    for tool in options.allowed_tools or []:
        args.extend(["--tool", tool])

    for attr, disable_flag in _DISABLE_FLAGS:
        if getattr(options, attr) is True:
            args.append(disable_flag)

    if options.claude_model is not None:
        args.extend(["--model", options.claude_model])

    args.append(prompt)
    return args


def build_env(options: ClaudeCodeOptions) -> dict[str, str]:
    """Environment overrides for the child. Later entries win."""
    env: dict[str, str] = {}
    if options.claude_api_key is not None:
        env[API_KEY_ENV] = options.claude_api_key
    if options.env:
        env.update(options.env)
    return env


def build_invocation(
    prompt: str,
    options: ClaudeCodeOptions,
    cli_path: str | None = None,
    which: Which | None = None,
) -> Invocation:
    """Resolve the binary and compose the full invocation.

    An explicit cli_path skips resolution entirely; if it is wrong, the
    spawn fails later with SpawnError.
    """
    program = cli_path if cli_path is not None else find_cli_binary(which=which)
    return Invocation(
        program=str(program),
        args=tuple(build_args(prompt, options)),
        env=MappingProxyType(build_env(options)),
        cwd=str(options.cwd) if options.cwd is not None else None,
    )
