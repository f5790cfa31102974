#!/usr/bin/env python3
"""quick_start — walk through the SDK against an installed claude-code CLI.

Run: python examples/quick_start.py [--debug]
"""

import asyncio
import sys
from contextlib import aclosing

from claude_cli_sdk import (
    AssistantMessage,
    ClaudeCodeOptions,
    ClaudeSDKError,
    CLIJSONDecodeError,
    CLINotFoundError,
    PermissionMode,
    ProcessError,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    configure_observability,
    query,
)


async def simple_query():
    async for message in query("What is 2 + 2?"):
        if isinstance(message, AssistantMessage):
            print(f"Assistant: {message.text}")
        elif isinstance(message, ResultMessage):
            print(f"Query completed with exit code: {message.exit_code}")
            if message.tokens_input is not None:
                print(f"Input tokens: {message.tokens_input}")
            if message.tokens_output is not None:
                print(f"Output tokens: {message.tokens_output}")


async def query_with_options():
    options = (
        ClaudeCodeOptions()
        .with_system_prompt("You are a helpful math tutor. Always show your work.")
        .with_max_turns(1)
    )
    async for message in query("Solve this equation: 3x + 5 = 14", options):
        if isinstance(message, AssistantMessage):
            print(f"Math Tutor: {message.text}")
        elif isinstance(message, ResultMessage) and message.cost_usd is not None:
            print(f"Cost: ${message.cost_usd:.6f}")


async def query_with_tools():
    options = (
        ClaudeCodeOptions()
        .with_allowed_tools(["Read", "Write"])
        .with_permission_mode(PermissionMode.ACCEPT_EDITS)
        .with_system_prompt("You are a helpful programming assistant.")
    )
    prompt = "Create a simple hello.py file that prints 'Hello, Python!'"
    async for message in query(prompt, options):
        if not isinstance(message, AssistantMessage):
            continue
        for block in message.content:
            if isinstance(block, TextBlock):
                print(f"Assistant: {block.text}")
            elif isinstance(block, ToolUseBlock):
                print(f"Using tool: {block.name} (ID: {block.id})")
                print(f"Input: {block.input}")


async def handle_message_types():
    # aclosing() stops the CLI as soon as we leave the loop, even on break.
    async with aclosing(query("Tell me a joke")) as stream:
        async for item in stream:
            if isinstance(item, CLIJSONDecodeError):
                print(f"Skipping undecodable line: {item.line!r}")
            elif isinstance(item, UserMessage):
                print(f"User message with {len(item.content)} content blocks")
            elif isinstance(item, AssistantMessage):
                print("Assistant message:")
                for i, block in enumerate(item.content):
                    if isinstance(block, TextBlock):
                        print(f"  Block {i}: Text - {block.text}")
                    elif isinstance(block, ToolUseBlock):
                        print(f"  Block {i}: Tool Use - {block.name} (ID: {block.id})")
                    elif isinstance(block, ToolResultBlock):
                        print(f"  Block {i}: Tool Result - ID: {block.tool_use_id}")
            elif isinstance(item, SystemMessage):
                print(f"System message: {item.content}")
            elif isinstance(item, ResultMessage):
                print(f"Result message (ID: {item.id})")
                break


async def main():
    print("Claude CLI SDK - Quick Start Examples")
    print("=====================================")
    try:
        print("\n1. Simple query:")
        await simple_query()

        print("\n2. Query with system prompt and options:")
        await query_with_options()

        print("\n3. Query with tools enabled:")
        await query_with_tools()

        print("\n4. Handling different message types:")
        await handle_message_types()
    except CLINotFoundError:
        print("Error: Claude Code CLI not found. Please install it.")
    except ProcessError as e:
        print(f"Process failed (exit code {e.exit_code}): {e.stderr}")
    except ClaudeSDKError as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    configure_observability(debug="--debug" in sys.argv)
    asyncio.run(main())
