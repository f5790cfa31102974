"""client.py — One query, start to finish.

Composes the command builder and the transport. The transport lives
inside an `async with`, so the CLI is stopped however the caller leaves
the stream: exhausted, broken out of, raised through, or cancelled.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator

import logfire

from .transport import StreamItem, SubprocessCLITransport, Transport
from .types import ClaudeCodeOptions


class InternalClient:
    """Runs queries against the CLI, one transport per query."""

    def __init__(self, cli_path: str | None = None):
        self.cli_path = cli_path

    def create_transport(self, prompt: str, options: ClaudeCodeOptions) -> Transport:
        """Build the transport for one query. Override to swap the process layer."""
        return SubprocessCLITransport(prompt, options, cli_path=self.cli_path)

    async def process_query(
        self,
        prompt: str,
        options: ClaudeCodeOptions,
    ) -> AsyncIterator[StreamItem]:
        """Connect, stream every item, disconnect."""
        transport = self.create_transport(prompt, options)
        logfire.info("Query ({chars} chars)", chars=len(prompt), cli_path=self.cli_path)
        async with transport, aclosing(transport.receive_messages()) as stream:
            async for item in stream:
                yield item
