"""Observability setup.

The SDK logs through logfire. Nothing is exported anywhere until the
host application calls configure() (or logfire.configure() itself).
"""

from __future__ import annotations

import logfire


def configure(service_name: str = "claude_cli_sdk", debug: bool = False) -> None:
    """Configure logfire for the SDK.

    Args:
        service_name: Name to identify this service in traces.
        debug: If True, also log to console down to debug level.
               Default False (quiet mode).
    """
    logfire.configure(
        service_name=service_name,
        send_to_logfire="if-token-present",
        console=logfire.ConsoleOptions(min_log_level="debug") if debug else False,
    )
