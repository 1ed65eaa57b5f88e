"""
Service runner protocol definition extracted to prevent circular imports.
"""

import asyncio
from typing import Callable, Protocol, runtime_checkable

from gopls_mcp_server.atoms.types.config import ServerConfig


@runtime_checkable
class ServiceRunner(Protocol):
    """A long-running backing service owned by the lifecycle controller."""

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """Run until ``shutdown_event`` is set or an unrecoverable error occurs."""
        ...

    async def close(self) -> None:
        """Release every resource. Must be idempotent."""
        ...


ServiceFactory = Callable[[ServerConfig], ServiceRunner]
