"""
The backing service: a gopls subprocess plus the MCP stdio server.
"""

import asyncio
import shutil
from typing import Awaitable, Callable, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server

from gopls_mcp_server.atoms.errors.application_errors import (
    CommandExecutionError,
    ServiceConstructionError,
    ServiceStartError,
)
from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.config import ServerConfig
from gopls_mcp_server.managers.gopls_process import GoplsProcess
from gopls_mcp_server.molecules.tools.command_runner import CommandRunner
from gopls_mcp_server.templates.servers.server import GoToolsHandler, create_server

logger = get_logger(__name__)

ServeFunction = Callable[[Server], Awaitable[None]]


async def run_stdio_server(server: Server) -> None:
    """Serve MCP requests over stdin/stdout until the client disconnects."""
    options = server.create_initialization_options()
    logger.info("Initializing stdio server connection...")
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Server running. Waiting for requests...")
        await server.run(read_stream, write_stream, options)


def resolve_gopls(configured: Optional[str]) -> str:
    """
    Return the gopls executable to use.

    Raises:
        ServiceConstructionError: If no gopls binary can be found.
    """
    if configured:
        return configured
    found = shutil.which("gopls")
    if not found:
        raise ServiceConstructionError("gopls binary not found on PATH; set --gopls-path or MCP_GOPLS_BIN")
    return found


class GoplsService:
    """
    Runs gopls and the MCP tool server for one workspace.

    ``start`` blocks until the shutdown event is set or the MCP server stops
    on its own. ``close`` may be called any number of times.
    """

    def __init__(self, config: ServerConfig, serve: ServeFunction = run_stdio_server) -> None:
        self.config = config
        self.gopls_path = resolve_gopls(config.gopls_path)
        self.gopls = GoplsProcess(
            self.gopls_path,
            config.workspace_dir,
            # Half the budget for SIGTERM leaves room for SIGKILL inside the outer close timeout.
            termination_timeout=config.shutdown_timeout / 2,
        )
        self.runner = CommandRunner(config.workspace_dir)
        self.handler = GoToolsHandler(config.workspace_dir, self.runner)
        self.server = create_server(self.handler)
        self._serve = serve
        self._closed = False
        logger.info(f"Service created for workspace {config.workspace_dir} using gopls at {self.gopls_path}")

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """
        Run the service until ``shutdown_event`` is set.

        Raises:
            ServiceStartError: If gopls cannot be started or the MCP server fails.
        """
        await self._probe_gopls()
        await self.gopls.start()

        server_task = asyncio.create_task(self._serve(self.server), name="mcp_server")
        shutdown_task = asyncio.create_task(shutdown_event.wait(), name="shutdown_monitor")
        try:
            done, _ = await asyncio.wait({server_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (server_task, shutdown_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(server_task, shutdown_task, return_exceptions=True)

        if shutdown_task in done:
            logger.info("Shutdown requested; MCP server stopped.")
            return

        exc = server_task.exception() if not server_task.cancelled() else None
        if exc is not None:
            raise ServiceStartError(f"mcp server: {exc}") from exc
        logger.info("MCP server exited (client disconnected).")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Closing service...")
        await self.gopls.terminate()
        logger.info("Service closed.")

    async def _probe_gopls(self) -> None:
        try:
            result = await self.runner.run(None, self.gopls_path, "version", timeout=self.config.rpc_timeout)
        except CommandExecutionError as e:
            raise ServiceStartError(f"gopls version probe failed: {e}", e.details) from e
        if not result.success:
            raise ServiceStartError(
                f"gopls version exited with status {result.exit_code}",
                {"stderr": result.stderr},
            )
        logger.info(f"Using {result.stdout.strip().splitlines()[0] if result.stdout.strip() else 'gopls'}")


def new_service(config: ServerConfig) -> GoplsService:
    """Default service factory used by the CLI."""
    return GoplsService(config)
