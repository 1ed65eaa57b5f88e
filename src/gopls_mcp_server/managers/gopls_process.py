"""
Lifecycle of the gopls language-server subprocess.

The process is started with ``gopls serve`` in the workspace and kept alive
for the lifetime of the service. Termination sends SIGTERM, waits up to the
configured timeout, and falls back to SIGKILL. A cancelled termination
kills the process before the cancellation propagates.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

from gopls_mcp_server.atoms.errors.application_errors import ServiceStartError
from gopls_mcp_server.atoms.logging.logger import get_logger

DEFAULT_TERMINATION_TIMEOUT = 5.0  # seconds


class GoplsProcess:
    """Owns one ``gopls serve`` subprocess."""

    def __init__(
        self,
        gopls_path: str,
        workspace_dir: Path,
        termination_timeout: float = DEFAULT_TERMINATION_TIMEOUT,
        extra_args: Optional[List[str]] = None,
    ) -> None:
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self.gopls_path = gopls_path
        self.workspace_dir = workspace_dir
        self.termination_timeout = termination_timeout
        self.command = [gopls_path, "serve", *(extra_args or [])]
        self.process: Optional[asyncio.subprocess.Process] = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        """
        Spawn gopls.

        Raises:
            ServiceStartError: If the process cannot be spawned.
        """
        if self.running:
            return
        try:
            # The LSP speaks over stdin/stdout; stderr is discarded to avoid a full pipe.
            self.process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=str(self.workspace_dir),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self.logger.error(f"Failed to spawn gopls: {e}")
            raise ServiceStartError(f"start gopls: {e}", {"command": self.command}) from e
        self.logger.info(f"Spawned gopls (PID: {self.process.pid}) with command: {' '.join(self.command)}")

    async def terminate(self) -> None:
        """Stop gopls if it is running. Safe to call repeatedly."""
        process = self.process
        if process is None or process.returncode is not None:
            return

        self.logger.info(f"Terminating gopls (PID: {process.pid})...")
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.termination_timeout)
            self.logger.info("gopls terminated gracefully (SIGTERM).")
        except ProcessLookupError:
            self.logger.debug("gopls already exited.")
        except asyncio.TimeoutError:
            self.logger.warning(
                f"gopls did not terminate gracefully within {self.termination_timeout}s. Sending SIGKILL."
            )
            self._kill(process)
            await process.wait()
            self.logger.info("gopls killed (SIGKILL).")
        except asyncio.CancelledError:
            # The caller gave up waiting; never leave gopls behind.
            self.logger.warning("gopls termination cancelled. Sending SIGKILL.")
            self._kill(process)
            raise

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
