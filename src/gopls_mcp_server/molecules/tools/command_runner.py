"""
Runs external Go tooling against the workspace and captures its output.

A process that starts and exits, whatever its status, yields a CommandResult.
Only a process that cannot be started, is killed by a signal, or outlives its
timeout raises CommandExecutionError.
"""

import asyncio
import shlex
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from gopls_mcp_server.atoms.errors.application_errors import CommandExecutionError
from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.data_types import CommandResult, ProgressToken
from gopls_mcp_server.molecules.tools.progress_notifier import (
    NullProgressNotifier,
    ProgressNotifier,
)

logger = get_logger(__name__)

# Seconds to wait for a killed child to be reaped
KILL_WAIT_TIMEOUT = 5.0


def format_command(args: List[str]) -> str:
    """Return a shell-quoted display form of ``args``."""
    return " ".join(shlex.quote(arg) for arg in args)


class CommandRunner:
    """Executes programs in the workspace, bracketed by progress notifications."""

    def __init__(
        self,
        workspace_dir: Union[str, Path],
        notifier: Optional[ProgressNotifier] = None,
    ) -> None:
        """
        Initialize the CommandRunner.

        Args:
            workspace_dir: Working directory for every spawned process.
            notifier: Destination for started/finished progress messages.
        """
        self.workspace_dir = Path(workspace_dir)
        self.notifier: ProgressNotifier = notifier or NullProgressNotifier()

    async def run(
        self,
        token: Optional[ProgressToken],
        program: str,
        *args: str,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run ``program`` with ``args`` and wait for it to exit.

        Args:
            token: Progress token of the request that triggered the command.
            program: Executable name or path.
            *args: Arguments passed to the program.
            timeout: Optional limit in seconds; the process is killed when exceeded.

        Returns:
            CommandResult describing the completed process, including non-zero exits.

        Raises:
            CommandExecutionError: If the process could not be run to completion.
        """
        argv = [program, *args]
        display = format_command(argv)

        await self.notifier.notify(token, f"Running: {display}")
        try:
            result = await self._execute(argv, display, timeout)
        except CommandExecutionError as e:
            await self.notifier.notify(token, f"Failed: {display}: {e.user_friendly_message}")
            raise
        except asyncio.CancelledError:
            await self.notifier.notify(token, f"Cancelled: {display}")
            raise
        await self.notifier.notify(token, f"Finished: {display} (exit {result.exit_code})")
        return result

    async def _execute(self, argv: List[str], display: str, timeout: Optional[float]) -> CommandResult:
        logger.debug(f"Executing '{display}' in {self.workspace_dir}")
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(self.workspace_dir),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CommandExecutionError(display, f"executable not found: {argv[0]}") from e
        except PermissionError as e:
            raise CommandExecutionError(display, f"permission denied: {argv[0]}") from e
        except OSError as e:
            raise CommandExecutionError(display, f"failed to start {argv[0]}: {e}") from e

        try:
            stdout, stderr = await self._communicate(process, timeout)
        except asyncio.TimeoutError as e:
            await _kill(process)
            raise CommandExecutionError(
                display, f"timed out after {timeout}s", {"timeout": timeout}
            ) from e
        except asyncio.CancelledError:
            logger.info(f"Cancelling '{display}' (PID: {process.pid})")
            await _kill(process)
            raise

        duration = time.monotonic() - started
        returncode = process.returncode if process.returncode is not None else -1
        stdout_text = stdout.decode(errors="replace") if stdout else ""
        stderr_text = stderr.decode(errors="replace") if stderr else ""

        if returncode < 0:
            raise CommandExecutionError(
                display,
                f"terminated by signal {-returncode}",
                {"signal": -returncode, "stdout": stdout_text, "stderr": stderr_text},
            )

        logger.info(f"'{display}' exited with status {returncode} in {duration:.2f}s")
        return CommandResult(
            command=display,
            args=argv,
            stdout=stdout_text,
            stderr=stderr_text,
            exit_code=returncode,
            success=returncode == 0,
            duration_seconds=round(duration, 3),
        )

    @staticmethod
    async def _communicate(
        process: asyncio.subprocess.Process, timeout: Optional[float]
    ) -> Tuple[bytes, bytes]:
        if timeout is None:
            return await process.communicate()
        return await asyncio.wait_for(process.communicate(), timeout=timeout)


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` if it is still running and reap it."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=KILL_WAIT_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning(f"Process {process.pid} did not exit after SIGKILL")
