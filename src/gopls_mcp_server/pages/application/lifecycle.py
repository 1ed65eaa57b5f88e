"""
Process lifecycle: construct the backing service, run it until SIGINT or
SIGTERM, and tear it down within the configured shutdown timeout.
"""

import asyncio
import functools
import signal
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional, TextIO

from gopls_mcp_server.atoms.errors.application_errors import (
    BaseApplicationError,
    ServiceConstructionError,
    ServiceStartError,
)
from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.config import ServerConfig
from gopls_mcp_server.atoms.utils.config_constants import SHUTDOWN_COMPLETE_MESSAGE
from gopls_mcp_server.interfaces.service_runner import ServiceFactory, ServiceRunner

logger = get_logger(__name__)

ShutdownSignalFactory = Callable[[], AsyncContextManager[asyncio.Event]]

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@asynccontextmanager
async def signal_shutdown_event() -> AsyncIterator[asyncio.Event]:
    """
    Yield an event that is set when the process receives SIGINT or SIGTERM.

    Handlers are installed on the running loop and removed on exit.
    """
    shutdown_event = asyncio.Event()

    def _signal_handler(sig: int, *_: Any) -> None:
        signame = signal.Signals(sig).name
        logger.warning(f"Received signal {signame} ({sig}). Initiating shutdown...")
        if not shutdown_event.is_set():
            shutdown_event.set()
        else:
            logger.warning("Shutdown already in progress.")

    loop = asyncio.get_running_loop()
    via_loop = []
    via_signal = {}
    for sig_enum in SHUTDOWN_SIGNALS:
        sig_num = int(sig_enum)
        try:
            loop.add_signal_handler(sig_num, functools.partial(_signal_handler, sig_num))
            via_loop.append(sig_num)
        except (NotImplementedError, ValueError, OSError) as e:
            logger.warning(f"Could not register signal handler for {sig_enum.name} using loop.add_signal_handler: {e}. Trying signal.signal.")
            try:
                via_signal[sig_num] = signal.signal(
                    sig_num, lambda s, f: loop.call_soon_threadsafe(_signal_handler, s)
                )
            except (ValueError, OSError) as sig_e:
                logger.error(f"Failed to register signal handler for {sig_enum.name} using signal.signal: {sig_e}")

    logger.debug("Signal handlers registered.")
    try:
        yield shutdown_event
    finally:
        for sig_num in via_loop:
            loop.remove_signal_handler(sig_num)
        for sig_num, previous in via_signal.items():
            signal.signal(sig_num, previous)
        logger.debug("Signal handlers removed.")


class LifecycleController:
    """
    Owns the backing service for the lifetime of the process.

    The service factory and the shutdown-signal factory are injected so the
    controller can be driven without real signals or a real gopls.
    """

    def __init__(
        self,
        config: ServerConfig,
        service_factory: ServiceFactory,
        shutdown_signal_factory: ShutdownSignalFactory = signal_shutdown_event,
        stdout: Optional[TextIO] = None,
    ) -> None:
        self.config = config
        self.service_factory = service_factory
        self.shutdown_signal_factory = shutdown_signal_factory
        self.stdout = stdout
        self._closed = False

    async def run(self) -> None:
        """
        Run the service until a shutdown signal arrives.

        Raises:
            ServiceConstructionError: If the service could not be created.
            ServiceStartError: If the service stopped with an error.
        """
        try:
            service = self.service_factory(self.config)
        except Exception as e:
            cause = e.user_friendly_message if isinstance(e, BaseApplicationError) else str(e)
            raise ServiceConstructionError(f"create service: {cause}") from e

        try:
            async with self.shutdown_signal_factory() as shutdown_event:
                try:
                    await service.start(shutdown_event)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    cause = e.user_friendly_message if isinstance(e, BaseApplicationError) else str(e)
                    raise ServiceStartError(f"service error: {cause}") from e
        finally:
            await self._close(service)

        print(SHUTDOWN_COMPLETE_MESSAGE, file=self.stdout or sys.stdout, flush=True)

    async def _close(self, service: ServiceRunner) -> None:
        if self._closed:
            return
        self._closed = True
        timeout = self.config.shutdown_timeout
        try:
            await asyncio.wait_for(service.close(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Service close did not finish within {timeout}s.")
        except Exception as e:
            logger.error(f"Error closing service: {e}", exc_info=True)
