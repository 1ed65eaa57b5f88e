"""
Best-effort progress notifications tied to a client's progress token.

Progress is advisory: a missing token, a missing session, or a failed send
never reaches the operation that asked for the notification.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.data_types import ProgressToken

logger = get_logger(__name__)

# Only discrete milestones are reported, never a fraction of work done.
MILESTONE_PROGRESS = 0.0


@runtime_checkable
class ProgressNotifier(Protocol):
    """Capability for delivering a progress message to the requesting client."""

    async def notify(self, token: Optional[ProgressToken], message: str) -> None: ...


class ProgressSession(Protocol):
    """The slice of ``mcp.server.session.ServerSession`` used for progress."""

    async def send_progress_notification(
        self,
        progress_token: ProgressToken,
        progress: float,
        total: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None: ...


class NullProgressNotifier:
    """Notifier that drops every message."""

    async def notify(self, token: Optional[ProgressToken], message: str) -> None:
        return None


class SessionProgressNotifier:
    """
    Sends ``notifications/progress`` through the session of the current request.

    The session is looked up on every call through ``session_provider``, which
    returns ``None`` when no request is active.
    """

    def __init__(self, session_provider: Callable[[], Optional[ProgressSession]]) -> None:
        self._session_provider = session_provider

    async def notify(self, token: Optional[ProgressToken], message: str) -> None:
        if token is None:
            return
        try:
            session = self._session_provider()
        except LookupError:
            session = None
        if session is None:
            return

        try:
            # An empty message is left out of the payload entirely.
            await session.send_progress_notification(
                progress_token=token,
                progress=MILESTONE_PROGRESS,
                message=message or None,
            )
        except Exception as e:
            logger.debug(f"Dropping progress notification for token {token!r}: {e}")


def get_progress_token(meta: Any) -> Optional[ProgressToken]:
    """
    Extract the progress token from request metadata.

    Args:
        meta: The request's ``_meta`` object, or None.

    Returns:
        The client's progress token, or None when the request carried none.
    """
    if meta is None:
        return None
    return getattr(meta, "progressToken", None)
