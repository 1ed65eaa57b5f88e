from gopls_mcp_server.molecules.tools.command_runner import CommandRunner
from gopls_mcp_server.molecules.tools.coverage import CoverageOrchestrator, normalize_package_target
from gopls_mcp_server.molecules.tools.progress_notifier import (
    NullProgressNotifier,
    ProgressNotifier,
    SessionProgressNotifier,
    get_progress_token,
)

__all__ = [
    "CommandRunner",
    "CoverageOrchestrator",
    "NullProgressNotifier",
    "ProgressNotifier",
    "SessionProgressNotifier",
    "get_progress_token",
    "normalize_package_target",
]
