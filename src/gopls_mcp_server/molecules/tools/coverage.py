"""
Coverage pipelines built on top of the CommandRunner.

Summary mode runs ``go test -cover`` once. Function mode writes a coverage
profile with ``go test -coverprofile`` and then renders it with
``go tool cover -func``. The report step runs whenever the test step
completed, because failing tests still leave a usable profile.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from gopls_mcp_server.atoms.errors.application_errors import CommandExecutionError
from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.data_types import (
    CommandResult,
    CoverageOutcome,
    CoverageResult,
    ProgressToken,
)
from gopls_mcp_server.atoms.utils.config_constants import (
    ALL_PACKAGES_TARGET,
    GO_SOURCE_SUFFIX,
)
from gopls_mcp_server.molecules.tools.command_runner import CommandRunner

logger = get_logger(__name__)

MODE_SUMMARY = "summary"
MODE_FUNC = "func"

_CURRENT_DIR_TARGETS = (".", "./")


def resolve_mode(output_format: Optional[str]) -> str:
    """Map a requested output format onto a supported mode, defaulting to summary."""
    if output_format == MODE_FUNC:
        return MODE_FUNC
    return MODE_SUMMARY


def dir_has_go_files(directory: Union[str, Path]) -> bool:
    """
    Report whether ``directory`` directly contains Go source files.

    Raises:
        OSError: If the directory cannot be listed.
    """
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir():
                continue
            if entry.name.endswith(GO_SOURCE_SUFFIX):
                return True
    return False


def normalize_package_target(workspace_dir: Optional[Union[str, Path]], requested: Optional[str]) -> str:
    """
    Turn a requested package pattern into the target passed to the go tool.

    An empty request means every package. A request for the current directory
    is widened to every package when the workspace root holds no Go files,
    since ``go test .`` would find nothing to do there.

    Args:
        workspace_dir: Workspace root, or None when unknown.
        requested: Package path or pattern supplied by the client.

    Returns:
        The normalized target.
    """
    target = (requested or "").strip()
    if not target:
        return ALL_PACKAGES_TARGET
    if not workspace_dir:
        return target

    if target in _CURRENT_DIR_TARGETS:
        try:
            has_go_files = dir_has_go_files(workspace_dir)
        except OSError as e:
            logger.debug(f"Could not inspect workspace {workspace_dir}: {e}")
            return target
        if not has_go_files:
            logger.debug(f"No Go files in {workspace_dir}; widening '{target}' to '{ALL_PACKAGES_TARGET}'")
            return ALL_PACKAGES_TARGET

    return target


class CoverageOrchestrator:
    """Runs the summary and per-function coverage pipelines."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    async def run_summary(self, token: Optional[ProgressToken], target: str) -> CommandResult:
        """
        Run ``go test <target> -cover``.

        Raises:
            CommandExecutionError: If go test could not be run.
        """
        return await self.runner.run(token, "go", "test", target, "-cover")

    async def run_by_function(self, token: Optional[ProgressToken], target: str) -> CoverageResult:
        """
        Run the test step with a coverage profile, then the report step.

        Execution errors never escape; they are folded into the returned
        CoverageResult as a FAILED or PARTIAL outcome. The temporary profile
        is removed on every exit path.
        """
        fd, profile_path = tempfile.mkstemp(prefix="coverage-", suffix=".out")
        os.close(fd)
        try:
            try:
                test_result = await self.runner.run(token, "go", "test", target, "-coverprofile", profile_path)
            except CommandExecutionError as e:
                logger.warning(f"Coverage test step failed for {target}: {e}")
                return CoverageResult(outcome=CoverageOutcome.FAILED, error=str(e))

            try:
                cover_result = await self.runner.run(token, "go", "tool", "cover", "-func", profile_path)
            except CommandExecutionError as e:
                logger.warning(f"Coverage report step failed for {target}: {e}")
                return CoverageResult(outcome=CoverageOutcome.PARTIAL, test=test_result, error=str(e))

            return CoverageResult(outcome=CoverageOutcome.SUCCESS, test=test_result, cover=cover_result)
        finally:
            _remove_quietly(profile_path)


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove coverage profile {path}: {e}")
