import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mcp.server import Server
from mcp.types import TextContent, Tool
from pydantic import ValidationError as PydanticValidationError

from gopls_mcp_server.atoms.errors.application_errors import (
    CommandExecutionError,
    ToolExecutionError,
)
from gopls_mcp_server.atoms.logging.logger import get_logger
from gopls_mcp_server.atoms.types.data_types import (
    AnalyzeCoverageParams,
    CoverageOutcome,
    MCPErrorResponse,
    ProgressToken,
    RunTestsParams,
)
from gopls_mcp_server.atoms.utils.config_constants import SERVER_NAME
from gopls_mcp_server.molecules.tools.command_runner import CommandRunner
from gopls_mcp_server.molecules.tools.coverage import (
    MODE_FUNC,
    CoverageOrchestrator,
    normalize_package_target,
    resolve_mode,
)
from gopls_mcp_server.molecules.tools.progress_notifier import (
    SessionProgressNotifier,
    get_progress_token,
)

logger = get_logger(__name__)

# Define MCP tools
ANALYZE_COVERAGE_TOOL = Tool(
    name="analyze_coverage",
    description="Analyze test coverage for Go code",
    inputSchema={
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the package or directory to analyze. Defaults to ./...",
            },
            "output_format": {
                "type": "string",
                "description": "Format of the coverage output: 'summary' (default) or 'func' (per function)",
            },
        },
    },
)

RUN_TESTS_TOOL = Tool(
    name="run_tests",
    description="Run go test for a package or pattern",
    inputSchema={
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Package path or pattern. Defaults to ./...",
            },
        },
    },
)

TOOLS = [ANALYZE_COVERAGE_TOOL, RUN_TESTS_TOOL]


class GoToolsHandler:
    """Implements the Go testing tools on top of a CommandRunner."""

    def __init__(self, workspace_dir: Union[str, Path], runner: CommandRunner) -> None:
        self.workspace_dir = Path(workspace_dir)
        self.runner = runner
        self.coverage = CoverageOrchestrator(runner)

    async def analyze_coverage(
        self,
        token: Optional[ProgressToken],
        path: Optional[str] = None,
        output_format: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run coverage analysis for a package pattern.

        Returns:
            ``{target, mode, test, cover?}``; ``cover_error`` is added when the
            report step could not run.

        Raises:
            ToolExecutionError: If the test step itself could not run.
        """
        target = normalize_package_target(self.workspace_dir, path)
        mode = resolve_mode(output_format)
        notify = self.runner.notifier.notify
        payload: Dict[str, Any] = {"target": target, "mode": mode}

        if mode == MODE_FUNC:
            await notify(token, f"Running go test with coverage for {target}")
            result = await self.coverage.run_by_function(token, target)
            if result.outcome == CoverageOutcome.FAILED:
                raise ToolExecutionError(f"coverage analysis failed: {result.error}", {"target": target})
            payload["test"] = result.test.model_dump() if result.test else None
            if result.cover is not None:
                payload["cover"] = result.cover.model_dump()
            if result.outcome == CoverageOutcome.PARTIAL:
                payload["cover_error"] = result.error
            await notify(token, f"Coverage analysis finished for {target}")
        else:
            await notify(token, f"Running go test -cover for {target}")
            try:
                test_result = await self.coverage.run_summary(token, target)
            except CommandExecutionError as e:
                raise ToolExecutionError(f"go test failed: {e}", e.details) from e
            payload["test"] = test_result.model_dump()

        return payload

    async def run_tests(self, token: Optional[ProgressToken], path: Optional[str] = None) -> Dict[str, Any]:
        """
        Run ``go test`` for a package pattern.

        Returns:
            ``{target, result}``.

        Raises:
            ToolExecutionError: If go test could not run.
        """
        target = normalize_package_target(self.workspace_dir, path)
        await self.runner.notifier.notify(token, f"Running go test for {target}")
        try:
            result = await self.runner.run(token, "go", "test", target)
        except CommandExecutionError as e:
            raise ToolExecutionError(f"go test failed: {e}", e.details) from e
        return {"target": target, "result": result.model_dump()}

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]], token: Optional[ProgressToken]) -> Dict[str, Any]:
        """
        Route a tool call to its implementation.

        Raises:
            ToolExecutionError: For unknown tools, invalid arguments, or failed executions.
        """
        arguments = arguments or {}
        try:
            if name == ANALYZE_COVERAGE_TOOL.name:
                params = AnalyzeCoverageParams.model_validate(arguments)
                return await self.analyze_coverage(token, params.path, params.output_format)
            if name == RUN_TESTS_TOOL.name:
                run_params = RunTestsParams.model_validate(arguments)
                return await self.run_tests(token, run_params.path)
        except PydanticValidationError as e:
            raise ToolExecutionError(f"invalid arguments for {name}: {e}") from e
        raise ToolExecutionError(f"Unknown tool: {name}")


def create_server(handler: GoToolsHandler) -> Server:
    """
    Build the MCP server and register the Go tools on it.

    The handler's runner is given a notifier bound to the session of the
    request being served.
    """
    server: Server = Server(SERVER_NAME)

    def _current_session() -> Any:
        return server.request_context.session

    handler.runner.notifier = SessionProgressNotifier(_current_session)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return list(TOOLS)

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        logger.info(f"Received Tool Call: Name='{name}'")
        token = get_progress_token(server.request_context.meta)
        try:
            result = await handler.dispatch(name, arguments, token)
        except ToolExecutionError as e:
            logger.warning(f"Tool '{name}' failed: {e}")
            # Raising lets the SDK mark the result with isError.
            raise ToolExecutionError(json.dumps(MCPErrorResponse.from_exception(e).model_dump()), e.details) from e
        return [TextContent(type="text", text=json.dumps(result))]

    return server
