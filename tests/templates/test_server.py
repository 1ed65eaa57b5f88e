"""
Tests for the Go tool handlers and their MCP registration.
"""

from pathlib import Path

import pytest
from mcp.types import ListToolsRequest

from gopls_mcp_server.atoms.errors.application_errors import ToolExecutionError
from gopls_mcp_server.molecules.tools.progress_notifier import SessionProgressNotifier
from gopls_mcp_server.templates.servers.server import (
    ANALYZE_COVERAGE_TOOL,
    RUN_TESTS_TOOL,
    GoToolsHandler,
    create_server,
)


@pytest.fixture
def handler(nested_go_workspace: Path, fake_runner) -> GoToolsHandler:
    return GoToolsHandler(nested_go_workspace, fake_runner)


class TestRunTests:
    @pytest.mark.asyncio
    async def test_defaults_to_all_packages(self, handler: GoToolsHandler, fake_runner):
        payload = await handler.run_tests("tok")

        assert payload["target"] == "./..."
        assert fake_runner.calls == [["go", "test", "./..."]]
        assert payload["result"]["exit_code"] == 0
        assert payload["result"]["success"] is True

    @pytest.mark.asyncio
    async def test_current_dir_widened_in_nested_workspace(self, handler: GoToolsHandler):
        payload = await handler.run_tests("tok", ".")

        assert payload["target"] == "./..."

    @pytest.mark.asyncio
    async def test_failing_tests_are_reported_not_raised(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go test", exit_code=1, stdout="--- FAIL: TestAdd\nFAIL\n")

        payload = await handler.run_tests("tok", "./pkg/calc")

        assert payload["target"] == "./pkg/calc"
        assert payload["result"]["success"] is False
        assert payload["result"]["exit_code"] == 1
        assert "FAIL" in payload["result"]["stdout"]

    @pytest.mark.asyncio
    async def test_execution_error_raises_tool_error(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go test", error="executable not found: go")

        with pytest.raises(ToolExecutionError) as exc_info:
            await handler.run_tests("tok")

        assert "go test failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_announces_run_before_command(self, handler: GoToolsHandler, notifier):
        await handler.run_tests("tok")

        assert notifier.messages[0] == "Running go test for ./..."
        assert all(token == "tok" for token, _ in notifier.events)


class TestAnalyzeCoverage:
    @pytest.mark.asyncio
    async def test_summary_is_default_mode(self, handler: GoToolsHandler, fake_runner):
        payload = await handler.analyze_coverage("tok")

        assert payload["mode"] == "summary"
        assert payload["target"] == "./..."
        assert "cover" not in payload
        assert fake_runner.calls == [["go", "test", "./...", "-cover"]]

    @pytest.mark.asyncio
    async def test_unknown_format_falls_back_to_summary(self, handler: GoToolsHandler, fake_runner):
        payload = await handler.analyze_coverage("tok", output_format="html")

        assert payload["mode"] == "summary"
        assert len(fake_runner.calls) == 1

    @pytest.mark.asyncio
    async def test_func_mode_returns_test_and_cover(self, handler: GoToolsHandler, fake_runner, notifier):
        fake_runner.script("go tool", stdout="total:\t(statements)\t87.5%\n")

        payload = await handler.analyze_coverage("tok", output_format="func")

        assert payload["mode"] == "func"
        assert payload["test"]["success"] is True
        assert payload["cover"] is not None
        assert "87.5%" in payload["cover"]["stdout"]
        assert "cover_error" not in payload
        assert notifier.messages[0] == "Running go test with coverage for ./..."
        assert notifier.messages[-1] == "Coverage analysis finished for ./..."

    @pytest.mark.asyncio
    async def test_func_mode_with_failing_tests_still_reports(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go test", exit_code=1)

        payload = await handler.analyze_coverage("tok", output_format="func")

        assert payload["test"]["exit_code"] == 1
        assert "cover" in payload

    @pytest.mark.asyncio
    async def test_func_mode_test_step_execution_error(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go test", error="executable not found: go")

        with pytest.raises(ToolExecutionError) as exc_info:
            await handler.analyze_coverage("tok", output_format="func")

        assert "coverage analysis failed" in str(exc_info.value)
        assert len(fake_runner.calls) == 1

    @pytest.mark.asyncio
    async def test_func_mode_report_step_execution_error_is_partial(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go tool", error="terminated by signal 9")

        payload = await handler.analyze_coverage("tok", "./pkg/calc", "func")

        assert payload["target"] == "./pkg/calc"
        assert payload["test"]["success"] is True
        assert "cover" not in payload
        assert "signal 9" in payload["cover_error"]

    @pytest.mark.asyncio
    async def test_summary_execution_error_raises_tool_error(self, handler: GoToolsHandler, fake_runner):
        fake_runner.script("go test", error="executable not found: go")

        with pytest.raises(ToolExecutionError):
            await handler.analyze_coverage("tok")


class TestDispatch:
    @pytest.mark.asyncio
    async def test_routes_by_tool_name(self, handler: GoToolsHandler):
        run = await handler.dispatch("run_tests", {"path": "./pkg/calc"}, "tok")
        cover = await handler.dispatch("analyze_coverage", {"output_format": "func"}, "tok")

        assert run["target"] == "./pkg/calc"
        assert cover["mode"] == "func"

    @pytest.mark.asyncio
    async def test_missing_arguments_use_defaults(self, handler: GoToolsHandler):
        payload = await handler.dispatch("run_tests", None, None)

        assert payload["target"] == "./..."

    @pytest.mark.asyncio
    async def test_non_string_arguments_are_ignored(self, handler: GoToolsHandler):
        payload = await handler.dispatch("analyze_coverage", {"path": 42, "output_format": ["func"]}, None)

        assert payload["target"] == "./..."
        assert payload["mode"] == "summary"

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self, handler: GoToolsHandler):
        with pytest.raises(ToolExecutionError, match="Unknown tool"):
            await handler.dispatch("go_vet", {}, None)


class TestCreateServer:
    def test_binds_session_notifier_to_runner(self, handler: GoToolsHandler):
        create_server(handler)

        assert isinstance(handler.runner.notifier, SessionProgressNotifier)

    @pytest.mark.asyncio
    async def test_lists_both_tools(self, handler: GoToolsHandler):
        server = create_server(handler)

        result = await server.request_handlers[ListToolsRequest](ListToolsRequest(method="tools/list"))

        names = {tool.name for tool in result.root.tools}
        assert names == {ANALYZE_COVERAGE_TOOL.name, RUN_TESTS_TOOL.name}
