import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

# Add the src directory to the path for importing modules during tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from gopls_mcp_server.atoms.errors.application_errors import CommandExecutionError  # noqa: E402
from gopls_mcp_server.atoms.types.data_types import CommandResult  # noqa: E402
from gopls_mcp_server.molecules.tools.command_runner import format_command  # noqa: E402

ScriptedOutcome = Union[CommandResult, CommandExecutionError]


class RecordingNotifier:
    """Progress notifier that remembers every (token, message) it is given."""

    def __init__(self) -> None:
        self.events: List[Tuple[object, str]] = []

    async def notify(self, token, message: str) -> None:
        self.events.append((token, message))

    @property
    def messages(self) -> List[str]:
        return [message for _, message in self.events]


def make_result(args: List[str], exit_code: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(
        command=format_command(args),
        args=args,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        success=exit_code == 0,
    )


class FakeRunner:
    """
    Stand-in for CommandRunner that returns scripted outcomes.

    Outcomes are keyed by the first two words of the command line
    (``"go test"``, ``"go tool"``). Unscripted commands succeed with empty output.
    """

    def __init__(self, notifier: Optional[RecordingNotifier] = None) -> None:
        self.notifier = notifier or RecordingNotifier()
        self.calls: List[List[str]] = []
        self.outcomes: Dict[str, ScriptedOutcome] = {}
        self.on_call: Optional[Callable[[List[str]], None]] = None

    def script(self, prefix: str, exit_code: int = 0, stdout: str = "", error: Optional[str] = None) -> None:
        if error is not None:
            self.outcomes[prefix] = CommandExecutionError(prefix, error)
        else:
            self.outcomes[prefix] = make_result(prefix.split(), exit_code=exit_code, stdout=stdout)

    async def run(self, token, program: str, *args: str, timeout=None) -> CommandResult:
        argv = [program, *args]
        self.calls.append(argv)
        if self.on_call is not None:
            self.on_call(argv)
        outcome = self.outcomes.get(" ".join(argv[:2]))
        if isinstance(outcome, CommandExecutionError):
            raise outcome
        if outcome is None:
            return make_result(argv)
        return make_result(argv, exit_code=outcome.exit_code, stdout=outcome.stdout)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def fake_runner(notifier: RecordingNotifier) -> FakeRunner:
    return FakeRunner(notifier)


@pytest.fixture
def nested_go_workspace(tmp_path: Path) -> Path:
    """Workspace whose Go sources live only in a subdirectory."""
    pkg = tmp_path / "pkg" / "calc"
    pkg.mkdir(parents=True)
    (tmp_path / "go.mod").write_text("module example.com/calc\n\ngo 1.22\n")
    (pkg / "calc.go").write_text("package calc\n\nfunc Add(a, b int) int { return a + b }\n")
    return tmp_path


@pytest.fixture
def flat_go_workspace(tmp_path: Path) -> Path:
    """Workspace with Go sources directly in its root."""
    (tmp_path / "go.mod").write_text("module example.com/flat\n\ngo 1.22\n")
    (tmp_path / "main.go").write_text("package main\n\nfunc main() {}\n")
    return tmp_path
