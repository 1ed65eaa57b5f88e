from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gopls_mcp_server.atoms.errors.application_errors import BaseApplicationError

# Opaque value a client attaches to a request to correlate progress notifications
ProgressToken = Union[str, int]


class CommandResult(BaseModel):
    """
    Captured outcome of one external process invocation.

    Attributes:
        command (str): Display form of the invoked command line.
        args (List[str]): Program and arguments as passed to the OS.
        stdout (str): Decoded standard output.
        stderr (str): Decoded standard error.
        exit_code (int): Exit status reported by the process.
        success (bool): True when the process exited with status 0.
        duration_seconds (float): Wall-clock time spent waiting for the process.
    """

    model_config = ConfigDict(frozen=True)

    command: str
    args: List[str]
    stdout: str = ""
    stderr: str = ""
    exit_code: int
    success: bool
    duration_seconds: float = 0.0


class CoverageOutcome(str, Enum):
    """Terminal state of the per-function coverage pipeline."""

    FAILED = "failed"
    PARTIAL = "partial"
    SUCCESS = "success"


class CoverageResult(BaseModel):
    """Result of the two-step test-then-report coverage pipeline."""

    model_config = ConfigDict(frozen=True)

    outcome: CoverageOutcome
    test: Optional[CommandResult] = None
    cover: Optional[CommandResult] = None
    error: Optional[str] = None


class RunTestsParams(BaseModel):
    """Parameters for the run_tests tool."""

    path: Optional[str] = None

    @field_validator("path", mode="before")
    @classmethod
    def ignore_non_string(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class AnalyzeCoverageParams(BaseModel):
    """Parameters for the analyze_coverage tool."""

    path: Optional[str] = None
    output_format: Optional[str] = None

    @field_validator("path", "output_format", mode="before")
    @classmethod
    def ignore_non_string(cls, value: Any) -> Optional[str]:
        # Non-string arguments are treated as absent rather than rejected.
        return value if isinstance(value, str) else None


class MCPErrorResponse(BaseModel):
    """
    Error payload returned to the client when a tool invocation fails.

    Attributes:
        error_code (str): A unique code identifying the error.
        error (str): A message describing the error, suitable for end users.
        details (Dict[str, Any]): Additional error details for debugging.
    """

    error_code: str
    error: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: Exception) -> "MCPErrorResponse":
        """
        Create an MCPErrorResponse from an exception.

        Args:
            exc (Exception): The exception to convert.

        Returns:
            MCPErrorResponse: The error response created from the exception.
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                error_code=exc.error_code,
                error=exc.user_friendly_message,
                details=exc.details,
            )
        return cls(error_code="internal_server_error", error=str(exc))
