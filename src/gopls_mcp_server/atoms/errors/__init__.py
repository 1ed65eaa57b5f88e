"""Error types shared across the gopls MCP server."""

from gopls_mcp_server.atoms.errors.application_errors import (
    BaseApplicationError,
    CommandExecutionError,
    ConfigurationError,
    ProcessingError,
    ServiceConstructionError,
    ServiceStartError,
    ToolExecutionError,
    ValidationError,
)

__all__ = [
    "BaseApplicationError",
    "CommandExecutionError",
    "ConfigurationError",
    "ProcessingError",
    "ServiceConstructionError",
    "ServiceStartError",
    "ToolExecutionError",
    "ValidationError",
]
