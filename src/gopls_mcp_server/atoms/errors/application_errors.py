"""
Custom exception hierarchy for the application.
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """Base class for all application-specific exceptions."""

    def __init__(self, error_code: str, user_friendly_message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize a new BaseApplicationError.

        Args:
            error_code: A unique code identifying the error.
            user_friendly_message: A message suitable for displaying to end users.
            details: Additional details about the error for debugging purposes.
        """
        super().__init__(user_friendly_message)
        self.error_code = error_code
        self.user_friendly_message = user_friendly_message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary for serialization."""
        return {
            "error_code": self.error_code,
            "user_friendly_message": self.user_friendly_message,
            "details": self.details,
        }


class ValidationError(BaseApplicationError):
    """Raised when input validation fails."""

    pass


class ProcessingError(BaseApplicationError):
    """Raised when there is an error during business logic processing."""

    pass


class ConfigurationError(ValidationError):
    """Raised when command-line flags or environment values are invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("configuration_error", message, details)


class ServiceConstructionError(ProcessingError):
    """Raised when the backing service cannot be created."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("service_construction_error", message, details)


class ServiceStartError(ProcessingError):
    """Raised when the backing service stops with a non-cancellation error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("service_start_error", message, details)


class CommandExecutionError(ProcessingError):
    """
    Raised when an external command could not be run to completion.

    A command that ran and exited non-zero is not an execution error; it is
    reported through a CommandResult instead.
    """

    def __init__(self, command: str, message: str, details: Optional[Dict[str, Any]] = None):
        merged = {"command": command}
        if details:
            merged.update(details)
        super().__init__("command_execution_error", message, merged)
        self.command = command


class ToolExecutionError(ProcessingError):
    """Raised by a tool handler when an invocation cannot produce a result."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("tool_execution_error", message, details)
