import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

# Every module logger lives below this name so handlers are installed once.
ROOT_LOGGER_NAME = "gopls_mcp_server"

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_VERBOSE_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(pathname)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class Logger:
    """Thin facade over a stdlib logger that adds a verbose level."""

    def __init__(self, name: str, verbose: bool = False):
        """
        Initialize the logger.

        Args:
            name: Logger name. Names outside the package root are nested under it.
            verbose: Enable verbose logging mode (applies if level is DEBUG).
        """
        if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        self.name = name
        self._verbose = verbose
        self.logger = logging.getLogger(name)

    def is_verbose(self) -> bool:
        """Check if verbose mode is enabled."""
        return self._verbose

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self.logger.debug(message, **kwargs)

    def verbose(self, message: str, **kwargs: Any) -> None:
        """Log a message at DEBUG level only if verbose mode is enabled."""
        if self._verbose:
            self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        self.logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log a critical message."""
        self.logger.critical(message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception message with traceback."""
        self.logger.exception(message, **kwargs)


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    json_format: bool = False,
    verbose: bool = False,
) -> logging.Logger:
    """
    Install handlers on the package root logger.

    Records go to stderr because stdout carries the MCP stdio transport. When
    ``log_file`` is given, records are appended there as well. Calling this
    again replaces the previously installed handlers.

    Args:
        level: Logging level for the package.
        log_file: Optional path of a file that receives a copy of every record.
        json_format: Emit JSON lines instead of the text format.
        verbose: Include source locations in text output at DEBUG level.

    Returns:
        The configured package root logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if json_format:
        formatter = JsonFormatter()
    elif level == logging.DEBUG and verbose:
        formatter = logging.Formatter(_VERBOSE_TEXT_FORMAT, datefmt=_DATE_FORMAT)
    else:
        formatter = logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    return root


def get_logger(name: str, verbose: bool = False) -> Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name, usually ``__name__``.
        verbose: Enable verbose logging mode (applies if level is DEBUG).

    Returns:
        Logger facade bound to the named stdlib logger.
    """
    return Logger(name=name, verbose=verbose)
