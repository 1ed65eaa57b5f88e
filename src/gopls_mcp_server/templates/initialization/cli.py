import argparse
import asyncio
import logging
import math
import os
import re
import shutil
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from gopls_mcp_server.atoms.errors.application_errors import (
    BaseApplicationError,
    ConfigurationError,
)
from gopls_mcp_server.atoms.logging.logger import configure_logging, get_logger
from gopls_mcp_server.atoms.types.config import ServerConfig
from gopls_mcp_server.atoms.utils.config_constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
    ENV_BIN,
    ENV_LOG_FILE,
    ENV_LOG_JSON,
    ENV_LOG_LEVEL,
    ENV_RPC_TIMEOUT,
    ENV_SHUTDOWN_TIMEOUT,
    ENV_WORKSPACE,
    SERVER_NAME,
)
from gopls_mcp_server.interfaces.service_runner import ServiceFactory
from gopls_mcp_server.pages.application.lifecycle import (
    LifecycleController,
    ShutdownSignalFactory,
    signal_shutdown_event,
)
from gopls_mcp_server.templates.servers.service import new_service

logger = get_logger(__name__)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """
    Parse a duration into seconds.

    Accepts Go-style strings such as ``150ms``, ``2s`` or ``1m30s`` as well
    as a bare number of seconds.

    Raises:
        ValueError: If the value is not a valid duration.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration {value!r}")
        return seconds

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def parse_log_level(level: str) -> int:
    """
    Map a case-insensitive level name onto a stdlib logging level.

    Raises:
        ConfigurationError: For unknown level names.
    """
    try:
        return _LOG_LEVELS[level.strip().lower()]
    except KeyError:
        raise ConfigurationError(f"unknown log level {level!r}") from None


def env_or_default(environ: Mapping[str, str], key: str, fallback: str) -> str:
    value = environ.get(key, "")
    return value if value else fallback


def env_bool(environ: Mapping[str, str], key: str) -> bool:
    return environ.get(key, "").lower() in ("1", "true", "yes")


def env_duration(environ: Mapping[str, str], key: str, fallback: float) -> float:
    # An unparseable value falls back silently, like an unset one.
    value = environ.get(key, "")
    if value:
        try:
            return parse_duration(value)
        except ValueError:
            pass
    return fallback


def _duration_arg(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def ensure_directory(path: str) -> Path:
    """
    Raises:
        ConfigurationError: If ``path`` does not exist or is not a directory.
    """
    candidate = Path(path)
    if not candidate.exists():
        raise ConfigurationError(f"workspace dir {path!r}: no such file or directory")
    if not candidate.is_dir():
        raise ConfigurationError(f"workspace dir {path!r} is not a directory")
    return candidate.resolve()


def resolve_executable(path: str) -> str:
    """
    Resolve ``path`` through PATH and check that it is an executable file.

    Raises:
        ConfigurationError: If the executable cannot be found or used.
    """
    resolved = shutil.which(path)
    if resolved is None:
        candidate = Path(path)
        if candidate.is_dir():
            raise ConfigurationError(f"gopls binary {path!r} is a directory")
        if candidate.exists():
            raise ConfigurationError(f"gopls binary {path!r} is not executable")
        raise ConfigurationError(f"resolve gopls binary {path!r}: executable file not found")
    if not Path(resolved).is_file():
        raise ConfigurationError(f"gopls binary {resolved!r} is not a regular file")
    return resolved


def create_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    """Build the argument parser; defaults come from ``environ``."""
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="MCP server exposing Go test and coverage tooling for a workspace",
    )
    parser.add_argument(
        "--workspace",
        default=env_or_default(environ, ENV_WORKSPACE, ""),
        help="Workspace root (default: current directory)",
    )
    parser.add_argument(
        "--gopls-path",
        default=env_or_default(environ, ENV_BIN, ""),
        help="Path to gopls binary",
    )
    parser.add_argument(
        "--log-file",
        default=env_or_default(environ, ENV_LOG_FILE, ""),
        help="Log file path",
    )
    parser.add_argument(
        "--log-level",
        default=env_or_default(environ, ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL),
        help="Log level (debug, info, warn, error)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=env_bool(environ, ENV_LOG_JSON),
        help="Emit JSON logs",
    )
    parser.add_argument(
        "--rpc-timeout",
        type=_duration_arg,
        default=env_duration(environ, ENV_RPC_TIMEOUT, DEFAULT_RPC_TIMEOUT),
        help="LSP RPC timeout, e.g. 45s (default: 45s)",
    )
    parser.add_argument(
        "--shutdown-timeout",
        type=_duration_arg,
        default=env_duration(environ, ENV_SHUTDOWN_TIMEOUT, DEFAULT_SHUTDOWN_TIMEOUT),
        help="Graceful shutdown timeout, e.g. 15s (default: 15s)",
    )
    return parser


def build_config(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration from flags, falling back to the environment.

    Raises:
        ConfigurationError: If any value violates the configuration constraints.
    """
    environ = os.environ if environ is None else environ
    args = create_parser(environ).parse_args(argv)

    values = {
        "log_json": args.log_json,
        "rpc_timeout": args.rpc_timeout,
        "shutdown_timeout": args.shutdown_timeout,
    }
    if args.workspace:
        values["workspace_dir"] = ensure_directory(args.workspace)
    if args.gopls_path:
        values["gopls_path"] = resolve_executable(args.gopls_path)
    if args.log_file:
        values["log_file"] = Path(args.log_file)
    values["log_level"] = parse_log_level(args.log_level)

    try:
        return ServerConfig(**values)
    except PydanticValidationError as e:
        messages = "; ".join(str(err["msg"]).removeprefix("Value error, ") for err in e.errors())
        raise ConfigurationError(messages) from e


def main(
    argv: Optional[List[str]] = None,
    service_factory: ServiceFactory = new_service,
    shutdown_signal_factory: ShutdownSignalFactory = signal_shutdown_event,
) -> int:
    """Entry point for the ``mcp-gopls`` command. Returns the process exit code."""
    try:
        config = build_config(argv)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1

    configure_logging(level=config.log_level, log_file=config.log_file, json_format=config.log_json)
    logger.info(
        f"Starting {SERVER_NAME}: workspace={config.workspace_dir}, rpc_timeout={config.rpc_timeout}s, "
        f"shutdown_timeout={config.shutdown_timeout}s"
    )

    controller = LifecycleController(config, service_factory, shutdown_signal_factory)
    try:
        asyncio.run(controller.run())
    except BaseApplicationError as e:
        logger.error(str(e))
        print(f"{SERVER_NAME}: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nServer interrupted. Exiting.", file=sys.stderr)
        return 1
    return 0
