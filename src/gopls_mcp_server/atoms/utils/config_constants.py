"""
Configuration constants for the gopls MCP server.

Provides default values for common configuration parameters.
This is an atomic component containing only immutable constants.
"""

SERVER_NAME = "mcp-gopls"

# Prefix for every environment variable the CLI reads
ENV_PREFIX = "MCP_GOPLS_"

ENV_WORKSPACE = f"{ENV_PREFIX}WORKSPACE"
ENV_BIN = f"{ENV_PREFIX}BIN"
ENV_LOG_FILE = f"{ENV_PREFIX}LOG_FILE"
ENV_LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
ENV_LOG_JSON = f"{ENV_PREFIX}LOG_JSON"
ENV_RPC_TIMEOUT = f"{ENV_PREFIX}RPC_TIMEOUT"
ENV_SHUTDOWN_TIMEOUT = f"{ENV_PREFIX}SHUTDOWN_TIMEOUT"

DEFAULT_LOG_LEVEL = "info"

# Timeouts in seconds
DEFAULT_RPC_TIMEOUT = 45.0
DEFAULT_SHUTDOWN_TIMEOUT = 15.0

# Target that asks the go tool for every package below the workspace root
ALL_PACKAGES_TARGET = "./..."

GO_SOURCE_SUFFIX = ".go"

SHUTDOWN_COMPLETE_MESSAGE = "mcp-gopls shutdown complete"
