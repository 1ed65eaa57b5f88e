"""
Immutable runtime configuration for the gopls MCP server.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from gopls_mcp_server.atoms.utils.config_constants import (
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
)


class ServerConfig(BaseModel):
    """
    Configuration built once at startup and shared by value afterwards.

    Attributes:
        workspace_dir: Root of the Go workspace commands run against.
        gopls_path: Resolved path to the gopls executable, if one was given.
        log_file: Optional file that receives a copy of every log record.
        log_level: Numeric stdlib logging level.
        log_json: Emit one JSON object per log record instead of text.
        rpc_timeout: Seconds allowed for a single request to gopls.
        shutdown_timeout: Seconds allowed for graceful service teardown.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    workspace_dir: Path = Field(default_factory=Path.cwd)
    gopls_path: Optional[str] = None
    log_file: Optional[Path] = None
    log_level: int = logging.INFO
    log_json: bool = False
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @field_validator("rpc_timeout", "shutdown_timeout")
    @classmethod
    def must_be_positive(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            name = info.field_name.replace("_", "-")
            raise ValueError(f"{name} must be positive, got {value}s")
        return value
