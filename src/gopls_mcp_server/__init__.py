"""
gopls MCP Server Package

This package provides a Model Context Protocol (MCP) server that runs Go test
and coverage tooling against a workspace and reports progress to the client.
"""

import importlib.metadata
import logging

from .pages.application.lifecycle import LifecycleController
from .templates.initialization.cli import main
from .templates.servers.server import ANALYZE_COVERAGE_TOOL, RUN_TESTS_TOOL

# Get the package version dynamically from installed package metadata
try:
    __version__ = importlib.metadata.version("mcp-gopls")
except importlib.metadata.PackageNotFoundError:
    # Handle case where package is not installed (e.g., during development)
    __version__ = "0.0.0-dev"
    logging.getLogger(__name__).warning(
        "Could not determine package version from metadata. Defaulting to %s",
        __version__,
    )


__all__ = [
    "main",
    "LifecycleController",
    "ANALYZE_COVERAGE_TOOL",
    "RUN_TESTS_TOOL",
    "__version__",
]
