"""Main entry point for the gopls MCP Server."""

import sys

from gopls_mcp_server.templates.initialization.cli import main

if __name__ == "__main__":
    sys.exit(main())
