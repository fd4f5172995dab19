"""
MCP Server main entry point.

Run with: python -m src.mcp_server

Loads the token file (fatal if missing or corrupt) and starts the FastMCP
server on the stdio transport.
"""

import sys

from .server import mcp
from .startup import start_gateway

if __name__ == "__main__":
    if not start_gateway():
        sys.exit(1)
    # Run with stdio transport (stdout carries JSON-RPC only)
    mcp.run(transport="stdio")
