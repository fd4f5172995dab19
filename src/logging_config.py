"""
Logging setup shared by the entry points.

Everything goes to stderr: the MCP server speaks JSON-RPC over stdout and a
single stray log line there corrupts the protocol stream.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ["httpx", "httpcore", "aiohttp.access", "mcp", "mcp.server.lowlevel.server"]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)
