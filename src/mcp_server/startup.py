"""Gateway startup: configuration and token checks before serving tools."""

import logging

from rich.console import Console

from ..config import Config, ConfigError
from ..logging_config import configure_logging
from ..oauth.token_store import TokenFileError
from . import server
from .renxt_client import RenxtClient

logger = logging.getLogger(__name__)

error_console = Console(stderr=True, style="bold red")


def start_gateway(config: Config | None = None) -> bool:
    """
    Build the RenxtClient and install it in the server.

    Returns False (after printing a diagnostic to stderr) when the process
    can't serve any tool call: missing settings or an unusable token file.
    """
    if config is None:
        try:
            config = Config.from_env()
        except ConfigError as e:
            error_console.print(f"[bold red]ERROR:[/bold red] {e}")
            return False
    configure_logging(config.log_level)

    try:
        client = RenxtClient.from_config(config)
    except (ConfigError, TokenFileError) as e:
        error_console.print(f"[bold red]ERROR:[/bold red] {e}")
        logger.error("Startup failed: %s", e)
        return False

    server.configure(client)
    logger.info("renxt-mcp server ready.")
    return True
