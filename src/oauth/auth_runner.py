"""
Blackbaud SKY OAuth2 authorization flow.

Handles the one-time authorization-code flow:
- Validates client id, client secret and redirect URI are configured
- Starts the local callback listener and opens the browser at the
  authorization endpoint
- Exchanges the returned code for tokens and writes them to the token file
- Returns once tokens are saved; the caller exits with code 0

Run standalone with: python -m src.oauth
"""

import asyncio
import logging
import webbrowser
from typing import Callable

from rich.console import Console

from ..config import Config, ConfigError
from ..logging_config import configure_logging
from .callback_server import CallbackServer
from .client import OAuthClient
from .token_store import TokenStore

logger = logging.getLogger(__name__)

# stdout stays clean; everything human-facing goes to stderr
console = Console(stderr=True)
error_console = Console(stderr=True, style="bold red")


async def authorize(
    config: Config,
    oauth_client: OAuthClient | None = None,
    token_store: TokenStore | None = None,
    open_browser: Callable[[str], object] = webbrowser.open,
    host: str = "localhost",
) -> TokenStore:
    """
    Run the authorization-code flow until a callback saves tokens.

    Waits indefinitely for the browser redirect. Callbacks carrying an error,
    lacking a code, or whose exchange fails leave the listener running.

    Returns:
        The TokenStore the tokens were written to.
    """
    config.require_auth_settings()

    oauth_client = oauth_client or OAuthClient(config)
    token_store = token_store or TokenStore(config.tokens_path)
    server = CallbackServer(config, oauth_client, token_store, host=host)

    await server.start()
    try:
        url = oauth_client.authorization_url()
        console.print("Opening browser for authorization...")
        console.print(f"If it doesn't open, visit:\n[link={url}]{url}[/link]\n")
        open_browser(url)

        await server.wait_for_auth()
    finally:
        await server.stop()
        await oauth_client.aclose()

    return token_store


def run_auth_flow(config: Config | None = None) -> int:
    """Run the OAuth flow interactively. Returns the process exit code."""
    if config is None:
        try:
            config = Config.from_env()
        except ConfigError as e:
            error_console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
    configure_logging(config.log_level)

    console.print("[bold]Blackbaud SKY API OAuth2 Authentication[/bold]\n")

    try:
        token_store = asyncio.run(authorize(config))
    except ConfigError as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        return 1
    except OSError as e:
        error_console.print(
            f"[bold red]Error:[/bold red] Could not listen on port {config.port}: {e}"
        )
        return 1
    except KeyboardInterrupt:
        error_console.print("Authorization cancelled.")
        return 1

    console.print("[bold green]Authentication successful![/bold green]")
    console.print(f"Tokens saved to: {token_store.path}")
    return 0
