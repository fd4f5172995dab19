#!/usr/bin/env python3
"""
RE NXT MCP
Entry point for the OAuth authorization flow and the MCP server.

Usage:
  python -m src.main auth            # One-time browser authorization, writes tokens.json
  python -m src.main serve           # Run the MCP server on stdio
  python -m src.main check-tokens    # Verify the token file is usable (values never printed)
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.table import Table

from .config import Config, ConfigError
from .oauth.auth_runner import run_auth_flow
from .oauth.token_store import TokenFileError, TokenStore

logger = logging.getLogger(__name__)

# stdout belongs to the MCP transport when serving; keep all output on stderr
console = Console(stderr=True)
error_console = Console(stderr=True, style="bold red")

TOKEN_FIELDS = ["access_token", "refresh_token", "expires_in", "token_type", "scope"]


def handle_error(msg: str, exception: Exception | None = None, exit_code: int = 1) -> None:
    """Unified error handler - logs, displays, exits non-zero."""
    error_console.print(f"[bold red]ERROR:[/bold red] {msg}")
    if exception:
        logger.error(f"{msg}: {exception}")
    else:
        logger.error(msg)
    sys.exit(exit_code)


def cmd_auth(args: argparse.Namespace, config: Config) -> None:
    """Run the authorization-code flow and exit with its status."""
    if args.port:
        config.port = args.port
    sys.exit(run_auth_flow(config))


def cmd_serve(args: argparse.Namespace, config: Config) -> None:
    """Start the MCP server on stdio."""
    from .mcp_server.server import mcp
    from .mcp_server.startup import start_gateway

    if not start_gateway(config):
        sys.exit(1)
    mcp.run(transport="stdio")


def cmd_check_tokens(args: argparse.Namespace, config: Config) -> None:
    """Load the token file and report which fields it carries."""
    store = TokenStore(config.tokens_path)
    try:
        tokens = store.load()
    except TokenFileError as e:
        handle_error(str(e), e)

    table = Table(title=f"Tokens: {store.path}")
    table.add_column("Field", style="cyan")
    table.add_column("Present")
    for field in TOKEN_FIELDS:
        present = field in tokens
        table.add_row(field, "[green]✓[/green]" if present else "[dim]-[/dim]")
    console.print(table)

    missing = [f for f in ("access_token", "refresh_token") if not tokens.get(f)]
    if missing:
        handle_error(f"Token file lacks {', '.join(missing)}. Run: python -m src.main auth")
    console.print("[green]Token file is usable.[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Raiser's Edge NXT MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    auth_parser = subparsers.add_parser("auth", help="Authorize in the browser and save tokens")
    auth_parser.add_argument("--port", type=int, default=None, help="Callback listener port (default: PORT or 5173)")

    subparsers.add_parser("serve", help="Run the MCP server on stdio")
    subparsers.add_parser("check-tokens", help="Check the token file without printing secrets")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help(sys.stderr)
        sys.exit(1)

    try:
        config = Config.from_env()
    except ConfigError as e:
        handle_error(str(e), e)

    commands = {
        "auth": cmd_auth,
        "serve": cmd_serve,
        "check-tokens": cmd_check_tokens,
    }
    commands[args.command](args, config)


if __name__ == "__main__":
    main()
