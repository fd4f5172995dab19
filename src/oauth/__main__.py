"""
Standalone entry point for the OAuth2 authorization flow.

Usage:
    python -m src.oauth

This opens your browser, completes the Blackbaud authorization-code flow
and saves the tokens to tokens.json (or RENXT_TOKENS_PATH) for the MCP server.
"""

import sys

from .auth_runner import run_auth_flow

if __name__ == "__main__":
    sys.exit(run_auth_flow())
