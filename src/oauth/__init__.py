"""OAuth2 authorization-code flow and token persistence for the SKY API."""

from .client import OAuthClient, TokenRequestError
from .token_store import TokenFileError, TokenStore

__all__ = ["OAuthClient", "TokenRequestError", "TokenFileError", "TokenStore"]
