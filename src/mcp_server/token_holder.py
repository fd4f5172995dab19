"""
In-memory token state for the MCP server.

One TokenHolder owns the current token record for the whole process. Refreshes
go through an asyncio.Lock so concurrent tool calls that all hit a 401 share a
single refresh: whoever gets the lock first refreshes, the rest see the access
token has already changed and reuse it.

INVARIANT: a refreshed record is written to the token file before it replaces
the in-memory state.
"""

import asyncio
import logging

from ..oauth.client import OAuthClient
from ..oauth.token_store import TokenStore

logger = logging.getLogger(__name__)


class TokenHolder:
    """Current token record plus the means to refresh and persist it."""

    def __init__(self, tokens: dict, store: TokenStore, oauth_client: OAuthClient) -> None:
        self._tokens = tokens
        self._store = store
        self._oauth = oauth_client
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    @classmethod
    def load(cls, store: TokenStore, oauth_client: OAuthClient) -> "TokenHolder":
        """Build a holder from the token file. Raises TokenFileError if unusable."""
        logger.info("Using tokens at: %s", store.path)
        return cls(store.load(), store, oauth_client)

    @property
    def tokens(self) -> dict:
        return dict(self._tokens)

    @property
    def access_token(self) -> str | None:
        return self._tokens.get("access_token")

    @property
    def refresh_token(self) -> str | None:
        return self._tokens.get("refresh_token")

    async def refresh(self, stale_access_token: str | None) -> str:
        """
        Refresh the token pair unless another caller already replaced
        stale_access_token. Returns the access token to retry with.

        TokenRequestError from the token endpoint propagates unchanged.
        """
        async with self._lock:
            if self.access_token != stale_access_token:
                logger.debug("Token already refreshed by a concurrent call")
                return self.access_token

            logger.info("Access token rejected (401); refreshing")
            new_tokens = await self._oauth.refresh(self.refresh_token)
            self._store.save(new_tokens)
            self._tokens = new_tokens
            self.refresh_count += 1
            logger.info("Token refresh complete")
            return self.access_token
