"""
Blackbaud Raiser's Edge NXT (SKY API) client.

Wraps an httpx.AsyncClient with the SKY API's two credentials (bearer token
and Bb-Api-Subscription-Key) and the refresh-and-retry protocol:

1. Send the request with the current access token.
2. On 401, refresh the token pair once and replay the request once.
3. Any other failure, a refresh failure, or a second 401 propagates.

All operations are read-only.
"""

import logging
from urllib.parse import quote

import httpx

from ..config import Config
from ..oauth.client import OAuthClient
from ..oauth.token_store import TokenStore
from .token_holder import TokenHolder

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Bb-Api-Subscription-Key"
CONSTITUENTS_PATH = "/constituent/v1/constituents"


class UpstreamAPIError(RuntimeError):
    """Non-2xx response from the SKY API, carried verbatim."""

    def __init__(self, status_code: int, body: str, method: str = "GET", path: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"SKY API {method} {path} failed with HTTP {status_code}: {body}")


class RenxtClient:
    """Read-only constituent operations against the SKY API."""

    def __init__(
        self,
        tokens: TokenHolder,
        subscription_key: str,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.tokens = tokens
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self._http.headers[SUBSCRIPTION_KEY_HEADER] = subscription_key

    @classmethod
    def from_config(cls, config: Config) -> "RenxtClient":
        """
        Build a client from configuration, loading the token file.

        Raises ConfigError or TokenFileError; both are fatal at startup.
        """
        config.require_gateway_settings()
        holder = TokenHolder.load(TokenStore(config.tokens_path), OAuthClient(config))
        return cls(holder, config.subscription_key, config.api_base_url)

    async def _send(self, method: str, path: str, params: dict | None, access_token: str | None) -> httpx.Response:
        return await self._http.request(
            method,
            path,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def request(self, method: str, path: str, params: dict | None = None) -> httpx.Response:
        """Send a request, refreshing the token and retrying exactly once on 401."""
        access_token = self.tokens.access_token
        response = await self._send(method, path, params, access_token)

        if response.status_code == 401:
            new_access_token = await self.tokens.refresh(access_token)
            response = await self._send(method, path, params, new_access_token)

        if response.is_error:
            logger.error("SKY API %s %s -> %s", method, path, response.status_code)
            raise UpstreamAPIError(response.status_code, response.text, method, path)
        return response

    async def get_json(self, path: str, params: dict | None = None):
        response = await self.request("GET", path, params)
        return response.json()

    async def list_constituents(self, limit: int = 10) -> list[dict]:
        """A page of constituents projected to {id, name, type, is_constituent}."""
        data = await self.get_json(CONSTITUENTS_PATH, {"limit": limit})
        return [
            {
                "id": c.get("id"),
                "name": c.get("name"),
                "type": c.get("type"),
                "is_constituent": c.get("is_constituent"),
            }
            for c in (data or {}).get("value") or []
        ]

    async def get_constituent(self, constituent_id: str) -> dict:
        """A single constituent record, verbatim."""
        return await self.get_json(f"{CONSTITUENTS_PATH}/{quote(constituent_id, safe='')}")

    async def search_constituents(
        self,
        search_text: str,
        search_field: str | None = None,
        strict_search: bool | None = None,
        limit: int = 10,
    ) -> dict:
        """The constituent search response, verbatim."""
        params = {"search_text": search_text}
        if search_field:
            params["search_field"] = search_field
        if strict_search is not None:
            params["strict_search"] = "true" if strict_search else "false"
        params["limit"] = limit
        return await self.get_json(f"{CONSTITUENTS_PATH}/search", params)

    async def aclose(self) -> None:
        await self._http.aclose()
