"""
OAuth2 client for the Blackbaud SKY authorization server.

Builds the authorization URL and performs the two token-endpoint grants
(authorization_code and refresh_token) as form-encoded POSTs. The token
response is returned verbatim; callers persist it as-is.
"""

import logging
from urllib.parse import urlencode

import httpx

from ..config import Config

logger = logging.getLogger(__name__)

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


class TokenRequestError(RuntimeError):
    """Raised when the token endpoint can't be reached or rejects the grant."""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class OAuthClient:
    """Authorization-code and refresh-token grants against the token endpoint."""

    def __init__(self, config: Config, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(timeout=30.0)

    def authorization_url(self) -> str:
        params = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
        }
        return f"{self._config.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict:
        """Exchange an authorization code for an access/refresh token pair."""
        return await self._request_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._config.redirect_uri,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        })

    async def refresh(self, refresh_token: str) -> dict:
        """Trade a refresh token for a new token record."""
        return await self._request_token({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        })

    async def _request_token(self, form: dict) -> dict:
        grant_type = form["grant_type"]
        try:
            response = await self._http.post(
                self._config.token_url, data=form, headers=FORM_HEADERS
            )
        except httpx.HTTPError as e:
            logger.error("Token request (%s) failed: %s", grant_type, e)
            raise TokenRequestError(f"Token request ({grant_type}) failed", detail=str(e)) from e

        if response.is_error:
            logger.error(
                "Token endpoint rejected %s grant (%s): %s",
                grant_type, response.status_code, response.text,
            )
            raise TokenRequestError(
                f"Token request ({grant_type}) failed with HTTP {response.status_code}",
                status_code=response.status_code,
                detail=response.text,
            )

        try:
            tokens = response.json()
        except ValueError as e:
            raise TokenRequestError(
                f"Token response ({grant_type}) was not JSON",
                status_code=response.status_code,
                detail=response.text,
            ) from e
        if not isinstance(tokens, dict):
            raise TokenRequestError(
                f"Token response ({grant_type}) was not a JSON object",
                status_code=response.status_code,
                detail=response.text,
            )
        return tokens

    async def aclose(self) -> None:
        await self._http.aclose()
