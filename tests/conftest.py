"""Shared fixtures: a test Config and mock SKY/OAuth endpoints built on httpx.MockTransport."""

import json
import os
import sys
from urllib.parse import parse_qsl

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.config import Config
from src.mcp_server.renxt_client import RenxtClient
from src.mcp_server.token_holder import TokenHolder
from src.oauth.client import OAuthClient
from src.oauth.token_store import TokenStore

API_BASE_URL = "https://api.test"
TOKEN_URL = "https://oauth.test/token"

INITIAL_TOKENS = {
    "access_token": "old-access",
    "refresh_token": "old-refresh",
    "expires_in": 3600,
    "token_type": "Bearer",
}

REFRESHED_TOKENS = {
    "access_token": "new-access",
    "refresh_token": "new-refresh",
    "expires_in": 3600,
    "token_type": "Bearer",
    "environment_id": "p-env-1",
}


def make_config(tmp_path, **overrides) -> Config:
    values = {
        "client_id": "client-123",
        "client_secret": "secret-456",
        "redirect_uri": "http://localhost:5173/callback",
        "subscription_key": "sub-key-789",
        "port": 0,
        "tokens_path": tmp_path / "tokens.json",
        "auth_url": "https://oauth.test/authorization",
        "token_url": TOKEN_URL,
        "api_base_url": API_BASE_URL,
    }
    values.update(overrides)
    return Config(**values)


def form_of(request: httpx.Request) -> dict:
    return dict(parse_qsl(request.content.decode()))


def json_response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload), headers={"Content-Type": "application/json"})


class TokenEndpoint:
    """Mock token endpoint that records every grant it receives."""

    def __init__(self, status_code: int = 200, payload: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = payload if payload is not None else REFRESHED_TOKENS
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        assert str(request.url) == TOKEN_URL
        assert request.method == "POST"
        self.requests.append(form_of(request))
        return json_response(self.status_code, self.payload)


class Upstream:
    """Mock SKY API: 401 for rejected tokens, otherwise the configured response."""

    def __init__(self, payload=None, status_code: int = 200, rejected_tokens=("old-access",)) -> None:
        self.payload = payload if payload is not None else {"value": []}
        self.status_code = status_code
        self.rejected_tokens = set(rejected_tokens)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.rejected_tokens:
            return json_response(401, {"statusCode": 401, "message": "Access token expired"})
        return json_response(self.status_code, self.payload)


def build_client(config: Config, upstream: Upstream, token_endpoint: TokenEndpoint, tokens: dict | None = None) -> RenxtClient:
    store = TokenStore(config.tokens_path)
    store.save(tokens or INITIAL_TOKENS)
    oauth = OAuthClient(config, httpx.AsyncClient(transport=httpx.MockTransport(token_endpoint)))
    holder = TokenHolder.load(store, oauth)
    http = httpx.AsyncClient(base_url=config.api_base_url, transport=httpx.MockTransport(upstream))
    return RenxtClient(holder, config.subscription_key, config.api_base_url, http_client=http)


@pytest.fixture
def config(tmp_path) -> Config:
    return make_config(tmp_path)
