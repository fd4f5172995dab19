"""
Tests for the SKY API client's refresh-and-retry protocol.

Verifies that:
- A 401 triggers exactly one refresh, the new token is persisted, and the
  original request is replayed exactly once
- A second 401 after refreshing propagates without another refresh
- Non-401 failures and refresh failures propagate unchanged
- Concurrent 401s share a single refresh
"""

import asyncio
import json

import pytest

from conftest import INITIAL_TOKENS, REFRESHED_TOKENS, TokenEndpoint, Upstream, build_client
from src.mcp_server.renxt_client import SUBSCRIPTION_KEY_HEADER, UpstreamAPIError
from src.oauth.client import TokenRequestError


def _saved_tokens(config) -> dict:
    return json.loads(config.tokens_path.read_text(encoding="utf-8"))


# =====================================================================
# Credentials on every call
# =====================================================================

class TestCredentials:

    @pytest.mark.asyncio
    async def test_bearer_and_subscription_key_attached(self, config):
        upstream = Upstream(rejected_tokens=())
        client = build_client(config, upstream, TokenEndpoint())

        await client.list_constituents(limit=5)

        request = upstream.requests[0]
        assert request.headers["Authorization"] == "Bearer old-access"
        assert request.headers[SUBSCRIPTION_KEY_HEADER] == "sub-key-789"


# =====================================================================
# Refresh-and-retry state machine
# =====================================================================

class TestRefreshAndRetry:

    @pytest.mark.asyncio
    async def test_401_refreshes_persists_and_retries_once(self, config):
        payload = {"value": [{"id": "280", "name": "Robert Hernandez", "type": "Individual", "is_constituent": True}]}
        upstream = Upstream(payload=payload)
        endpoint = TokenEndpoint()
        client = build_client(config, upstream, endpoint)

        result = await client.list_constituents(limit=10)

        assert result == payload["value"]
        assert len(endpoint.requests) == 1
        assert endpoint.requests[0]["grant_type"] == "refresh_token"
        assert endpoint.requests[0]["refresh_token"] == "old-refresh"
        assert [r.headers["Authorization"] for r in upstream.requests] == [
            "Bearer old-access",
            "Bearer new-access",
        ]
        assert upstream.requests[0].url == upstream.requests[1].url
        assert _saved_tokens(config) == REFRESHED_TOKENS
        assert client.tokens.access_token == "new-access"

    @pytest.mark.asyncio
    async def test_second_401_propagates_without_second_refresh(self, config):
        upstream = Upstream(rejected_tokens=("old-access", "new-access"))
        endpoint = TokenEndpoint()
        client = build_client(config, upstream, endpoint)

        with pytest.raises(UpstreamAPIError) as exc_info:
            await client.get_constituent("280")

        assert exc_info.value.status_code == 401
        assert len(endpoint.requests) == 1
        assert len(upstream.requests) == 2

    @pytest.mark.asyncio
    async def test_other_errors_propagate_verbatim(self, config):
        upstream = Upstream(payload={"message": "Not found"}, status_code=404, rejected_tokens=())
        endpoint = TokenEndpoint()
        client = build_client(config, upstream, endpoint)

        with pytest.raises(UpstreamAPIError) as exc_info:
            await client.get_constituent("missing")

        assert exc_info.value.status_code == 404
        assert json.loads(exc_info.value.body) == {"message": "Not found"}
        assert endpoint.requests == []
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_propagates_and_is_not_retried(self, config):
        upstream = Upstream()
        endpoint = TokenEndpoint(status_code=400, payload={"error": "invalid_grant"})
        client = build_client(config, upstream, endpoint)

        with pytest.raises(TokenRequestError) as exc_info:
            await client.list_constituents()

        assert exc_info.value.status_code == 400
        assert len(upstream.requests) == 1
        assert len(endpoint.requests) == 1
        # Failed refresh leaves the stored credentials alone
        assert _saved_tokens(config) == INITIAL_TOKENS
        assert client.tokens.access_token == "old-access"

    @pytest.mark.asyncio
    async def test_concurrent_401s_share_one_refresh(self, config):
        upstream = Upstream(payload={"value": []})
        endpoint = TokenEndpoint()
        client = build_client(config, upstream, endpoint)

        results = await asyncio.gather(
            client.list_constituents(),
            client.get_constituent("1"),
            client.search_constituents("Smith"),
        )

        assert len(results) == 3
        assert len(endpoint.requests) == 1
        assert client.tokens.refresh_count == 1
        assert _saved_tokens(config) == REFRESHED_TOKENS


# =====================================================================
# Endpoints
# =====================================================================

class TestEndpoints:

    @pytest.mark.asyncio
    async def test_list_projects_fields_in_order(self, config):
        records = [
            {"id": "1", "name": "Ada", "type": "Individual", "is_constituent": True, "lookup_id": "L1"},
            {"id": "2", "name": "Acme", "type": "Organization", "is_constituent": False, "email": {"address": "x"}},
            {"id": "3", "name": "Bea", "type": "Individual", "is_constituent": True},
        ]
        upstream = Upstream(payload={"count": 3, "value": records}, rejected_tokens=())
        client = build_client(config, upstream, TokenEndpoint())

        result = await client.list_constituents(limit=10)

        assert result == [
            {"id": r["id"], "name": r["name"], "type": r["type"], "is_constituent": r["is_constituent"]}
            for r in records
        ]
        assert str(upstream.requests[0].url) == "https://api.test/constituent/v1/constituents?limit=10"

    @pytest.mark.asyncio
    async def test_list_without_value_is_empty(self, config):
        upstream = Upstream(payload={"count": 0}, rejected_tokens=())
        client = build_client(config, upstream, TokenEndpoint())
        assert await client.list_constituents() == []

    @pytest.mark.asyncio
    async def test_get_encodes_id_as_one_segment(self, config):
        upstream = Upstream(payload={"id": "a/b"}, rejected_tokens=())
        client = build_client(config, upstream, TokenEndpoint())

        assert await client.get_constituent("a/b") == {"id": "a/b"}
        assert upstream.requests[0].url.raw_path == b"/constituent/v1/constituents/a%2Fb"

    @pytest.mark.asyncio
    async def test_search_query_order(self, config):
        upstream = Upstream(payload={"count": 0, "value": []}, rejected_tokens=())
        client = build_client(config, upstream, TokenEndpoint())

        await client.search_constituents("Smith", search_field="name")
        await client.search_constituents("Smith", strict_search=False, limit=3)

        assert "search_text=Smith&search_field=name&limit=10" in str(upstream.requests[0].url)
        assert "search_text=Smith&strict_search=false&limit=3" in str(upstream.requests[1].url)
