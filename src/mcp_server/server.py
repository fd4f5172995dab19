"""
FastMCP server exposing read-only Raiser's Edge NXT constituent tools.

Every tool validates its arguments before touching the network and returns
one text content block of pretty-printed JSON. Failures (bad arguments,
upstream errors, refresh failures) come back to the caller as MCP error
results via ToolError.
"""

import json
import logging
from typing import Annotated, Literal

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
)

from ..config import Config
from ..oauth.client import TokenRequestError
from .renxt_client import RenxtClient, UpstreamAPIError

logger = logging.getLogger(__name__)

mcp = FastMCP("renxt-mcp")

# Strict types: FastMCP validates against the signature first and must not coerce
Limit = Annotated[StrictInt, Field(ge=1, le=50, description="Maximum number of results (1-50)")]
SearchField = Literal["name", "email_address", "lookup_id"]

# Owned by the process; set at startup by __main__ or lazily on first call
_client: RenxtClient | None = None


class ListConstituentsParams(BaseModel):
    model_config = ConfigDict(strict=True)

    limit: Limit = 10


class GetConstituentParams(BaseModel):
    model_config = ConfigDict(strict=True)

    id: str


class SearchConstituentsParams(BaseModel):
    model_config = ConfigDict(strict=True)

    search_text: str
    search_field: SearchField | None = None
    strict_search: bool | None = None
    limit: Limit = 10


def configure(client: RenxtClient | None) -> None:
    """Install the RenxtClient the tools use."""
    global _client
    _client = client


def _get_client() -> RenxtClient:
    """Lazy-load the client so importing this module never reads tokens."""
    global _client
    if _client is None:
        _client = RenxtClient.from_config(Config.from_env())
    return _client


def _validate(model: type[BaseModel], **arguments) -> BaseModel:
    # Omitted optional arguments arrive as None
    supplied = {name: value for name, value in arguments.items() if value is not None}
    try:
        return model.model_validate(supplied)
    except ValidationError as e:
        raise ToolError(f"Invalid arguments: {e}") from e


def _to_text(payload) -> str:
    return json.dumps(payload, indent=2)


async def _call(operation: str, coro):
    try:
        return await coro
    except (UpstreamAPIError, TokenRequestError, httpx.HTTPError) as e:
        logger.error("%s failed: %s", operation, e)
        raise ToolError(str(e)) from e


@mcp.tool(structured_output=False)
async def list_constituents(limit: Limit | None = None) -> str:
    """List constituents. Optional `limit` (max 50, default 10)."""
    params = _validate(ListConstituentsParams, limit=limit)
    logger.info("list_constituents limit=%s", params.limit)

    client = _get_client()
    items = await _call("list_constituents", client.list_constituents(limit=params.limit))
    return _to_text(items)


@mcp.tool(structured_output=False)
async def get_constituent(id: StrictStr) -> str:
    """Get a single constituent by system `id`."""
    params = _validate(GetConstituentParams, id=id)
    logger.info("get_constituent id=%s", params.id)

    client = _get_client()
    record = await _call("get_constituent", client.get_constituent(params.id))
    return _to_text(record)


@mcp.tool(structured_output=False)
async def search_constituents(
    search_text: StrictStr,
    search_field: SearchField | None = None,
    strict_search: StrictBool | None = None,
    limit: Limit | None = None,
) -> str:
    """Search constituents by text. `search_field`: 'name' | 'email_address' | 'lookup_id'."""
    params = _validate(
        SearchConstituentsParams,
        search_text=search_text,
        search_field=search_field,
        strict_search=strict_search,
        limit=limit,
    )
    logger.info("search_constituents field=%s limit=%s", params.search_field, params.limit)

    client = _get_client()
    result = await _call(
        "search_constituents",
        client.search_constituents(
            params.search_text,
            search_field=params.search_field,
            strict_search=params.strict_search,
            limit=params.limit,
        ),
    )
    return _to_text(result)
