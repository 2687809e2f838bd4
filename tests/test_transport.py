"""
Tests for the aiohttp transport using aioresponses.
"""

import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from reactive_query import Client, ClientConfig, HTTPTransport, QueryBuilder
from reactive_query.exceptions import (
    AuthenticationError,
    ConnectionError,
    ContentError,
    NotFoundError,
    QueryExecutionError,
    RateLimitError,
    ServerError,
    TimeoutError,
)

BASE_URL = "https://cms.example.com"
GRAPHQL_URL = f"{BASE_URL}/graphql"


@pytest.fixture
def config():
    return ClientConfig(base_url=BASE_URL, headers={"X-Client": "tests"})


class TestExecuteQuery:
    """Test query requests."""

    @pytest.mark.asyncio
    async def test_posts_query_and_returns_envelope(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, payload={"data": {"data": [{"id": 1}]}})

            result = await transport.execute_query(
                "query { data: posts { id } }", {"Authorization": "Bearer t"}
            )

            request = mocked.requests[("POST", URL(GRAPHQL_URL))][0]
            assert request.kwargs["json"] == {"query": "query { data: posts { id } }"}
            headers = request.kwargs["headers"]
            assert headers["Authorization"] == "Bearer t"
            assert headers["X-Client"] == "tests"
            assert headers["Content-Type"] == "application/json"

        assert result == {"data": {"data": [{"id": 1}]}}
        await transport.close()

    @pytest.mark.asyncio
    async def test_error_envelope_raises(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(
                GRAPHQL_URL,
                payload={"errors": [{"message": "Field 'x' not found"}]},
            )

            with pytest.raises(QueryExecutionError) as exc_info:
                await transport.execute_query("query { data: posts { x } }")

        assert exc_info.value.error_messages == ["Field 'x' not found"]
        assert exc_info.value.query == "query { data: posts { x } }"
        await transport.close()

    @pytest.mark.asyncio
    async def test_partial_errors_keep_data(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(
                GRAPHQL_URL,
                payload={"data": {"data": []}, "errors": [{"message": "partial"}]},
            )

            result = await transport.execute_query("query { data: posts { id } }")

        assert result["data"] == {"data": []}
        await transport.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_type",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (404, NotFoundError),
            (429, RateLimitError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    async def test_status_mapping(self, config, status, error_type):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, status=status, body="nope")

            with pytest.raises(error_type) as exc_info:
                await transport.execute_query("query { data: posts { id } }")

        assert exc_info.value.status_code == status
        await transport.close()

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, status=429, headers={"Retry-After": "7"})

            with pytest.raises(RateLimitError) as exc_info:
                await transport.execute_query("query { data: posts { id } }")

        assert exc_info.value.retry_after == 7.0
        await transport.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, body="<html>oops</html>")

            with pytest.raises(ContentError):
                await transport.execute_query("query { data: posts { id } }")

        await transport.close()

    @pytest.mark.asyncio
    async def test_connection_error(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, exception=aiohttp.ServerDisconnectedError())

            with pytest.raises(ConnectionError):
                await transport.execute_query("query { data: posts { id } }")

        await transport.close()

    @pytest.mark.asyncio
    async def test_timeout(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.post(GRAPHQL_URL, exception=asyncio.TimeoutError())

            with pytest.raises(TimeoutError):
                await transport.execute_query("query { data: posts { id } }")

        await transport.close()


class TestRequest:
    """Test REST requests."""

    @pytest.mark.asyncio
    async def test_patch_item(self, config):
        transport = HTTPTransport(config)
        url = f"{BASE_URL}/items/posts/3"
        with aioresponses() as mocked:
            mocked.patch(url, payload={"data": {"id": 3, "title": "b"}})

            result = await transport.request("patch", "/items/posts/3", {"title": "b"})

        assert result == {"data": {"id": 3, "title": "b"}}
        await transport.close()

    @pytest.mark.asyncio
    async def test_empty_body(self, config):
        transport = HTTPTransport(config)
        with aioresponses() as mocked:
            mocked.delete(f"{BASE_URL}/items/posts/3", status=204, body="")

            assert await transport.request("DELETE", "/items/posts/3") is None

        await transport.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, config):
        transport = HTTPTransport(config)

        await transport.close()
        await transport.close()

        assert transport.closed


class TestClientOverHTTP:
    """End-to-end through the client."""

    @pytest.mark.asyncio
    async def test_exec_and_use(self):
        async with Client(base_url=BASE_URL, token="secret") as client:
            with aioresponses() as mocked:
                mocked.post(
                    GRAPHQL_URL,
                    payload={"data": {"posts": [{"id": 1, "title": "Hello"}]}},
                )

                ctx = await client.query(
                    QueryBuilder("posts").select(["id", "title"]).as_("posts")
                ).exec()

                request = mocked.requests[("POST", URL(GRAPHQL_URL))][0]
                assert request.kwargs["headers"]["Authorization"] == "Bearer secret"

            entry = ctx.use()

        assert entry["data"] == [{"id": 1, "title": "Hello"}]
        assert client.get("posts.data.0.title") == "Hello"

    @pytest.mark.asyncio
    async def test_server_error_recorded(self):
        async with Client(base_url=BASE_URL) as client:
            with aioresponses() as mocked:
                mocked.post(GRAPHQL_URL, status=500)

                ctx = await client.query("posts").exec()

        assert isinstance(ctx.error, ServerError)
        assert ctx.data is None
