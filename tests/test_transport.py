"""Tests for the aiohttp transport against a local test server."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from aiohttp import test_utils, web

from baas_identity import IdentityConfig
from baas_identity.exceptions import RequestError, TransportConnectionError
from baas_identity.transport import HttpTransport


async def echo(request: web.Request) -> web.Response:
    body = await request.json() if request.can_read_body else None
    return web.json_response(
        {
            "method": request.method,
            "path": request.path,
            "query": dict(request.query),
            "headers": {
                name: request.headers.get(name)
                for name in ("X-App-Id", "X-App-Key", "X-Session-Token")
            },
            "body": body,
        }
    )


async def rejected(request: web.Request) -> web.Response:
    return web.json_response({"code": 211, "error": "Could not find user"}, status=404)


async def bad_gateway(request: web.Request) -> web.Response:
    return web.Response(status=502, text="Bad gateway")


async def empty(request: web.Request) -> web.Response:
    return web.Response(status=200)


async def listing(request: web.Request) -> web.Response:
    return web.json_response([{"objectId": "u1"}])


@pytest.fixture
async def server() -> AsyncIterator[test_utils.TestServer]:
    app = web.Application()
    app.router.add_post("/1.1/login", echo)
    app.router.add_get("/1.1/users/me", echo)
    app.router.add_put("/1.1/users/{id}", echo)
    app.router.add_get("/1.1/users/missing", rejected)
    app.router.add_get("/1.1/flaky", bad_gateway)
    app.router.add_delete("/1.1/users/u1/friendship/u2", empty)
    app.router.add_get("/1.1/listing", listing)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def transport(
    server: test_utils.TestServer, tmp_path: Path
) -> AsyncIterator[HttpTransport]:
    config = IdentityConfig(
        app_id="test-app",
        app_key="test-key",
        server_url=f"http://{server.host}:{server.port}/",
        storage_dir=tmp_path,
    )
    async with HttpTransport(config) as http:
        yield http


class TestHttpTransport:
    """Tests for HttpTransport."""

    @pytest.mark.asyncio
    async def test_post_sends_body_and_app_headers(self, transport: HttpTransport) -> None:
        """Test that POST sends the body and the app headers."""
        data = await transport.request("POST", "login", {"username": "alice", "password": "pw"})

        assert data["path"] == "/1.1/login"
        assert data["body"] == {"username": "alice", "password": "pw"}
        assert data["headers"] == {
            "X-App-Id": "test-app",
            "X-App-Key": "test-key",
            "X-Session-Token": None,
        }

    @pytest.mark.asyncio
    async def test_session_token_header(self, transport: HttpTransport) -> None:
        """Test that a session token travels as a header."""
        data = await transport.request("PUT", "users/u1", {"nickname": "Al"}, session_token="t1")

        assert data["method"] == "PUT"
        assert data["headers"]["X-Session-Token"] == "t1"

    @pytest.mark.asyncio
    async def test_query_params(self, transport: HttpTransport) -> None:
        """Test query parameters."""
        data = await transport.request("GET", "users/me", params={"session_token": "tok"})

        assert data["query"] == {"session_token": "tok"}

    @pytest.mark.asyncio
    async def test_error_response_raises_request_error(self, transport: HttpTransport) -> None:
        """Test that an error body becomes a RequestError."""
        with pytest.raises(RequestError) as exc_info:
            await transport.request("GET", "users/missing")

        assert exc_info.value.status == 404
        assert exc_info.value.code == 211
        assert exc_info.value.error == "Could not find user"

    @pytest.mark.asyncio
    async def test_non_json_error_keeps_text(self, transport: HttpTransport) -> None:
        """Test an error response that is not JSON."""
        with pytest.raises(RequestError) as exc_info:
            await transport.request("GET", "flaky")

        assert exc_info.value.status == 502
        assert exc_info.value.code is None
        assert exc_info.value.error == "Bad gateway"

    @pytest.mark.asyncio
    async def test_empty_body_decodes_to_empty_dict(self, transport: HttpTransport) -> None:
        """Test a response with no body."""
        assert await transport.request("DELETE", "users/u1/friendship/u2") == {}

    @pytest.mark.asyncio
    async def test_list_body_is_wrapped(self, transport: HttpTransport) -> None:
        """Test that a list response is wrapped in results."""
        assert await transport.request("GET", "listing") == {"results": [{"objectId": "u1"}]}


@pytest.mark.asyncio
async def test_unreachable_server(tmp_path: Path) -> None:
    """Test that connection failures raise TransportConnectionError."""
    config = IdentityConfig(
        app_id="test-app",
        server_url="http://127.0.0.1:1",
        storage_dir=tmp_path,
        request_timeout=2.0,
    )

    async with HttpTransport(config) as transport:
        with pytest.raises(TransportConnectionError) as exc_info:
            await transport.request("POST", "login", {})

    assert exc_info.value.endpoint == "http://127.0.0.1:1/1.1/login"
