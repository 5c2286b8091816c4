"""
Request wrapper (request.py, _datastructures.py)
"""

import pytest

from perch.config import AppConfig
from perch.controller.decorators import Body, OPTIONS, POST, controller
from perch.request import ClientDisconnect, PayloadTooLarge, Request
from perch.response import Response
from perch.server import build_app
from perch.testing import TestClient, make_test_receive, make_test_scope


def make_request(query_string="", headers=None, chunks=None, **kwargs):
    scope = make_test_scope("POST", "/upload", query_string, headers)
    return Request(scope, make_test_receive(chunks=chunks or [b""]), **kwargs)


# ============================================================================
# Query & headers
# ============================================================================

class TestRequestParsing:

    def test_repeated_query_key(self):
        request = make_request("tag=a&tag=b&page=2&empty=")

        assert request.query_params["tag"] == ["a", "b"]
        assert request.query_param("tag") == "a"
        assert request.query_params.to_dict() == {"tag": "a", "page": "2", "empty": ""}
        assert len(request.query_params) == 3
        assert request.query_param("missing", "x") == "x"

    def test_headers_case_insensitive(self):
        request = make_request(headers=[("X-Trace", "abc"), ("Accept", "a"), ("accept", "b")])

        assert request.header("x-trace") == "abc"
        assert "X-TRACE" in request.headers
        assert "x-missing" not in request.headers
        assert request.headers.to_dict() == {"x-trace": "abc", "accept": "a"}

    def test_build_splits_query(self):
        request = Request.build("get", "/users?page=3")

        assert request.method == "GET"
        assert request.path == "/users"
        assert request.query_param("page") == "3"


# ============================================================================
# Body
# ============================================================================

class TestRequestBody:

    @pytest.mark.asyncio
    async def test_chunked_body(self):
        request = make_request(chunks=[b'{"a": ', b"1}"])

        assert await request.body() == b'{"a": 1}'
        assert await request.json() == {"a": 1}

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        assert await make_request().json() is None

    @pytest.mark.asyncio
    async def test_size_limit(self):
        request = make_request(chunks=[b"12345", b"67890"], max_body_size=8)

        with pytest.raises(PayloadTooLarge) as exc_info:
            await request.body()

        assert exc_info.value.status == 413
        assert exc_info.value.metadata["max_allowed"] == 8

    @pytest.mark.asyncio
    async def test_disconnect(self):
        async def receive():
            return {"type": "http.disconnect"}

        request = Request(make_test_scope("POST", "/upload"), receive)

        with pytest.raises(ClientDisconnect):
            await request.body()

    @pytest.mark.asyncio
    async def test_oversized_body_through_app(self, registry):
        @controller(registry=registry)
        class Uploads:
            @POST("/upload")
            async def upload(self, ctx, data=Body()):
                return {"size": len(data)}

        app = build_app([Uploads])
        request = make_request(chunks=[b'{"blob": "', b"x" * 32, b'"}'], max_body_size=16)

        response = await app.fetch(request)

        assert response.status == 413
        assert response.json_body()["code"] == "PAYLOAD_TOO_LARGE"


# ============================================================================
# OPTIONS through the test client
# ============================================================================

class TestOptions:

    @pytest.mark.asyncio
    async def test_options_route(self, registry):
        @controller("/items", registry=registry)
        class Items:
            @OPTIONS()
            async def preflight(self, ctx):
                return Response.empty(headers={"Allow": "GET, POST, OPTIONS"})

        client = TestClient(build_app([Items], AppConfig()))
        response = await client.options("/items")

        assert response.status_code == 204
        assert response.headers["allow"] == "GET, POST, OPTIONS"
