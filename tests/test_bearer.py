"""
Bearer auth middleware (auth/bearer.py)
"""

import pytest

from perch.auth import create_bearer_auth_middleware
from perch.config import AppConfig
from perch.controller.decorators import GET, controller
from perch.request import Request
from perch.server import build_app
from perch.testing import TestClient


@pytest.fixture
def secured(registry):
    @controller("/secure", [create_bearer_auth_middleware("API_TOKEN")], registry=registry)
    class Secure:
        @GET()
        async def index(self, ctx):
            return {"ok": True}

    return Secure


@pytest.fixture
def client(secured):
    return TestClient(build_app([secured], AppConfig(env={"API_TOKEN": "s3cret"})))


class TestBearerAuth:

    @pytest.mark.asyncio
    async def test_valid_token(self, client):
        client.set_bearer_token("s3cret")
        response = await client.get("/secure")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        response = await client.get("/secure")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert response.headers["www-authenticate"] == 'Bearer realm=""'

    @pytest.mark.asyncio
    async def test_wrong_token(self, client):
        client.set_bearer_token("guess")
        response = await client.get("/secure")

        assert response.status_code == 401
        assert 'error="invalid_token"' in response.headers["www-authenticate"]

    @pytest.mark.asyncio
    async def test_malformed_header(self, client):
        response = await client.get("/secure", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert response.status_code == 400
        assert response.json() == {"error": "Bad Request"}
        assert 'error="invalid_request"' in response.headers["www-authenticate"]

    @pytest.mark.asyncio
    async def test_missing_secret_is_server_error(self, secured):
        app = build_app([secured], AppConfig(env={}))

        response = await app.fetch(
            Request.build("GET", "/secure", headers={"Authorization": "Bearer s3cret"})
        )

        assert response.status == 500

    @pytest.mark.asyncio
    async def test_secret_read_per_request(self, secured):
        app = build_app([secured])
        request = Request.build("GET", "/secure", headers={"Authorization": "Bearer rotated"})

        response = await app.fetch(request, env={"API_TOKEN": "rotated"})

        assert response.status == 200

    def test_middleware_name(self):
        assert create_bearer_auth_middleware("API_TOKEN").__name__ == "bearer_auth"
