"""
Middleware (middleware.py)

Tests chain composition, the default error mapping and LoggingMiddleware.
"""

import logging

import pytest

from perch.controller.decorators import GET, controller
from perch.faults import ConfigMissingFault, ValidationFault
from perch.middleware import LoggingMiddleware, compose, error_response, middleware_name
from perch.request import PayloadTooLarge, Request
from perch.response import Response
from perch.server import build_app
from tests.conftest import make_ctx


# ============================================================================
# compose
# ============================================================================

class TestCompose:

    @pytest.mark.asyncio
    async def test_first_is_outermost(self, call_log):
        def recorder(label):
            async def middleware(request, ctx, next):
                call_log.append(f"{label}:in")
                response = await next(request, ctx)
                call_log.append(f"{label}:out")
                return response
            return middleware

        async def handler(request, ctx):
            call_log.append("handler")
            return Response.json({})

        chain = compose([recorder("a"), recorder("b")], handler)
        ctx = make_ctx()
        await chain(ctx.request, ctx)

        assert call_log == ["a:in", "b:in", "handler", "b:out", "a:out"]

    def test_middleware_name(self):
        async def audit(request, ctx, next):
            pass

        assert middleware_name(audit) == "audit"
        assert middleware_name(LoggingMiddleware()) == "LoggingMiddleware"


# ============================================================================
# error_response
# ============================================================================

class TestErrorResponse:

    def test_validation_fault(self):
        fault = ValidationFault("query", [{"path": "page", "message": "bad", "type": "int_parsing"}])
        response = error_response(fault)

        assert response.status == 400
        assert response.json_body()["location"] == "query"

    def test_public_fault_with_status_override(self):
        response = error_response(PayloadTooLarge())

        assert response.status == 413
        assert response.json_body() == {"message": "Payload too large", "code": "PAYLOAD_TOO_LARGE"}

    def test_private_fault_hidden(self):
        response = error_response(ConfigMissingFault("API_TOKEN"))

        assert response.status == 500
        assert response.json_body() == {"message": "Internal Server Error"}


# ============================================================================
# LoggingMiddleware
# ============================================================================

class TestLoggingMiddleware:

    @pytest.mark.asyncio
    async def test_logs_request_line(self, registry, caplog):
        @controller("/health", [LoggingMiddleware()], registry=registry)
        class Health:
            @GET()
            async def check(self, ctx):
                return {"ok": True}

        app = build_app([Health])
        assert app.routes[0].chain == ["LoggingMiddleware", "Health.check"]

        with caplog.at_level(logging.INFO, logger="perch.requests"):
            response = await app.fetch(Request.build("GET", "/health"))

        assert response.status == 200
        messages = [r.getMessage() for r in caplog.records if r.name == "perch.requests"]
        assert len(messages) == 1
        assert messages[0].startswith("GET /health -> 200")

    @pytest.mark.asyncio
    async def test_silent_below_info(self, caplog):
        middleware = LoggingMiddleware("perch.test.quiet")
        ctx = make_ctx()

        async def handler(request, ctx):
            return Response.json({})

        with caplog.at_level(logging.WARNING, logger="perch.test.quiet"):
            await middleware(ctx.request, ctx, handler)

        assert [r for r in caplog.records if r.name == "perch.test.quiet"] == []
