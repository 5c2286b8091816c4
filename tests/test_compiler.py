"""
Route Compiler (controller/compiler.py)

Tests path resolution, middleware chain order, conflict detection and the
terminal handler's response handling.
"""

import pytest

from perch.controller.compiler import RouteCompiler, compile_routes, normalize_path
from perch.controller.decorators import GET, POST, ParamValue, controller, status, use
from perch.faults import ControllerNotRegisteredFault, RouteConflictFault
from perch.middleware import TopMiddleware
from perch.response import Response
from perch.router import Router
from tests.conftest import make_ctx


def recorder(label, log):
    async def middleware(request, ctx, next):
        log.append(label)
        return await next(request, ctx)

    middleware.__name__ = label
    return middleware


# ============================================================================
# normalize_path
# ============================================================================

class TestNormalizePath:

    @pytest.mark.parametrize("segments,expected", [
        (("/",), "/"),
        (("", "", ""), "/"),
        (("/", "/api/users", "/:id"), "/api/users/:id"),
        (("/v1/", "users/", ""), "/v1/users"),
        (("//a//", "b"), "/a/b"),
        (("/", "/", "/"), "/"),
    ])
    def test_normalize(self, segments, expected):
        assert normalize_path(*segments) == expected


# ============================================================================
# Compilation
# ============================================================================

class TestRouteCompiler:

    def test_full_paths(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET()
            async def list(self, ctx):
                return []

            @GET("/:id")
            async def get(self, ctx):
                return {}

        routes = RouteCompiler("/api").compile(registry, [Users])

        assert [route.name for route in routes] == ["GET /api/users", "GET /api/users/:id"]
        assert routes[1].handler_name == "Users.get"

    @pytest.mark.asyncio
    async def test_middleware_order(self, registry, call_log):
        @controller("/int", [recorder("controller", call_log)], registry=registry)
        class Internal:
            @GET("/:name")
            @use(recorder("route", call_log))
            async def show(self, ctx, name=ParamValue("name")):
                call_log.append("handler")
                return {"name": name}

        top = [
            TopMiddleware("/int/*", [recorder("top", call_log)]),
            TopMiddleware("/other/*", [recorder("skipped", call_log)]),
        ]
        router = Router()
        routes = compile_routes(registry, router, top_middlewares=top, controllers=[Internal])

        assert routes[0].chain == ["top", "controller", "route", "validate_show", "Internal.show"]

        ctx = make_ctx("GET", "/int/x", params={"name": "x"})
        response = await routes[0].handler(ctx.request, ctx)

        assert call_log == ["top", "controller", "route", "handler"]
        assert response.json_body() == {"name": "x"}

    def test_top_middleware_matches_bare_prefix(self):
        compiler = RouteCompiler(top_middlewares=[TopMiddleware("/int/*", ["m"])])
        assert compiler.top_middlewares_for("/int") == ["m"]
        assert compiler.top_middlewares_for("/internal") == []

    def test_no_validation_link_without_bindings(self, registry):
        @controller(registry=registry)
        class Health:
            @GET("/health")
            async def health(self, ctx):
                return {"ok": True}

        routes = RouteCompiler().compile(registry, [Health])
        assert routes[0].chain == ["Health.health"]

    def test_conflict_detected_before_registration(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET("/:id")
            async def get(self, ctx):
                pass

        @controller("/users", registry=registry)
        class Accounts:
            @GET("/:id")
            async def get(self, ctx):
                pass

        router = Router()
        with pytest.raises(RouteConflictFault) as exc_info:
            compile_routes(registry, router, controllers=[Users, Accounts])

        assert exc_info.value.metadata["handlers"] == ["Users.get", "Accounts.get"]
        assert len(router) == 0

    def test_conflict_ignores_parameter_names(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET("/:id")
            async def by_id(self, ctx):
                pass

            @GET("/:slug")
            async def by_slug(self, ctx):
                pass

        router = Router()
        with pytest.raises(RouteConflictFault) as exc_info:
            compile_routes(registry, router, controllers=[Users])

        assert exc_info.value.metadata["handlers"] == ["Users.by_id", "Users.by_slug"]
        assert len(router) == 0

    def test_distinct_shapes_do_not_conflict(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET("/:id")
            async def get(self, ctx):
                pass

            @GET("/:id/posts")
            async def posts(self, ctx):
                pass

            @GET("/me")
            async def me(self, ctx):
                pass

        assert len(RouteCompiler().compile(registry, [Users])) == 3

    def test_same_path_different_methods(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET()
            async def list(self, ctx):
                pass

            @POST()
            async def create(self, ctx):
                pass

        assert len(RouteCompiler().compile(registry, [Users])) == 2

    def test_unregistered_controller(self, registry):
        class Plain:
            pass

        with pytest.raises(ControllerNotRegisteredFault):
            RouteCompiler().compile(registry, [Plain])

    def test_compile_is_repeatable(self, registry):
        @controller("/users", registry=registry)
        class Users:
            @GET("/:id")
            async def get(self, ctx, id=ParamValue("id", int)):
                pass

        compiler = RouteCompiler("/api")
        first = [route.to_dict() for route in compiler.compile(registry)]
        second = [route.to_dict() for route in compiler.compile(registry)]
        assert first == second


# ============================================================================
# Terminal handler
# ============================================================================

class TestTerminalHandler:

    def compile_one(self, registry, cls):
        return RouteCompiler().compile(registry, [cls])[0]

    @pytest.mark.asyncio
    async def test_status_decorator(self, registry):
        @controller(registry=registry)
        class Things:
            @POST("/things")
            @status(201)
            async def create(self, ctx):
                return {"created": True}

        route = self.compile_one(registry, Things)
        ctx = make_ctx("POST", "/things")
        response = await route.handler(ctx.request, ctx)

        assert response.status == 201
        assert response.json_body() == {"created": True}

    @pytest.mark.asyncio
    async def test_ctx_status_and_headers(self, registry):
        @controller(registry=registry)
        class Things:
            @POST("/things")
            @status(201)
            async def create(self, ctx):
                ctx.status = 202
                ctx.headers["X-Queued"] = "1"
                return None

        route = self.compile_one(registry, Things)
        ctx = make_ctx("POST", "/things")
        response = await route.handler(ctx.request, ctx)

        assert response.status == 202
        assert response.headers["x-queued"] == "1"
        assert response.body == b"null"

    @pytest.mark.asyncio
    async def test_response_passthrough(self, registry):
        @controller(registry=registry)
        class Things:
            @GET("/teapot")
            def teapot(self, ctx):
                return Response.text("short and stout", status=418)

        route = self.compile_one(registry, Things)
        ctx = make_ctx("GET", "/teapot")
        response = await route.handler(ctx.request, ctx)

        assert response.status == 418
        assert response.body == b"short and stout"
