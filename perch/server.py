"""
Application Assembler - builds a dispatchable app from controllers.

``build_app()`` freezes the registry, compiles every controller into the
router, builds the introspection document, and wires error and not-found
handling. The returned ``PerchApp`` is both:

- an ASGI 3 application (``await app(scope, receive, send)``)
- directly callable via ``await app.fetch(request, env, execution_ctx)``
"""

import inspect
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import AppConfig
from .controller.base import ExecutionContext, RequestCtx
from .controller.compiler import CompiledRoute, RouteCompiler, normalize_path
from .controller.introspection import IntrospectionObject, build_introspection, to_json
from .controller.metadata import HttpMethod, MetadataRegistry, default_registry
from .faults import HookFault, IntrospectionPathConflictFault
from .middleware import error_response
from .request import Request
from .response import InternalError, NotFound, Response
from .router import Router, path_matches

logger = logging.getLogger("perch.server")


class PerchApp:
    """
    A built application.

    Holds the router, the compiled routes and the introspection document;
    all of them are read-only after ``build_app()`` returns.
    """

    def __init__(
        self,
        router: Router,
        routes: List[CompiledRoute],
        introspection: List[IntrospectionObject],
        config: AppConfig,
    ):
        self.router = router
        self.routes = routes
        self.introspection = introspection
        self.config = config
        self._started = False

    # ========================================================================
    # Direct dispatch
    # ========================================================================

    def default_env(self) -> Mapping[str, Any]:
        return self.config.env if self.config.env is not None else os.environ

    async def fetch(
        self,
        request: Request,
        env: Optional[Mapping[str, Any]] = None,
        execution_ctx: Optional[ExecutionContext] = None,
    ) -> Response:
        """
        Dispatch one request. Never raises for request-time failures.
        """
        ctx = RequestCtx(
            request=request,
            env=env if env is not None else self.default_env(),
            execution_ctx=execution_ctx if execution_ctx is not None else ExecutionContext(),
        )

        try:
            match = self.router.match(request.method, request.path)
            if match is None:
                return await self._not_found(ctx)

            request.path_params = dict(match.params)
            ctx.params = dict(match.params)
            return await match.handler(request, ctx)
        except Exception as exc:
            return await self._handle_error(exc, ctx)

    async def _not_found(self, ctx: RequestCtx) -> Response:
        hook = self.config.not_found_handler
        if hook is None:
            return NotFound()
        return await _call_hook("not_found_handler", hook, ctx)

    async def _handle_error(self, exc: Exception, ctx: RequestCtx) -> Response:
        hook = self.config.on_error
        if hook is None:
            return error_response(exc, debug=self.config.debug)

        try:
            return await _call_hook("on_error", hook, exc, ctx)
        except Exception as hook_exc:
            logger.error(
                "on_error failed while handling %r: %s", exc, hook_exc, exc_info=hook_exc,
            )
            return InternalError()

    # ========================================================================
    # ASGI
    # ========================================================================

    async def __call__(self, scope: dict, receive, send) -> None:
        if scope["type"] == "http":
            await self.handle_http(scope, receive, send)
        elif scope["type"] == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            logger.warning("Unsupported ASGI scope type: %s", scope["type"])

    async def handle_http(self, scope: dict, receive, send) -> None:
        request = Request(scope, receive)
        execution_ctx = ExecutionContext()

        response = await self.fetch(request, self.default_env(), execution_ctx)
        await response.send_asgi(send)

        # Background work runs once the response is out
        await execution_ctx.drain()

    async def handle_lifespan(self, scope: dict, receive, send) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as e:
                    logger.error("Startup error: %s", e, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as e:
                    logger.error("Shutdown error: %s", e, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _controller_instances(self) -> List[Any]:
        instances: Dict[int, Any] = {}
        for route in self.routes:
            instances.setdefault(id(route.instance), route.instance)
        return list(instances.values())

    async def startup(self) -> None:
        """Run ``on_startup`` on every controller that defines it."""
        if self._started:
            return
        for instance in self._controller_instances():
            hook = getattr(instance, "on_startup", None)
            if hook is not None:
                await _maybe_await(hook())
        self._started = True
        logger.debug("Startup complete")

    async def shutdown(self) -> None:
        if not self._started:
            return
        for instance in reversed(self._controller_instances()):
            hook = getattr(instance, "on_shutdown", None)
            if hook is not None:
                await _maybe_await(hook())
        self._started = False
        logger.debug("Shutdown complete")

    def __repr__(self) -> str:
        return f"<PerchApp routes={len(self.routes)}>"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _call_hook(name: str, hook, *args) -> Response:
    result = await _maybe_await(hook(*args))
    if not isinstance(result, Response):
        raise HookFault(name, f"returned {type(result).__name__}, expected Response")
    return result


def _introspection_handler(document: str):
    async def introspection(request: Request, ctx: RequestCtx) -> Response:
        return Response(document, media_type="application/json; charset=utf-8")

    return introspection


def _infer_registry(controllers: Sequence[type]) -> MetadataRegistry:
    for cls in controllers:
        registry = getattr(cls, "__perch_registry__", None)
        if registry is not None:
            return registry
    return default_registry


def build_app(
    controllers: Sequence[type],
    config: Optional[AppConfig] = None,
    *,
    registry: Optional[MetadataRegistry] = None,
    router: Optional[Router] = None,
) -> PerchApp:
    """
    Build an application from decorated controller classes.

    Args:
        controllers: Controller classes, compiled in this order
        config: Application configuration
        registry: Registry the controllers were declared in (default: the
            one their ``@controller`` used)
        router: Router to register into (default: a new ``Router``)

    Raises:
        ControllerNotRegisteredFault: A class was never decorated
        RouteConflictFault: Two methods resolve to the same method and path
        IntrospectionPathConflictFault: A GET route matches the introspection path
    """
    config = config if config is not None else AppConfig()
    registry = registry if registry is not None else _infer_registry(controllers)
    router = router if router is not None else Router()
    controllers = list(controllers)

    registry.freeze()

    compiler = RouteCompiler(config.base, config.top_middlewares)
    routes = compiler.compile(registry, controllers)
    introspection = build_introspection(registry, config.base, controllers)

    introspection_path = None
    if config.enable_introspection:
        introspection_path = normalize_path(config.base, config.introspection_path)
        for route in routes:
            if route.http_method not in (HttpMethod.GET.value, HttpMethod.ALL.value):
                continue
            # Registered earlier, a matching route would take the request
            if path_matches(route.full_path, introspection_path):
                raise IntrospectionPathConflictFault(introspection_path, route.handler_name)

    compiler.register(routes, router)
    if introspection_path is not None:
        router.add("GET", introspection_path, _introspection_handler(to_json(introspection)))

    logger.info(
        "Built app with %d routes from %d controllers%s",
        len(routes),
        len(controllers),
        f", introspection at {introspection_path}" if introspection_path else "",
    )
    return PerchApp(router, routes, introspection, config)
