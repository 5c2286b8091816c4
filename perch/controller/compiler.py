"""
Route Compiler - compiles registered controllers into router entries.

For every controller method it:
- resolves the full path (app base + controller base + method path)
- assembles the middleware chain (top-level, controller, route,
  validation, terminal handler)
- detects (method, path) conflicts before anything is registered
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..faults import RouteConflictFault
from ..middleware import Handler, Middleware, TopMiddleware, compose, middleware_name
from ..request import Request
from ..response import Response
from ..router import Router, compile_pattern, path_matches, pattern_key
from .base import RequestCtx
from .binding import create_validation_middleware
from .metadata import ControllerDescriptor, MetadataRegistry, MethodDescriptor

logger = logging.getLogger("perch.compiler")


def normalize_path(*segments: str) -> str:
    """
    Join path segments into a normalized route path.

    >>> normalize_path("/", "/api/users/", ":id")
    '/api/users/:id'
    >>> normalize_path("", "", "")
    '/'
    """
    parts: List[str] = []
    for segment in segments:
        if segment:
            parts.extend(p for p in segment.split("/") if p)
    return "/" + "/".join(parts)


@dataclass
class CompiledRoute:
    """A compiled controller route with its assembled chain."""

    controller: ControllerDescriptor
    method: MethodDescriptor
    http_method: str
    full_path: str
    middlewares: Tuple[Middleware, ...]
    handler: Handler
    instance: Any = None

    @property
    def name(self) -> str:
        return f"{self.http_method} {self.full_path}"

    @property
    def handler_name(self) -> str:
        return f"{self.controller.name}.{self.method.name}"

    @property
    def chain(self) -> List[str]:
        """Names of the chain links, outermost first, ending with the handler."""
        return [middleware_name(m) for m in self.middlewares] + [self.handler_name]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for listing."""
        return {
            "method": self.http_method,
            "path": self.full_path,
            "handler": self.handler_name,
            "chain": self.chain,
        }


def make_terminal_handler(instance: Any, descriptor: MethodDescriptor) -> Handler:
    """
    Wrap a bound controller method as the innermost chain link.

    A returned Response is sent as-is; any other value is JSON-encoded with
    ``ctx.status``, then the method's ``@status``, then 200.
    """
    method = getattr(instance, descriptor.name)

    async def terminal(request: Request, ctx: RequestCtx) -> Response:
        args = ctx.args if ctx.args is not None else [ctx]
        result = method(*args)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, Response):
            return result
        return Response.json(
            result,
            status=ctx.status or descriptor.status_code or 200,
            headers=ctx.headers or None,
        )

    terminal.__name__ = descriptor.name
    return terminal


class RouteCompiler:
    """
    Compiles controllers into executable routes.

    ``compile()`` has no effect beyond instantiating each controller once;
    ``register()`` is the only step touching the router.
    """

    def __init__(self, base: str = "/", top_middlewares: Sequence[TopMiddleware] = ()):
        self.base = base or "/"
        self.top_middlewares = tuple(top_middlewares)

    def full_path(self, controller: ControllerDescriptor, method: MethodDescriptor) -> str:
        return normalize_path(self.base, controller.base_path, method.path)

    def top_middlewares_for(self, full_path: str) -> List[Middleware]:
        """Top-level middlewares whose glob matches ``full_path``, in order."""
        matched: List[Middleware] = []
        for top in self.top_middlewares:
            if path_matches(normalize_path(top.path), full_path):
                matched.extend(top.middlewares)
        return matched

    def compile(
        self,
        registry: MetadataRegistry,
        controllers: Optional[Sequence[type]] = None,
    ) -> List[CompiledRoute]:
        """
        Compile controllers (default: all registered, in registration order).

        Raises:
            ControllerNotRegisteredFault: For an unregistered class
            RouteConflictFault: If two methods resolve to the same
                http_method and a path pattern matching the same paths
            PatternInvalidFault: If a full path is not a valid route pattern
        """
        descriptors = registry.resolve(controllers)

        routes: List[CompiledRoute] = []
        seen: Dict[Tuple[str, str], CompiledRoute] = {}

        for controller in descriptors:
            instance = controller.controller_class()
            for method in controller.methods.values():
                route = self._compile_route(instance, controller, method)
                key = (route.http_method, pattern_key(route.full_path))
                if key in seen:
                    raise RouteConflictFault(
                        route.http_method,
                        route.full_path,
                        [seen[key].handler_name, route.handler_name],
                    )
                seen[key] = route
                routes.append(route)

        logger.debug("Compiled %d routes from %d controllers", len(routes), len(descriptors))
        return routes

    def _compile_route(
        self,
        instance: Any,
        controller: ControllerDescriptor,
        method: MethodDescriptor,
    ) -> CompiledRoute:
        full_path = self.full_path(controller, method)
        compile_pattern(full_path)

        chain: List[Middleware] = self.top_middlewares_for(full_path)
        chain.extend(controller.middlewares)
        chain.extend(method.middlewares)
        if method.validation_schemas or method.param_bindings:
            chain.append(create_validation_middleware(method))

        terminal = make_terminal_handler(instance, method)
        return CompiledRoute(
            controller=controller,
            method=method,
            http_method=method.http_method.value,
            full_path=full_path,
            middlewares=tuple(chain),
            handler=compose(chain, terminal),
            instance=instance,
        )

    def register(self, routes: Sequence[CompiledRoute], router: Router) -> None:
        for route in routes:
            router.add(route.http_method, route.full_path, route.handler)
            logger.debug("Registered %s -> %s", route.name, route.handler_name)


def compile_routes(
    registry: MetadataRegistry,
    router: Router,
    *,
    base: str = "/",
    top_middlewares: Sequence[TopMiddleware] = (),
    controllers: Optional[Sequence[type]] = None,
) -> List[CompiledRoute]:
    """Compile and register in one step."""
    compiler = RouteCompiler(base, top_middlewares)
    routes = compiler.compile(registry, controllers)
    compiler.register(routes, router)
    return routes
