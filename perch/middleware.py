"""
Middleware system - composable, async-first middleware chains.

Provides:
- Handler / Middleware signatures
- compose(): deterministic chain assembly (first middleware is outermost)
- error_response(): the default exception-to-Response mapping
- LoggingMiddleware: request/response logging with timing
- TopMiddleware: path-scoped application middlewares
"""

from __future__ import annotations

import logging
import time
import traceback
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, Tuple, TYPE_CHECKING

from .faults import Fault, ValidationFault
from .request import Request
from .response import InternalError, Response

if TYPE_CHECKING:
    from .controller.base import RequestCtx

Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]
Middleware = Callable[[Request, "RequestCtx", Handler], Awaitable[Response]]

logger = logging.getLogger("perch.exceptions")


def middleware_name(middleware: Middleware) -> str:
    return getattr(middleware, "__name__", None) or type(middleware).__name__


def compose(middlewares: Sequence[Middleware], final_handler: Handler) -> Handler:
    """
    Build a middleware chain wrapping ``final_handler``.

    ``middlewares[0]`` runs first. Each middleware receives ``next`` and may
    await it, or short-circuit by returning its own Response.
    """
    handler = final_handler

    # Wrap in reverse order so first middleware is outermost
    for middleware in reversed(middlewares):
        handler = _wrap_middleware(middleware, handler)

    return handler


def _wrap_middleware(middleware: Middleware, next_handler: Handler) -> Handler:
    async def wrapped(request: Request, ctx: "RequestCtx") -> Response:
        return await middleware(request, ctx, next_handler)

    wrapped.__name__ = middleware_name(middleware)
    return wrapped


def error_response(exc: BaseException, *, debug: bool = False) -> Response:
    """
    Convert an exception escaping a chain into a Response.

    - ValidationFault -> 400 with location, issues and name
    - public Fault -> its domain status with code and message
    - anything else -> 500 (detail and traceback only in debug)
    """
    if isinstance(exc, ValidationFault):
        logger.info("Fault %s: %s", exc.code, exc.message)
        return Response.json(exc.to_response_body(), status=400)

    if isinstance(exc, Fault) and exc.public:
        status = exc.status
        if status >= 500:
            logger.error("Fault %s: %s", exc.code, exc.message)
        else:
            logger.warning("Fault %s: %s", exc.code, exc.message)
        return Response.json({"message": exc.message, "code": exc.code}, status=status)

    if isinstance(exc, Fault):
        logger.error("Fault %s", exc.to_dict(), exc_info=exc)
    else:
        logger.error("Unhandled exception: %s", exc, exc_info=exc)

    if debug:
        return Response.json(
            {
                "message": "Internal Server Error",
                "detail": str(exc),
                "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            },
            status=500,
        )
    return InternalError()


class LoggingMiddleware:
    """Logs request/response with timing."""

    def __init__(self, logger_name: str = "perch.requests"):
        self.logger = logging.getLogger(logger_name)

    async def __call__(self, request: Request, ctx: "RequestCtx", next: Handler) -> Response:
        if not self.logger.isEnabledFor(logging.INFO):
            return await next(request, ctx)

        start = time.perf_counter()
        response = await next(request, ctx)
        elapsed_ms = (time.perf_counter() - start) * 1000
        self.logger.info(
            "%s %s -> %d (%.2fms)",
            request.method, request.path, response.status, elapsed_ms,
        )
        return response


@dataclass(frozen=True)
class TopMiddleware:
    """
    Application-level middlewares applied to routes matching ``path``.

    ``path`` uses router glob syntax: ``/int/*`` matches ``/int`` and
    everything below it.
    """
    path: str
    middlewares: Tuple[Middleware, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "middlewares", tuple(self.middlewares))
