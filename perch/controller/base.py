"""
Controller Base Class

Provides the RequestCtx and ExecutionContext handed to middlewares and
handlers, and an optional Controller base class with lifecycle hooks.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from perch.request import Request

logger = logging.getLogger("perch.controller")


class ExecutionContext:
    """
    Host lifecycle hooks for a single request.

    ``wait_until()`` registers background work that must finish after the
    response has been sent. The ASGI adapter drains it once the body is out;
    direct ``fetch()`` callers pass their own context and drain it themselves.
    """

    def __init__(self):
        self._pending: List[Awaitable[Any]] = []

    def wait_until(self, awaitable: Awaitable[Any]) -> None:
        """Schedule ``awaitable`` to run after the response."""
        self._pending.append(awaitable)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Await all scheduled work. Failures are logged, not raised."""
        pending, self._pending = self._pending, []
        if not pending:
            return
        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error(
                    "Background task failed: %s", result,
                    exc_info=(type(result), result, result.__traceback__),
                )


@dataclass
class RequestCtx:
    """
    Request context provided to middlewares and controller methods.

    Attributes:
        request: The HTTP request
        env: Host environment bindings (secrets, settings)
        execution_ctx: Lifecycle hooks for background work
        params: Path parameters from the matched route
        state: Free-form per-request state for middlewares
        valid: Validated values per location ("headers", "query", "body")
        status: Status override for non-Response handler results
        headers: Extra headers added to non-Response handler results
        args: Handler arguments prepared by the validation middleware
    """

    request: "Request"
    env: Mapping[str, Any] = field(default_factory=dict)
    execution_ctx: Optional[ExecutionContext] = None
    params: Dict[str, str] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)
    valid: Dict[str, Any] = field(default_factory=dict)
    status: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    args: Optional[List[Any]] = None

    @property
    def path(self) -> str:
        """Request path."""
        return self.request.path

    @property
    def method(self) -> str:
        """Request method."""
        return self.request.method

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.params.get(name, default)

    def query_param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get single query parameter."""
        return self.request.query_param(key, default)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.header(name, default)

    async def json(self) -> Any:
        """Parse request body as JSON."""
        return await self.request.json()


class Controller:
    """
    Optional base class for controllers.

    Controllers are instantiated once per built application, with no
    arguments. Subclasses may override the lifecycle hooks, which the ASGI
    adapter calls on lifespan startup and shutdown.

    Example:
        @controller("/users")
        class UsersController(Controller):
            async def on_startup(self):
                self.repo = await open_repo()

            @GET("/:id")
            async def get(self, ctx, id=ParamValue("id", int)):
                return await self.repo.get(id)
    """

    async def on_startup(self) -> None:
        """Called once when the application starts serving."""

    async def on_shutdown(self) -> None:
        """Called once when the application stops serving."""
