"""
Request - ASGI request wrapper.

Provides:
- Typed, async request object wrapping ASGI scope/receive
- Body reading with idempotent caching and a size limit
- Lazy query-string and header parsing
- JSON parsing with Perch fault integration
"""

from __future__ import annotations

import json as stdlib_json
from typing import (
    Any, AsyncIterator, Awaitable, Callable, Dict, List,
    Mapping, Optional, Tuple, Union
)
from urllib.parse import parse_qsl

from ._datastructures import Headers, MultiDict
from .faults import Fault, FaultDomain, Severity


# ============================================================================
# Request Faults
# ============================================================================


class RequestFault(Fault):
    """Base class for request-related faults."""
    domain = FaultDomain.IO
    severity = Severity.WARN
    public = True


class PayloadTooLarge(RequestFault):
    """Request payload exceeds limits."""
    code = "PAYLOAD_TOO_LARGE"
    message = "Payload too large"
    http_status = 413

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            code=self.code,
            message=message or self.message,
            metadata=metadata
        )


class ClientDisconnect(RequestFault):
    """Client disconnected during request."""
    code = "CLIENT_DISCONNECT"
    message = "Client disconnected"

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            code=self.code,
            message=message or self.message,
            metadata=metadata
        )


class InvalidJSON(RequestFault):
    """Invalid JSON payload."""
    code = "INVALID_JSON"
    message = "Invalid JSON"

    def __init__(self, message: str = None, **metadata):
        super().__init__(
            code=self.code,
            message=message or self.message,
            metadata=metadata
        )


# ============================================================================
# Request Class
# ============================================================================

_EMPTY = object()


class Request:
    """
    Request object handed to middlewares and handlers.

    Wraps an ASGI ``scope``/``receive`` pair. Everything expensive (query
    parsing, header indexing, body reads, JSON decoding) is done lazily and
    cached on the instance, so one request object can be read by every link
    of a middleware chain.
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size

        # Populated by the router on a match
        self.path_params: Dict[str, str] = {}

        # Cached values
        self._body: Optional[bytes] = None
        self._json: Any = _EMPTY
        self._query_params: Optional[MultiDict] = None
        self._headers: Optional[Headers] = None

    @classmethod
    def build(
        cls,
        method: str = "GET",
        path: str = "/",
        *,
        query_string: str = "",
        headers: Optional[Union[Mapping[str, str], List[Tuple[str, str]]]] = None,
        body: Union[bytes, str] = b"",
        json: Any = None,
    ) -> "Request":
        """
        Build a request without an ASGI server.

        Used for direct ``app.fetch(request)`` calls from tests, scripts and
        other hosts.
        """
        if "?" in path and not query_string:
            path, query_string = path.split("?", 1)

        pairs: List[Tuple[str, str]] = []
        if headers:
            items = headers.items() if isinstance(headers, Mapping) else headers
            pairs.extend((k.lower(), v) for k, v in items)

        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            pairs.append(("content-type", "application/json"))
        elif isinstance(body, str):
            body = body.encode("utf-8")

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path,
            "raw_path": path.encode("utf-8"),
            "query_string": query_string.encode("utf-8"),
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs],
            "scheme": "http",
            "root_path": "",
        }
        sent = False

        async def receive() -> dict:
            nonlocal sent
            if sent:
                return {"type": "http.disconnect"}
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}

        return cls(scope, receive)

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path (decoded)."""
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("utf-8")

    # ========================================================================
    # Query Parameters & Headers
    # ========================================================================

    @property
    def query_params(self) -> MultiDict:
        """Parsed query parameters."""
        if self._query_params is None:
            query_string = self.query_string
            if query_string:
                # parse_qsl preserves order and handles repeated params
                self._query_params = MultiDict(parse_qsl(query_string, keep_blank_values=True))
            else:
                self._query_params = MultiDict()
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single query parameter."""
        return self.query_params.get(name, default)

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name, default)

    # ========================================================================
    # Body
    # ========================================================================

    async def _receive_message(self) -> dict:
        message = await self._receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnect("Client disconnected")
        return message

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """
        Stream request body in chunks.

        Raises:
            ClientDisconnect: If client disconnects during streaming
            PayloadTooLarge: If body exceeds max_body_size
        """
        if self._body is not None:
            yield self._body
            return

        total_size = 0
        while True:
            message = await self._receive_message()

            if message["type"] == "http.request":
                chunk = message.get("body", b"")
                if chunk:
                    total_size += len(chunk)
                    if total_size > self.max_body_size:
                        raise PayloadTooLarge(
                            "Request body exceeds maximum size",
                            max_allowed=self.max_body_size,
                            actual=total_size,
                        )
                    yield chunk

                if not message.get("more_body", False):
                    break

    async def body(self) -> bytes:
        """Read full request body (idempotent)."""
        if self._body is not None:
            return self._body

        chunks = []
        async for chunk in self.iter_bytes():
            chunks.append(chunk)

        self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        An empty body parses to ``None``.

        Raises:
            InvalidJSON: If the body is not valid UTF-8 JSON
        """
        if self._json is not _EMPTY:
            return self._json

        body_bytes = await self.body()
        if not body_bytes.strip():
            self._json = None
            return None

        try:
            self._json = stdlib_json.loads(body_bytes.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidJSON(f"Invalid UTF-8 in JSON payload: {e}")
        except stdlib_json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON: {e}")

        return self._json

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
