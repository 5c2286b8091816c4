"""
Response - HTTP response builder with ASGI sending.

Provides:
- bytes / str / JSON bodies with content-type detection
- Factory helpers (json, text, empty)
- ASGI 3 ``http.response.start`` / ``http.response.body`` sending
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "model_dump"):
        # pydantic models returned straight from a handler
        return o.model_dump(mode="json")
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


def dumps(obj: Any) -> bytes:
    """Compact JSON encoding used for every JSON body Perch produces."""
    return json.dumps(
        obj,
        default=_json_default_serializer,
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


class Response:
    """
    HTTP response.

    ``content`` may be bytes, str, or a JSON-serializable dict/list.
    Header names are stored lower-cased; a list value emits the header
    once per item.
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, Sequence, None] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, Union[str, Sequence[str]]]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self.encoding = encoding

        self._headers: Dict[str, Union[str, List[str]]] = {}
        if headers:
            for key, value in headers.items():
                if isinstance(value, (list, tuple)):
                    self._headers[key.lower()] = list(value)
                else:
                    self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers and content not in (b"", None):
            self._headers["content-type"] = self._detect_media_type(content)

        self._body = self._encode_body(content)

    @property
    def headers(self) -> Dict[str, Union[str, List[str]]]:
        return self._headers

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def media_type(self) -> Optional[str]:
        value = self._headers.get("content-type")
        return value.split(";")[0].strip() if isinstance(value, str) else None

    def json_body(self) -> Any:
        """Decode the body as JSON (tests and hooks inspect replies this way)."""
        return json.loads(self._body.decode(self.encoding)) if self._body else None

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, str):
            return "text/plain; charset=utf-8"
        if isinstance(content, bytes):
            return "application/octet-stream"
        return "application/json; charset=utf-8"

    def _encode_body(self, content: Any) -> bytes:
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.encoding)
        return dumps(content)

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """
        Create JSON response.

        Unlike passing a dict to the constructor, any value (``None``,
        numbers, strings) is JSON-encoded.
        """
        response = cls(
            status=status,
            headers=headers,
            media_type="application/json; charset=utf-8",
        )
        response._body = dumps(obj)
        return response

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        """Create plain text response."""
        return cls(
            content=content,
            status=status,
            media_type="text/plain; charset=utf-8",
            **kwargs
        )

    @classmethod
    def empty(cls, status: int = 204, **kwargs) -> "Response":
        return cls(b"", status=status, **kwargs)

    # ========================================================================
    # Headers
    # ========================================================================

    def set_header(self, name: str, value: str) -> None:
        """Set header, replacing any existing value."""
        self._headers[name.lower()] = value

    def add_header(self, name: str, value: str) -> None:
        """Append a header value, keeping existing ones."""
        key = name.lower()
        existing = self._headers.get(key)
        if existing is None:
            self._headers[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self._headers[key] = [existing, value]

    def _prepare_headers(self) -> List[tuple]:
        """Prepare headers for ASGI (list of byte tuples)."""
        headers_list = []
        for name, value in self._headers.items():
            name_bytes = name.encode("latin-1")
            if isinstance(value, list):
                for v in value:
                    headers_list.append((name_bytes, v.encode("latin-1")))
            else:
                headers_list.append((name_bytes, value.encode("latin-1")))
        return headers_list

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Send response via ASGI."""
        if "content-length" not in self._headers:
            self._headers["content-length"] = str(len(self._body))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self._body,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self.media_type} {len(self._body)}B>"


# ============================================================================
# Convenience Response Factories
# ============================================================================

def Unauthorized(message: str = "Unauthorized", **kwargs) -> Response:
    """401 Unauthorized response."""
    return Response.json({"error": message}, status=401, **kwargs)


def NotFound(message: str = "Endpoint not found", **kwargs) -> Response:
    """404 Not Found response."""
    return Response.json({"message": message}, status=404, **kwargs)


def InternalError(message: str = "Internal Server Error", **kwargs) -> Response:
    """500 Internal Server Error response."""
    return Response.json({"message": message}, status=500, **kwargs)
