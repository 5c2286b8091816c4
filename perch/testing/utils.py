"""
Perch Testing - ASGI helpers.
"""

from typing import List, Optional, Tuple, Union

HeaderPairs = List[Tuple[Union[str, bytes], Union[str, bytes]]]


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[HeaderPairs] = None,
    scheme: str = "http",
    scope_type: str = "http",
) -> dict:
    """
    Build a minimal ASGI HTTP scope for testing.

    Args:
        method: HTTP method.
        path: Request path.
        query_string: Raw query string (without ``?``).
        headers: List of ``(name, value)`` tuples (strings or bytes).
        scheme: URL scheme.
        scope_type: ASGI scope type.
    """
    raw_headers: List[Tuple[bytes, bytes]] = []
    for name, value in headers or []:
        raw_headers.append((
            name.encode("latin-1") if isinstance(name, str) else name,
            value.encode("latin-1") if isinstance(value, str) else value,
        ))

    return {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": scheme,
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_test_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """
    Create an ASGI receive callable.

    Args:
        body: Complete request body bytes.
        chunks: Optional list of body chunks (overrides *body*).
    """
    parts = chunks if chunks else [body]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(parts) - 1}
        for i, chunk in enumerate(parts)
    ]
    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive
