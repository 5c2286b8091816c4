"""
Router - the path+method dispatch primitive the route compiler registers into.

Path syntax:
- ``/users``          static segment
- ``/users/:id``      named parameter (one segment)
- ``/files/*``        wildcard; a trailing ``/*`` also matches ``/files``

Precedence is registration order: the first registered route whose method
and pattern match wins. Static routes are indexed in a dict per method so
the common case is O(1); dynamic routes are only scanned when they were
registered before the static hit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

from .faults import PatternInvalidFault


ANY_METHOD = "ALL"

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PARAM_SEGMENT = re.compile(r"(?<=/):[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful route match."""
    handler: Any
    params: Dict[str, str]
    method: str
    pattern: str


@dataclass(frozen=True)
class _Entry:
    index: int
    method: str
    pattern: str
    regex: Pattern[str]
    handler: Any


def is_static(pattern: str) -> bool:
    return ":" not in pattern and "*" not in pattern


def compile_pattern(pattern: str) -> Tuple[Pattern[str], List[str]]:
    """
    Compile a route pattern into an anchored regex.

    Returns:
        (compiled regex, parameter names in order)

    Raises:
        PatternInvalidFault: On malformed or duplicate parameter names
    """
    if not pattern.startswith("/"):
        raise PatternInvalidFault(pattern, "must start with '/'")

    segments = pattern.strip("/").split("/") if pattern != "/" else []
    names: List[str] = []
    parts: List[str] = []

    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "*":
            # Trailing wildcard also matches the bare prefix
            parts.append("(?:/.*)?" if last else "/[^/]*")
        elif segment.startswith(":"):
            name = segment[1:]
            if not _PARAM_NAME.match(name):
                raise PatternInvalidFault(pattern, f"invalid parameter name '{name}'")
            if name in names:
                raise PatternInvalidFault(pattern, f"duplicate parameter '{name}'")
            names.append(name)
            parts.append(f"/(?P<{name}>[^/]+)")
        elif "*" in segment:
            parts.append("/" + ".*".join(re.escape(p) for p in segment.split("*")))
        else:
            parts.append("/" + re.escape(segment))

    body = "".join(parts) or "/"
    if body.startswith("(?:/.*)?"):
        # Pattern "/*" matches everything including "/"
        body = "/.*"
    return re.compile(f"^{body}$"), names


def pattern_key(pattern: str) -> str:
    """
    Pattern with parameter names erased.

    Two patterns with the same key match exactly the same paths, so
    ``/users/:id`` and ``/users/:slug`` share the key ``/users/:``.
    """
    return _PARAM_SEGMENT.sub(":", pattern)


def path_matches(pattern: str, path: str) -> bool:
    """Check whether ``path`` matches ``pattern`` (used for middleware globs)."""
    regex, _ = compile_pattern(pattern)
    return regex.match(path) is not None


class Router:
    """
    Method + path router.

    Two-tier lookup:
    1. Static route hash map per method
    2. Ordered regex scan for parameterized and wildcard routes
    """

    def __init__(self):
        self._entries: List[_Entry] = []
        self._static: Dict[str, Dict[str, _Entry]] = {}
        self._dynamic: List[_Entry] = []

    def add(self, method: str, pattern: str, handler: Any) -> None:
        """Register ``handler`` for ``method`` and ``pattern``."""
        method = method.upper()
        regex, _ = compile_pattern(pattern)
        entry = _Entry(
            index=len(self._entries),
            method=method,
            pattern=pattern,
            regex=regex,
            handler=handler,
        )
        self._entries.append(entry)

        if is_static(pattern):
            # First registration wins; later duplicates stay reachable only
            # through routes() for diagnostics.
            self._static.setdefault(method, {}).setdefault(pattern, entry)
        else:
            self._dynamic.append(entry)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """Find the first registered route matching ``method`` and ``path``."""
        method = method.upper()

        best: Optional[_Entry] = None
        for candidate_method in (method, ANY_METHOD):
            hit = self._static.get(candidate_method, {}).get(path)
            if hit is not None and (best is None or hit.index < best.index):
                best = hit

        for entry in self._dynamic:
            if best is not None and entry.index > best.index:
                break
            if entry.method != method and entry.method != ANY_METHOD:
                continue
            m = entry.regex.match(path)
            if m is not None:
                return RouteMatch(
                    handler=entry.handler,
                    params={k: v for k, v in m.groupdict().items() if v is not None},
                    method=entry.method,
                    pattern=entry.pattern,
                )

        if best is None:
            return None
        return RouteMatch(handler=best.handler, params={}, method=best.method, pattern=best.pattern)

    def routes(self) -> List[Tuple[str, str]]:
        """All registrations as (method, pattern), in registration order."""
        return [(e.method, e.pattern) for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
