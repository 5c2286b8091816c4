"""
Schema validation backed by pydantic.

A *schema* is anything pydantic can build a ``TypeAdapter`` for: a
``BaseModel`` subclass, a builtin such as ``int``, or an ``Annotated`` type
carrying constraints. Validation runs in pydantic's default (lax) mode, so
strings from paths, query strings and headers coerce to numbers and booleans.

Two operations are exposed:

- ``validate(schema, raw)``  -> coerced value, or ``SchemaValidationError``
- ``json_schema(schema)``    -> JSON schema dict with ``$ref`` inlined
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError


class SchemaValidationError(Exception):
    """Raised when a raw value does not satisfy its schema."""

    def __init__(self, issues: List[Dict[str, Any]]):
        self.issues = issues
        super().__init__("; ".join(f"{i['path'] or '<root>'}: {i['message']}" for i in issues))


# id(schema) -> (schema, adapter). The schema is kept so its id stays unique.
_ADAPTERS: Dict[int, tuple] = {}


def adapter_for(schema: Any) -> TypeAdapter:
    """Return a cached ``TypeAdapter`` for ``schema``."""
    cached = _ADAPTERS.get(id(schema))
    if cached is not None and cached[0] is schema:
        return cached[1]
    adapter = TypeAdapter(schema)
    _ADAPTERS[id(schema)] = (schema, adapter)
    return adapter


def issues_from(exc: ValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into ``{path, message, type}`` issues."""
    return [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors(include_url=False)
    ]


def validate(schema: Any, raw: Any) -> Any:
    """
    Validate ``raw`` against ``schema``.

    Returns:
        The parsed/coerced value

    Raises:
        SchemaValidationError: With the validator's issues
    """
    try:
        return adapter_for(schema).validate_python(raw)
    except ValidationError as exc:
        raise SchemaValidationError(issues_from(exc)) from exc


def json_schema(schema: Any) -> Dict[str, Any]:
    """
    JSON schema for ``schema`` with local ``$ref`` pointers inlined.

    Returns a fresh dict on every call; callers may mutate it.
    """
    document = adapter_for(schema).json_schema()
    defs = document.pop("$defs", {})
    return _inline_refs(document, defs, ())


def _inline_refs(node: Any, defs: Dict[str, Any], seen: tuple) -> Any:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            name = ref[len("#/$defs/"):]
            if name in seen or name not in defs:
                # Recursive model: stop expanding
                return {"type": "object", "title": name}
            resolved = copy.deepcopy(defs[name])
            extra = {k: v for k, v in node.items() if k != "$ref"}
            resolved.update(extra)
            return _inline_refs(resolved, defs, seen + (name,))
        return {k: _inline_refs(v, defs, seen) for k, v in node.items()}
    if isinstance(node, list):
        return [_inline_refs(v, defs, seen) for v in node]
    return node
