"""
Introspection Builder - self-description of compiled routes.

Produces one IntrospectionObject per route with the fields each request
location expects, derived from the route's validation and binding schemas.
Paths are resolved with the same ``normalize_path`` the compiler uses, so
every ``path`` here equals a live route.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..validation import json_schema
from .compiler import normalize_path
from .metadata import MetadataRegistry, MethodDescriptor

LOCATIONS = ("headers", "query", "params", "body")

FIELD_TYPES = {"string", "number", "boolean", "array", "object"}


@dataclass(frozen=True)
class SchemaField:
    """One expected field: key, coarse JSON type, and its schema fragment."""
    key: str
    type: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key, "type": self.type, "value": self.value}


@dataclass(frozen=True)
class IntrospectionObject:
    name: str
    method: str
    path: str
    schema: Dict[str, List[SchemaField]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "method": self.method,
            "path": self.path,
            "schema": {
                location: [f.to_dict() for f in fields]
                for location, fields in self.schema.items()
            },
        }


def _encode(fragment: Any) -> str:
    return json.dumps(fragment, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def field_type(fragment: Dict[str, Any]) -> str:
    """
    Coarse JSON type of a schema fragment.

    ``integer`` counts as ``number``; enums of strings as ``string``;
    nullable unions use their non-null member; anything else is ``object``.
    """
    if "anyOf" in fragment:
        members = [m for m in fragment["anyOf"] if m.get("type") != "null"]
        if len(members) == 1:
            return field_type(members[0])
        return "object"

    kind = fragment.get("type")
    if isinstance(kind, list):
        kinds = [k for k in kind if k != "null"]
        kind = kinds[0] if len(kinds) == 1 else None

    if kind is None and "enum" in fragment:
        if all(isinstance(v, str) for v in fragment["enum"]):
            return "string"
    if kind == "integer":
        return "number"
    if kind in FIELD_TYPES:
        return kind
    return "object"


def map_schemas(entries: Sequence[Tuple[Optional[str], Any]]) -> List[SchemaField]:
    """
    Flatten the schemas collected for one location into fields.

    A lone object schema yields one field per property; otherwise each
    schema is a single field keyed by its binding name or ``"unknown"``.
    """
    documents = [(name, json_schema(schema)) for name, schema in entries]

    if len(documents) == 1:
        document = documents[0][1]
        properties = document.get("properties")
        if field_type(document) == "object" and properties:
            return [
                SchemaField(key=key, type=field_type(prop), value=_encode(prop))
                for key, prop in properties.items()
            ]

    return [
        SchemaField(key=name or "unknown", type=field_type(doc), value=_encode(doc))
        for name, doc in documents
    ]


def collect_schemas(method: MethodDescriptor) -> Dict[str, List[Tuple[Optional[str], Any]]]:
    """Schemas per location: method-level first, then bindings by index."""
    collected: Dict[str, List[Tuple[Optional[str], Any]]] = {loc: [] for loc in LOCATIONS}

    for location, schema in method.validation_schemas.items():
        collected[location].append((None, schema))
    for binding in method.ordered_bindings():
        if binding.schema is not None:
            collected[binding.source.location].append((binding.name, binding.schema))

    return {loc: entries for loc, entries in collected.items() if entries}


def build_introspection(
    registry: MetadataRegistry,
    base: str = "/",
    controllers: Optional[Sequence[type]] = None,
) -> List[IntrospectionObject]:
    """Describe every route of ``controllers`` (default: all registered)."""
    objects: List[IntrospectionObject] = []

    for controller in registry.resolve(controllers):
        for method in controller.methods.values():
            http_method = method.http_method.value
            path = normalize_path(base, controller.base_path, method.path)
            schema = {
                location: map_schemas(entries)
                for location, entries in collect_schemas(method).items()
            }
            objects.append(IntrospectionObject(
                name=f"{http_method} {path}",
                method=http_method,
                path=path,
                schema=schema,
            ))

    return objects


def to_json(objects: Sequence[IntrospectionObject]) -> str:
    """Deterministic serialization of the introspection document."""
    return json.dumps(
        [obj.to_dict() for obj in objects],
        separators=(",", ":"),
        ensure_ascii=False,
    )
