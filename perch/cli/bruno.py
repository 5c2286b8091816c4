"""
Bruno collection generator.

Turns an introspection document (fetched from a running app) into one
``.bru`` request file per route, with dummy values for every declared
header, query, path and body field.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger("perch.cli.bruno")

DUMMY_VALUES: Dict[str, Any] = {
    "string": "lorem ipsum",
    "number": 248,
    "boolean": True,
    "array": [1, 2, 3],
    "object": {},
}


def generate_dummy_value(kind: str) -> Any:
    """Placeholder value for a field type; unknown types get ``{}``."""
    return DUMMY_VALUES.get(kind, {})


def _literal(kind: str) -> str:
    return json.dumps(generate_dummy_value(kind))


@dataclass
class BrunoField:
    key: str
    type: str
    value: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrunoField":
        return cls(key=data["key"], type=data.get("type", "object"), value=data.get("value", ""))


@dataclass
class BrunoRequest:
    """One Bruno request file."""

    name: str
    seq: int
    base_url: str
    method: str
    url: str
    type: str = "http"
    headers: List[BrunoField] = field(default_factory=list)
    query: List[BrunoField] = field(default_factory=list)
    params: List[BrunoField] = field(default_factory=list)
    body: List[BrunoField] = field(default_factory=list)

    @classmethod
    def from_introspection(cls, obj: Dict[str, Any], seq: int, base_url: str) -> "BrunoRequest":
        schema = obj.get("schema") or {}

        def fields(location: str) -> List[BrunoField]:
            return [BrunoField.from_dict(f) for f in schema.get(location) or []]

        return cls(
            name=obj["name"],
            seq=seq,
            base_url=base_url.rstrip("/"),
            method=obj["method"],
            url=obj["path"],
            headers=fields("headers"),
            query=fields("query"),
            params=fields("params"),
            body=fields("body"),
        )

    @property
    def filename(self) -> str:
        return f"{self.name.replace('/', '_')}.bru"

    def meta_block(self) -> str:
        return (
            "meta {\n"
            f'  name: "{self.name}"\n'
            f'  type: "{self.type}"\n'
            f"  seq: {self.seq}\n"
            "}\n"
        )

    def request_url(self) -> str:
        url = f"{self.base_url}{self.url}"
        if self.query:
            url += "?" + "&".join(
                f"{f.key}={quote(_literal(f.type), safe='')}" for f in self.query
            )
        return url

    def request_block(self) -> str:
        # Bruno has no ALL verb; such routes are exercised with GET
        method = "get" if self.method == "ALL" else self.method.lower()
        return (
            f"{method} {{\n"
            f"  url: {self.request_url()}\n"
            "  body: json\n"
            "  auth: inherit\n"
            "}\n"
        )

    @staticmethod
    def _fields_block(title: str, fields: List[BrunoField]) -> str:
        if not fields:
            return ""
        lines = "".join(f"  {f.key}: {_literal(f.type)}\n" for f in fields)
        return f"{title} {{\n{lines}}}\n"

    def body_block(self) -> str:
        if not self.body:
            return ""
        document = {f.key: generate_dummy_value(f.type) for f in self.body}
        text = json.dumps(document, indent=2)
        indented = "\n".join(f"  {line}" for line in text.splitlines())
        return f"body:json {{\n{indented}\n}}\n"

    def render(self) -> str:
        blocks = [
            self.meta_block(),
            self.request_block(),
            self._fields_block("headers", self.headers),
            self._fields_block("params:query", self.query),
            self._fields_block("params:path", self.params),
            self.body_block(),
        ]
        return "\n".join(block for block in blocks if block)


def fetch_introspection(
    url: str,
    *,
    timeout: float = 10.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[Dict[str, Any]]:
    """
    GET the introspection document.

    Raises:
        httpx.HTTPError: On connection failures and non-2xx responses
        ValueError: If the body is not a JSON array
    """
    with httpx.Client(timeout=timeout, transport=transport) as client:
        response = client.get(url)
        response.raise_for_status()
        document = response.json()

    if not isinstance(document, list):
        raise ValueError(f"Expected a JSON array from {url}, got {type(document).__name__}")
    return document


def write_collection(
    objects: List[Dict[str, Any]],
    base_url: str,
    out_dir: str,
) -> List[Path]:
    """Write one .bru file per introspection object; returns the paths."""
    target = Path(out_dir)
    target.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for seq, obj in enumerate(objects, start=1):
        request = BrunoRequest.from_introspection(obj, seq, base_url)
        path = target / request.filename
        path.write_text(request.render(), encoding="utf-8")
        logger.debug("Wrote %s", path)
        written.append(path)
    return written
