"""
Introspection Builder (controller/introspection.py)
"""

import json
from enum import Enum
from typing import List, Optional

import pytest

from perch.controller.compiler import RouteCompiler
from perch.controller.decorators import (
    ALL, Body, GET, HeaderValue, POST, ParamValue, QueryValue, controller, validate,
)
from perch.controller.introspection import build_introspection, field_type, map_schemas, to_json
from tests.conftest import Paging, UserIn


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


@pytest.fixture
def users_controller(registry):
    @controller("/users", registry=registry)
    class Users:
        @GET()
        @validate(query=Paging)
        async def list(self, ctx):
            return []

        @GET("/:id")
        async def get(self, ctx, id=ParamValue("id", int), token=HeaderValue("X-Token", str)):
            return {"id": id}

        @POST()
        async def create(self, ctx, user=Body(UserIn)):
            return user

        @ALL("/ping")
        async def ping(self, ctx):
            return "pong"

    return Users


# ============================================================================
# Document
# ============================================================================

class TestBuildIntrospection:

    def test_paths_match_compiled_routes(self, registry, users_controller):
        objects = build_introspection(registry, "/api", [users_controller])
        routes = RouteCompiler("/api").compile(registry, [users_controller])

        assert [(o.method, o.path) for o in objects] == [
            (r.http_method, r.full_path) for r in routes
        ]
        assert objects[1].name == "GET /api/users/:id"

    def test_whole_schema_flattened(self, registry, users_controller):
        objects = build_introspection(registry, "/", [users_controller])
        create = objects[2].to_dict()

        assert list(create["schema"]) == ["body"]
        fields = {f["key"]: f for f in create["schema"]["body"]}
        assert fields["name"]["type"] == "string"
        assert fields["email"]["type"] == "string"
        assert json.loads(fields["email"]["value"])["format"] == "email"

    def test_single_bindings_keyed_by_name(self, registry, users_controller):
        get = build_introspection(registry, "/", [users_controller])[1].to_dict()

        assert get["schema"]["params"] == [
            {"key": "id", "type": "number", "value": '{"type":"integer"}'},
        ]
        assert get["schema"]["headers"][0]["key"] == "x-token"

    def test_query_defaults_kept(self, registry, users_controller):
        listing = build_introspection(registry, "/", [users_controller])[0].to_dict()

        fields = {f["key"]: json.loads(f["value"]) for f in listing["schema"]["query"]}
        assert fields["page"]["default"] == 1
        assert fields["size"]["type"] == "integer"

    def test_route_without_schemas(self, registry, users_controller):
        ping = build_introspection(registry, "/", [users_controller])[3].to_dict()
        assert ping == {"name": "ALL /users/ping", "method": "ALL", "path": "/users/ping", "schema": {}}

    def test_serialization_is_stable(self, registry, users_controller):
        first = to_json(build_introspection(registry, "/", [users_controller]))
        second = to_json(build_introspection(registry, "/", [users_controller]))

        assert first == second
        assert isinstance(json.loads(first), list)


# ============================================================================
# Field mapping
# ============================================================================

class TestFieldMapping:

    @pytest.mark.parametrize("fragment,expected", [
        ({"type": "string"}, "string"),
        ({"type": "integer"}, "number"),
        ({"type": "number"}, "number"),
        ({"type": "boolean"}, "boolean"),
        ({"type": "array", "items": {}}, "array"),
        ({"type": "object"}, "object"),
        ({"anyOf": [{"type": "string"}, {"type": "null"}]}, "string"),
        ({"anyOf": [{"type": "string"}, {"type": "integer"}]}, "object"),
        ({"enum": ["a", "b"]}, "string"),
        ({}, "object"),
    ])
    def test_field_type(self, fragment, expected):
        assert field_type(fragment) == expected

    def test_scalar_schema_without_name(self):
        fields = map_schemas([(None, int)])
        assert [(f.key, f.type) for f in fields] == [("unknown", "number")]

    def test_multiple_schemas_not_flattened(self):
        fields = map_schemas([("page", int), ("tags", List[str])])
        assert [(f.key, f.type) for f in fields] == [("page", "number"), ("tags", "array")]

    def test_optional_and_enum_properties(self):
        from pydantic import BaseModel

        class Filter(BaseModel):
            role: Role
            note: Optional[str] = None

        fields = {f.key: f.type for f in map_schemas([(None, Filter)])}
        assert fields == {"role": "string", "note": "string"}
