"""
Schema validation (validation.py)

Tests the pydantic-backed validate() and json_schema().
"""

from typing import List, Optional

import pytest
from pydantic import BaseModel

from perch.validation import SchemaValidationError, json_schema, validate
from tests.conftest import UserIn


class Address(BaseModel):
    city: str


class Person(BaseModel):
    name: str
    address: Address


class Node(BaseModel):
    value: int
    children: List["Node"] = []


class TestValidate:

    def test_coerces_strings(self):
        assert validate(int, "42") == 42
        assert validate(bool, "true") is True

    def test_model(self):
        user = validate(UserIn, {"name": "Ada", "email": "ada@example.com"})
        assert user.name == "Ada"

    def test_issues(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate(UserIn, {"name": "Ada", "email": "not-an-email"})

        issues = exc_info.value.issues
        assert len(issues) == 1
        assert issues[0]["path"] == "email"
        assert issues[0]["type"] == "value_error"
        assert issues[0]["message"]

    def test_root_issue_path(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate(int, "abc")
        assert exc_info.value.issues[0]["path"] == ""
        assert exc_info.value.issues[0]["type"] == "int_parsing"

    def test_optional_accepts_none(self):
        assert validate(Optional[int], None) is None


class TestJsonSchema:

    def test_model_properties(self):
        schema = json_schema(UserIn)
        assert schema["type"] == "object"
        assert schema["properties"]["email"] == {
            "format": "email", "title": "Email", "type": "string",
        }

    def test_refs_inlined(self):
        schema = json_schema(Person)
        assert "$defs" not in schema
        assert schema["properties"]["address"]["type"] == "object"
        assert schema["properties"]["address"]["properties"]["city"]["type"] == "string"

    def test_recursive_refs_stop(self):
        schema = json_schema(Node)
        assert schema["type"] == "object"
        assert schema["properties"]["children"]["items"] == {"type": "object", "title": "Node"}

    def test_fresh_copy(self):
        first = json_schema(UserIn)
        first["properties"].clear()
        assert json_schema(UserIn)["properties"]
