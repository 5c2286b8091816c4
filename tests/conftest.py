"""
Shared test fixtures and helpers for the Perch test suite.
"""

import pytest
from pydantic import BaseModel, EmailStr

from perch.controller.base import ExecutionContext, RequestCtx
from perch.controller.metadata import MetadataRegistry
from perch.request import Request


# ============================================================================
# Schemas
# ============================================================================


class UserIn(BaseModel):
    name: str
    email: EmailStr


class Paging(BaseModel):
    page: int = 1
    size: int = 20


# ============================================================================
# Request Helpers
# ============================================================================


def make_ctx(
    method: str = "GET",
    path: str = "/",
    *,
    params=None,
    headers=None,
    body=b"",
    json=None,
    env=None,
) -> RequestCtx:
    """Build a RequestCtx around a direct (non-ASGI) request."""
    request = Request.build(method, path, headers=headers, body=body, json=json)
    return RequestCtx(
        request=request,
        env=env or {},
        execution_ctx=ExecutionContext(),
        params=dict(params or {}),
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def registry():
    """A fresh registry, so controllers never leak between tests."""
    return MetadataRegistry()


@pytest.fixture
def call_log():
    """Append-only log for ordering and side-effect assertions."""
    return []
