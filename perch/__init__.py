"""
Perch - declarative controllers compiled into an ASGI router

Complete integration of:
- Controllers: class and method decorators collected into a metadata registry
- Binding: per-parameter extraction with pydantic validation
- Compiler: path resolution, middleware chains, conflict detection
- Introspection: a JSON description of every route and its schemas
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core Framework
# ============================================================================

from .config import AppConfig, ConfigLoader
from .request import Request
from .response import Response
from .router import Router
from .server import PerchApp, build_app

from ._datastructures import Headers, MultiDict

# ============================================================================
# Controllers
# ============================================================================

from .controller import (
    ALL,
    Body,
    Controller,
    DELETE,
    ExecutionContext,
    GET,
    Header,
    HeaderValue,
    MetadataRegistry,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Param,
    ParamValue,
    Query,
    QueryValue,
    RequestCtx,
    bind,
    build_introspection,
    controller,
    default_registry,
    route,
    status,
    use,
    validate,
)

# ============================================================================
# Middleware & Auth
# ============================================================================

from .middleware import LoggingMiddleware, TopMiddleware
from .auth import create_bearer_auth_middleware

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ValidationFault,
    RouteConflictFault,
)

__all__ = [
    "__version__",
    "AppConfig",
    "ConfigLoader",
    "Request",
    "Response",
    "Router",
    "PerchApp",
    "build_app",
    "Headers",
    "MultiDict",
    "ALL",
    "Body",
    "Controller",
    "DELETE",
    "ExecutionContext",
    "GET",
    "Header",
    "HeaderValue",
    "MetadataRegistry",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "Param",
    "ParamValue",
    "Query",
    "QueryValue",
    "RequestCtx",
    "bind",
    "build_introspection",
    "controller",
    "default_registry",
    "route",
    "status",
    "use",
    "validate",
    "LoggingMiddleware",
    "TopMiddleware",
    "create_bearer_auth_middleware",
    "Fault",
    "FaultDomain",
    "Severity",
    "ValidationFault",
    "RouteConflictFault",
]
