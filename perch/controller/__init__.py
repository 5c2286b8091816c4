"""
Perch Controllers - declarative, class-based route handlers.

Provides:
- @controller and the route/parameter decorators
- MetadataRegistry, filled at class definition and frozen at build
- Parameter binder with pydantic validation
- Route compiler and introspection builder
"""

from .base import Controller, ExecutionContext, RequestCtx
from .binding import bind_arguments, create_validation_middleware, validate_request
from .compiler import CompiledRoute, RouteCompiler, compile_routes, normalize_path
from .decorators import (
    ALL,
    Body,
    DELETE,
    GET,
    Header,
    HeaderValue,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Param,
    ParamMarker,
    ParamValue,
    Query,
    QueryValue,
    bind,
    controller,
    route,
    status,
    use,
    validate,
)
from .introspection import IntrospectionObject, SchemaField, build_introspection, to_json
from .metadata import (
    ControllerDescriptor,
    HttpMethod,
    MetadataRegistry,
    MethodDescriptor,
    ParamBinding,
    ParamSource,
    ValidationSchemas,
    default_registry,
)

__all__ = [
    "Controller",
    "ExecutionContext",
    "RequestCtx",
    "bind_arguments",
    "create_validation_middleware",
    "validate_request",
    "CompiledRoute",
    "RouteCompiler",
    "compile_routes",
    "normalize_path",
    "ALL",
    "Body",
    "DELETE",
    "GET",
    "Header",
    "HeaderValue",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "Param",
    "ParamMarker",
    "ParamValue",
    "Query",
    "QueryValue",
    "bind",
    "controller",
    "route",
    "status",
    "use",
    "validate",
    "IntrospectionObject",
    "SchemaField",
    "build_introspection",
    "to_json",
    "ControllerDescriptor",
    "HttpMethod",
    "MetadataRegistry",
    "MethodDescriptor",
    "ParamBinding",
    "ParamSource",
    "ValidationSchemas",
    "default_registry",
]
