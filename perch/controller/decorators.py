"""
Controller Decorators

Declarative markers for controller classes and their methods.

Method decorators only stash metadata on the function; nothing is
registered until the ``@controller`` class decorator runs, which walks the
class body in definition order and writes everything into a
``MetadataRegistry``. Marker order on a method therefore does not matter.

Parameter markers are used as parameter defaults:

    @controller("/api/users")
    class UsersController:
        @GET("/:id")
        async def get(self, ctx, id=ParamValue("id", int)):
            return {"id": id}

        @POST()
        @status(201)
        async def create(self, ctx, user=Body(UserIn)):
            ...

Argument positions exclude ``self``; position 0 is always the request
context. ``@bind(arg_index, marker)`` declares the same thing explicitly.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from ..faults import InvalidBindingFault
from .metadata import (
    HttpMethod,
    MetadataRegistry,
    ParamBinding,
    ParamSource,
    ValidationSchemas,
    default_registry,
)


F = TypeVar("F", bound=Callable[..., Any])

# Function attributes used to carry markers until @controller reads them
ROUTE_ATTR = "__perch_route__"
MIDDLEWARE_ATTR = "__perch_middlewares__"
STATUS_ATTR = "__perch_status__"
VALIDATION_ATTR = "__perch_validation__"
BINDINGS_ATTR = "__perch_bindings__"


# ============================================================================
# Parameter Markers
# ============================================================================

class ParamMarker:
    """
    Parameter marker placed as a handler parameter default.

    Attributes:
        source: Where the value is read from
        name: Key for single-value sources
        schema: Optional validator schema
    """

    __slots__ = ("source", "name", "schema")

    def __init__(self, source: ParamSource, name: Optional[str] = None, schema: Any = None):
        self.source = source
        self.name = name
        self.schema = schema

    def to_binding(self, arg_index: int) -> ParamBinding:
        return ParamBinding(
            arg_index=arg_index,
            source=self.source,
            name=self.name,
            schema=self.schema,
        )

    def __repr__(self) -> str:
        name = f" {self.name!r}" if self.name else ""
        return f"<{self.source.value}{name}>"


def Body(schema: Any = None) -> ParamMarker:
    """Bind the parsed JSON body."""
    return ParamMarker(ParamSource.BODY, schema=schema)


def Query(schema: Any = None) -> ParamMarker:
    """Bind all query parameters as a dict."""
    return ParamMarker(ParamSource.QUERY, schema=schema)


def Param(schema: Any = None) -> ParamMarker:
    """Bind all path parameters as a dict."""
    return ParamMarker(ParamSource.PARAM, schema=schema)


def Header(schema: Any = None) -> ParamMarker:
    """Bind all headers as a dict with lower-cased names."""
    return ParamMarker(ParamSource.HEADER, schema=schema)


def QueryValue(name: str, schema: Any = None) -> ParamMarker:
    """Bind one query parameter."""
    return ParamMarker(ParamSource.QUERY_SINGLE, name=name, schema=schema)


def ParamValue(name: str, schema: Any = None) -> ParamMarker:
    """Bind one path parameter."""
    return ParamMarker(ParamSource.PARAM_SINGLE, name=name, schema=schema)


def HeaderValue(name: str, schema: Any = None) -> ParamMarker:
    """Bind one header (case-insensitive)."""
    return ParamMarker(ParamSource.HEADER_SINGLE, name=name.lower(), schema=schema)


# ============================================================================
# Method Decorators
# ============================================================================

def route(method: str, path: str = "") -> Callable[[F], F]:
    """
    Generic route decorator.

    Args:
        method: HTTP method, or "ALL" to match every method
        path: Path relative to the controller base

    Example:
        @route("GET", "/users")
        async def get_users(self, ctx):
            ...
    """
    http_method = HttpMethod(method.upper())

    def decorator(func: F) -> F:
        existing = getattr(func, ROUTE_ATTR, None)
        if existing is not None:
            raise TypeError(
                f"{func.__qualname__} already routes {existing[0].value} "
                f"'{existing[1]}'; one route per method"
            )
        setattr(func, ROUTE_ATTR, (http_method, path or ""))
        return func

    return decorator


def GET(path: str = "") -> Callable[[F], F]:
    return route("GET", path)


def POST(path: str = "") -> Callable[[F], F]:
    return route("POST", path)


def PUT(path: str = "") -> Callable[[F], F]:
    return route("PUT", path)


def PATCH(path: str = "") -> Callable[[F], F]:
    return route("PATCH", path)


def DELETE(path: str = "") -> Callable[[F], F]:
    return route("DELETE", path)


def OPTIONS(path: str = "") -> Callable[[F], F]:
    return route("OPTIONS", path)


def ALL(path: str = "") -> Callable[[F], F]:
    """Route matching every HTTP method."""
    return route("ALL", path)


def use(*middlewares: Any) -> Callable[[F], F]:
    """
    Attach route-level middlewares.

    Stacked ``@use`` decorators run top to bottom, like the middlewares
    listed inside one call.
    """
    def decorator(func: F) -> F:
        # Decorators apply bottom-up, so prepend to keep reading order
        current = getattr(func, MIDDLEWARE_ATTR, ())
        setattr(func, MIDDLEWARE_ATTR, tuple(middlewares) + tuple(current))
        return func

    return decorator


def status(code: int) -> Callable[[F], F]:
    """Default status for non-Response handler results."""
    def decorator(func: F) -> F:
        setattr(func, STATUS_ATTR, int(code))
        return func

    return decorator


def validate(*, body: Any = None, query: Any = None, headers: Any = None) -> Callable[[F], F]:
    """
    Method-level request validation.

    Validated values land in ``ctx.valid[location]``. Validation runs before
    any parameter binding, in the order headers, query, body.
    """
    def decorator(func: F) -> F:
        schemas: List[ValidationSchemas] = list(getattr(func, VALIDATION_ATTR, ()))
        # Applied bottom-up; @controller reverses back to reading order
        schemas.append(ValidationSchemas(body=body, query=query, headers=headers))
        setattr(func, VALIDATION_ATTR, tuple(schemas))
        return func

    return decorator


def bind(arg_index: int, marker: ParamMarker) -> Callable[[F], F]:
    """Explicitly bind handler argument ``arg_index`` (0 is the context)."""
    def decorator(func: F) -> F:
        bindings: List[ParamBinding] = list(getattr(func, BINDINGS_ATTR, ()))
        bindings.append(marker.to_binding(arg_index))
        setattr(func, BINDINGS_ATTR, tuple(bindings))
        return func

    return decorator


# ============================================================================
# Controller Decorator
# ============================================================================

def controller(
    base_path: str = "",
    middlewares: Sequence[Any] = (),
    *,
    registry: Optional[MetadataRegistry] = None,
) -> Callable[[type], type]:
    """
    Class decorator registering a controller and all its routed methods.

    Args:
        base_path: URL prefix for every route of the class
        middlewares: Controller-level middlewares, outermost first
        registry: Target registry (defaults to the process-wide one)
    """
    target = registry if registry is not None else default_registry

    def decorator(cls: type) -> type:
        # All bindings are checked before the class is registered
        routed = []
        for name, member in cls.__dict__.items():
            func = _unwrap(member)
            if func is None or not hasattr(func, ROUTE_ATTR):
                continue
            routed.append((name, func, collect_bindings(func, f"{cls.__qualname__}.{name}")))

        target.register_controller(cls, base_path, middlewares)

        for name, func, bindings in routed:
            http_method, path = getattr(func, ROUTE_ATTR)
            target.register_method(
                cls,
                name,
                http_method,
                path,
                middlewares=getattr(func, MIDDLEWARE_ATTR, ()),
                status_code=getattr(func, STATUS_ATTR, None),
            )

            for schemas in reversed(getattr(func, VALIDATION_ATTR, ())):
                target.register_validation(cls, name, schemas)

            for binding in bindings:
                target.register_param_binding(cls, name, binding)

        cls.__perch_registry__ = target
        return cls

    return decorator


def _unwrap(member: Any) -> Optional[Callable]:
    if isinstance(member, (staticmethod, classmethod)):
        return None
    return member if inspect.isfunction(member) else None


def collect_bindings(func: Callable, qualname: str) -> List[ParamBinding]:
    """
    Gather a handler's bindings: parameter-default markers first, then the
    explicit ``@bind`` declarations in reading order (the lowest wins).

    Raises:
        InvalidBindingFault: On out-of-range indices, a binding at index 0,
            or a single-value marker without a name
    """
    params = list(inspect.signature(func).parameters.values())[1:]  # drop self
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)

    bindings: Dict[int, ParamBinding] = {}
    for index, param in enumerate(positional):
        if isinstance(param.default, ParamMarker):
            bindings[index] = param.default.to_binding(index)

    for binding in reversed(getattr(func, BINDINGS_ATTR, ())):
        bindings[binding.arg_index] = binding

    for index, binding in bindings.items():
        if index == 0:
            raise InvalidBindingFault(qualname, "argument 0 is reserved for the request context")
        if index < 0 or (index >= len(positional) and not variadic):
            raise InvalidBindingFault(
                qualname,
                f"argument index {index} exceeds handler arity {len(positional)}",
            )
        if binding.source.is_single and not binding.name:
            raise InvalidBindingFault(qualname, f"{binding.source.value} binding needs a name")

    return [bindings[i] for i in sorted(bindings)]
