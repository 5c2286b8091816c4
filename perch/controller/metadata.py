"""
Controller Metadata Registry

Process-wide store of the declarative markers collected when controller
classes are defined. Nothing in here executes request logic: the registry is
filled during application wiring, frozen by ``build_app()``, and read by the
route compiler and the introspection builder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..faults import (
    ControllerNotRegisteredFault,
    DuplicateRegistrationFault,
    MethodNotRegisteredFault,
    RegistryFrozenFault,
)

logger = logging.getLogger("perch.controller.metadata")


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    ALL = "ALL"


class ParamSource(str, Enum):
    """Where a bound handler argument comes from."""
    BODY = "body"
    QUERY = "query"
    PARAM = "param"
    HEADER = "header"
    QUERY_SINGLE = "query_single"
    PARAM_SINGLE = "param_single"
    HEADER_SINGLE = "header_single"

    @property
    def is_single(self) -> bool:
        return self in (
            ParamSource.QUERY_SINGLE,
            ParamSource.PARAM_SINGLE,
            ParamSource.HEADER_SINGLE,
        )

    @property
    def location(self) -> str:
        """Request location name used in errors and introspection."""
        return _LOCATIONS[self]


_LOCATIONS = {
    ParamSource.BODY: "body",
    ParamSource.QUERY: "query",
    ParamSource.QUERY_SINGLE: "query",
    ParamSource.PARAM: "params",
    ParamSource.PARAM_SINGLE: "params",
    ParamSource.HEADER: "headers",
    ParamSource.HEADER_SINGLE: "headers",
}


@dataclass(frozen=True)
class ParamBinding:
    """
    Rule mapping one handler argument to a request-derived value.

    Attributes:
        arg_index: Handler argument position (0 is the request context)
        source: Where the raw value is read from
        name: Key for single-value sources
        schema: Optional validator schema
    """
    arg_index: int
    source: ParamSource
    name: Optional[str] = None
    schema: Any = None


@dataclass(frozen=True)
class ValidationSchemas:
    """Method-level schemas validated before any binding runs."""
    body: Any = None
    query: Any = None
    headers: Any = None

    def items(self) -> List[Tuple[str, Any]]:
        """Declared (location, schema) pairs in validation order."""
        pairs = [("headers", self.headers), ("query", self.query), ("body", self.body)]
        return [(location, schema) for location, schema in pairs if schema is not None]

    def get(self, location: str) -> Any:
        return getattr(self, location, None)

    def __bool__(self) -> bool:
        return bool(self.items())


@dataclass
class MethodDescriptor:
    """
    Metadata for a single route (controller method).

    Attributes:
        name: Method name on the controller
        http_method: GET, POST, etc.
        path: Path relative to the controller base (may be empty)
        middlewares: Route-level middlewares, in declaration order
        status_code: Default status when the handler sets none
        validation_schemas: Method-level request schemas
        param_bindings: arg_index -> binding
    """
    name: str
    http_method: HttpMethod
    path: str = ""
    middlewares: Tuple[Any, ...] = ()
    status_code: Optional[int] = None
    validation_schemas: ValidationSchemas = field(default_factory=ValidationSchemas)
    param_bindings: Dict[int, ParamBinding] = field(default_factory=dict)

    def ordered_bindings(self) -> List[ParamBinding]:
        """Bindings in ascending argument order."""
        return [self.param_bindings[i] for i in sorted(self.param_bindings)]


@dataclass
class ControllerDescriptor:
    """
    Complete metadata for a controller class.

    Attributes:
        controller_class: The decorated class
        base_path: URL prefix for all routes
        middlewares: Controller-level middlewares, in declaration order
        methods: Method name -> descriptor, in registration order
    """
    controller_class: type
    base_path: str = ""
    middlewares: Tuple[Any, ...] = ()
    methods: Dict[str, MethodDescriptor] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.controller_class.__name__


class MetadataRegistry:
    """
    Registry of controller and method descriptors.

    Registration order is significant: controllers and their methods are
    compiled and introspected in the order they were registered.
    """

    def __init__(self):
        self._controllers: Dict[type, ControllerDescriptor] = {}
        self._frozen = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_controller(
        self,
        cls: type,
        base_path: str = "",
        middlewares: Sequence[Any] = (),
    ) -> ControllerDescriptor:
        """
        Register a controller class.

        Raises:
            DuplicateRegistrationFault: If ``cls`` is already registered
            RegistryFrozenFault: After ``freeze()``
        """
        self._check_mutable(cls)
        if cls in self._controllers:
            raise DuplicateRegistrationFault(cls.__qualname__)

        descriptor = ControllerDescriptor(
            controller_class=cls,
            base_path=base_path or "",
            middlewares=tuple(middlewares),
        )
        self._controllers[cls] = descriptor
        logger.debug("Registered controller %s at '%s'", cls.__qualname__, base_path)
        return descriptor

    def register_method(
        self,
        cls: type,
        method_name: str,
        http_method: HttpMethod,
        path: str = "",
        middlewares: Sequence[Any] = (),
        status_code: Optional[int] = None,
    ) -> MethodDescriptor:
        """Append a route method to a registered controller."""
        controller = self._get_mutable(cls)
        descriptor = MethodDescriptor(
            name=method_name,
            http_method=HttpMethod(http_method),
            path=path or "",
            middlewares=tuple(middlewares),
            status_code=status_code,
        )
        controller.methods[method_name] = descriptor
        return descriptor

    def register_validation(
        self,
        cls: type,
        method_name: str,
        schemas: ValidationSchemas,
    ) -> None:
        """Merge method-level schemas; a later schema for a location wins."""
        method = self._get_method(cls, method_name)
        merged = {
            location: schema
            for location, schema in (
                ("body", schemas.body),
                ("query", schemas.query),
                ("headers", schemas.headers),
            )
            if schema is not None
        }
        method.validation_schemas = replace(method.validation_schemas, **merged)

    def register_param_binding(
        self,
        cls: type,
        method_name: str,
        binding: ParamBinding,
    ) -> None:
        """Add a binding; a later binding for the same arg_index wins."""
        method = self._get_method(cls, method_name)
        method.param_bindings[binding.arg_index] = binding

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def controllers(self) -> List[ControllerDescriptor]:
        return list(self._controllers.values())

    def get(self, cls: type) -> Optional[ControllerDescriptor]:
        return self._controllers.get(cls)

    def resolve(self, controllers: Optional[Sequence[type]] = None) -> List[ControllerDescriptor]:
        """
        Descriptors for ``controllers`` in the given order (default: all,
        in registration order).

        Raises:
            ControllerNotRegisteredFault: For a class never registered here
        """
        if controllers is None:
            return self.controllers()
        resolved = []
        for cls in controllers:
            descriptor = self._controllers.get(cls)
            if descriptor is None:
                raise ControllerNotRegisteredFault(getattr(cls, "__qualname__", repr(cls)))
            resolved.append(descriptor)
        return resolved

    def __contains__(self, cls: type) -> bool:
        return cls in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_mutable(self, cls: type) -> None:
        if self._frozen:
            raise RegistryFrozenFault(cls.__qualname__)

    def _get_mutable(self, cls: type) -> ControllerDescriptor:
        self._check_mutable(cls)
        controller = self._controllers.get(cls)
        if controller is None:
            raise ControllerNotRegisteredFault(cls.__qualname__)
        return controller

    def _get_method(self, cls: type, method_name: str) -> MethodDescriptor:
        controller = self._get_mutable(cls)
        method = controller.methods.get(method_name)
        if method is None:
            raise MethodNotRegisteredFault(cls.__qualname__, method_name)
        return method


# Process-wide registry used by @controller when none is given.
default_registry = MetadataRegistry()
