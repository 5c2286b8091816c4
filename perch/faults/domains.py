"""
Perch Faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- REGISTRY faults
- ROUTING faults
- VALIDATION faults
- FLOW faults
"""

from typing import Any, List, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required configuration key '{key}' is missing",
            severity=Severity.ERROR,
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for metadata registry faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=Severity.FATAL,
            public=False,
            metadata=metadata,
        )


class DuplicateRegistrationFault(RegistryFault):
    """The same controller class was registered twice."""

    def __init__(self, controller: str, **kwargs):
        super().__init__(
            code="DUPLICATE_REGISTRATION",
            message=f"Controller '{controller}' is already registered",
            metadata={"controller": controller, **kwargs.get("metadata", {})},
        )


class RegistryFrozenFault(RegistryFault):
    """Registration attempted after the application was built."""

    def __init__(self, controller: str, **kwargs):
        super().__init__(
            code="REGISTRY_FROZEN",
            message=(
                f"Cannot register '{controller}': the registry is frozen "
                f"once an application has been built"
            ),
            metadata={"controller": controller, **kwargs.get("metadata", {})},
        )


class ControllerNotRegisteredFault(RegistryFault):
    """A class passed to build_app() was never decorated with @controller."""

    def __init__(self, controller: str, **kwargs):
        super().__init__(
            code="CONTROLLER_NOT_REGISTERED",
            message=(
                f"'{controller}' is not a registered controller; "
                f"decorate it with @controller(...)"
            ),
            metadata={"controller": controller, **kwargs.get("metadata", {})},
        )


class MethodNotRegisteredFault(RegistryFault):
    """Validation or binding declared for a method without a route marker."""

    def __init__(self, controller: str, method: str, **kwargs):
        super().__init__(
            code="METHOD_NOT_REGISTERED",
            message=f"'{controller}.{method}' has no route registered",
            metadata={"controller": controller, "method": method, **kwargs.get("metadata", {})},
        )


class InvalidBindingFault(RegistryFault):
    """A parameter binding is inconsistent with its handler."""

    def __init__(self, handler: str, reason: str, **kwargs):
        super().__init__(
            code="INVALID_BINDING",
            message=f"Invalid parameter binding on '{handler}': {reason}",
            metadata={"handler": handler, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class RouteConflictFault(RoutingFault):
    """Two handlers compile to the same (method, path) pair."""

    def __init__(self, method: str, path: str, handlers: List[str], **kwargs):
        super().__init__(
            code="ROUTE_CONFLICT",
            message=f"Route conflict on {method} {path}: {', '.join(handlers)}",
            severity=Severity.FATAL,
            public=False,
            metadata={
                "method": method,
                "path": path,
                "handlers": handlers,
                **kwargs.get("metadata", {}),
            },
        )


class IntrospectionPathConflictFault(RouteConflictFault):
    """A compiled GET route matches the introspection endpoint's path."""

    def __init__(self, path: str, handler: str, **kwargs):
        super().__init__("GET", path, ["<introspection>", handler], **kwargs)
        self.code = "INTROSPECTION_PATH_CONFLICT"


class PatternInvalidFault(RoutingFault):
    """Route pattern is invalid."""

    def __init__(self, pattern: str, reason: str, **kwargs):
        super().__init__(
            code="PATTERN_INVALID",
            message=f"Invalid route pattern '{pattern}': {reason}",
            severity=Severity.FATAL,
            public=False,
            metadata={"pattern": pattern, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# VALIDATION Faults
# ============================================================================

class ValidationFault(Fault):
    """
    A bound parameter or request part failed schema validation.

    Carries the request location ("body", "query", "params", "headers"),
    the bound name for single-value bindings, and the validator's issues.
    """

    def __init__(
        self,
        location: str,
        issues: List[dict[str, Any]],
        *,
        name: Optional[str] = None,
        **kwargs,
    ):
        self.location = location
        self.name = name
        self.issues = issues
        target = f"{location}.{name}" if name else location
        super().__init__(
            code="VALIDATION_FAILED",
            message=f"Validation failed for {target}",
            domain=FaultDomain.VALIDATION,
            severity=Severity.WARN,
            public=True,
            metadata={
                "location": location,
                "name": name,
                "issues": issues,
                **kwargs.get("metadata", {}),
            },
        )

    def to_response_body(self) -> dict[str, Any]:
        """Client-facing JSON body for this failure."""
        body: dict[str, Any] = {
            "message": "Validation failed",
            "location": self.location,
            "issues": self.issues,
        }
        if self.name is not None:
            body["name"] = self.name
        return body


# ============================================================================
# FLOW Faults
# ============================================================================

class FlowFault(Fault):
    """Base class for flow execution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.FLOW,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class HookFault(FlowFault):
    """A configured hook did not produce a Response."""

    def __init__(self, hook_name: str, reason: str, **kwargs):
        super().__init__(
            code="HOOK_FAILED",
            message=f"Hook '{hook_name}' failed: {reason}",
            metadata={"hook": hook_name, "reason": reason, **kwargs.get("metadata", {})},
        )
