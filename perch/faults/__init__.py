"""
Perch Faults - structured, typed failures.

Build-time faults (registry and routing) stop the application from being
built. Request-time faults are converted into responses by the validation
middleware or the application's error handling.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)
from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    ConfigMissingFault,
    RegistryFault,
    DuplicateRegistrationFault,
    RegistryFrozenFault,
    ControllerNotRegisteredFault,
    MethodNotRegisteredFault,
    InvalidBindingFault,
    RoutingFault,
    RouteConflictFault,
    IntrospectionPathConflictFault,
    PatternInvalidFault,
    ValidationFault,
    FlowFault,
    HookFault,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "ConfigMissingFault",
    "RegistryFault",
    "DuplicateRegistrationFault",
    "RegistryFrozenFault",
    "ControllerNotRegisteredFault",
    "MethodNotRegisteredFault",
    "InvalidBindingFault",
    "RoutingFault",
    "RouteConflictFault",
    "IntrospectionPathConflictFault",
    "PatternInvalidFault",
    "ValidationFault",
    "FlowFault",
    "HookFault",
]
