"""
Perch Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and whether the application may keep serving.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = "", status: int = 500):
        self.name = name
        self.value = name
        self.description = description
        self.status = status

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard domains. ``status`` is the HTTP status used when a public fault
# of that domain reaches the default error handler.
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.REGISTRY = FaultDomain("registry", "Metadata registry errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route compilation and matching errors", status=404)
FaultDomain.VALIDATION = FaultDomain("validation", "Request validation errors", status=400)
FaultDomain.FLOW = FaultDomain("flow", "Handler execution errors")
FaultDomain.IO = FaultDomain("io", "Request I/O errors", status=400)
FaultDomain.SECURITY = FaultDomain("security", "Security and auth", status=401)


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.REGISTRY: Severity.FATAL,
    FaultDomain.ROUTING: Severity.ERROR,
    FaultDomain.VALIDATION: Severity.WARN,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.IO: Severity.WARN,
    FaultDomain.SECURITY: Severity.WARN,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault carries:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Public exposure control

    Attributes:
        code: Stable machine-readable identifier (e.g., "ROUTE_CONFLICT")
        message: Human-readable summary
        severity: Fault severity
        domain: Fault domain
        public: Whether the message is safe to expose to a client
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="TODO_NOT_FOUND",
            message="Todo 12 not found",
            domain=FaultDomain.ROUTING,
            public=True,
        )
        ```
    """

    #: Per-class HTTP status; ``None`` defers to the domain
    http_status: Optional[int] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        public: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or getattr(self, "severity", None) or DOMAIN_DEFAULTS.get(
            self.domain, Severity.ERROR
        )
        self.public = public if public is not None else getattr(self, "public", False)
        self.metadata = metadata or {}

    @property
    def status(self) -> int:
        """HTTP status: the class override, else the domain's."""
        if self.http_status is not None:
            return self.http_status
        return self.domain.status

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "public": self.public,
            "metadata": self.metadata,
        }
