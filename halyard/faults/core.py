"""
Halyard Faults - Core types.

A fault is an exception that knows how it should be reported: a stable
code, a message, the domain it belongs to, a severity and whether the
transport may show it to the client.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """How loudly a fault should be reported."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"   # misconfiguration, never a client mistake

    LOW = INFO
    MEDIUM = WARN
    HIGH = ERROR
    CRITICAL = FATAL


class FaultDomain:
    """
    Named area of the framework a fault comes from.

    The standard domains are exposed as class attributes
    (``FaultDomain.ROUTING`` ...). Applications may create their own;
    domains compare by name, so ``FaultDomain("routing")`` is the
    standard routing domain.
    """

    __slots__ = ("name", "description")

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description

    @property
    def value(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        other_name = other.name if isinstance(other, FaultDomain) else other
        return self.name == other_name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<FaultDomain {self.name!r}>"


FaultDomain.CONFIG = FaultDomain("config", "Invalid framework or action configuration")
FaultDomain.ROUTING = FaultDomain("routing", "Requested action or controller cannot be resolved")
FaultDomain.FLOW = FaultDomain("flow", "Action or filter rejected the request")
FaultDomain.SECURITY = FaultDomain("security", "Access rules denied the request")
FaultDomain.HTTP = FaultDomain("http", "Status raised explicitly by a controller")
FaultDomain.SYSTEM = FaultDomain("system", "Unexpected internal failure")


class DomainDefaults(NamedTuple):
    severity: Severity
    retryable: bool = False


_FALLBACK = DomainDefaults(Severity.ERROR)

DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: DomainDefaults(Severity.FATAL),
    FaultDomain.ROUTING: _FALLBACK,
    FaultDomain.FLOW: _FALLBACK,
    FaultDomain.SECURITY: _FALLBACK,
    FaultDomain.HTTP: _FALLBACK,
    FaultDomain.SYSTEM: DomainDefaults(Severity.FATAL),
}


# ============================================================================
# Fault
# ============================================================================

class Fault(Exception):
    """
    Structured exception raised by controllers, filters and the router.

    ``code``, ``message`` and ``domain`` can be passed in or declared on a
    subclass; a fault without all three is a programming error. Severity
    and retryability default per domain (see ``DOMAIN_DEFAULTS``).

        class Maintenance(Fault):
            code = "MAINTENANCE"
            message = "Down for maintenance"
            domain = FaultDomain.SYSTEM

        raise Maintenance(public=True)
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        if code is not None:
            self.code = code
        if message is not None:
            self.message = message
        if domain is not None:
            self.domain = domain

        missing = [name for name in ("code", "message", "domain") if getattr(self, name) is None]
        if missing:
            raise TypeError(f"{type(self).__name__} needs {', '.join(missing)}")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, _FALLBACK)
        self.severity = severity or defaults.severity
        self.retryable = defaults.retryable if retryable is None else retryable
        self.public = public
        self.metadata = dict(metadata) if metadata else {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, domain={self.domain}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form of the fault, for logs and error payloads."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": str(self.domain),
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }
