"""
Halyard Faults - Domain-specific fault types.

Provides concrete fault classes for:
- CONFIG faults (programming/deployment defects, never user-facing)
- HTTP faults (404 / 400 / 403 and arbitrary status codes)
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity
from ..http import reason_phrase


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
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ActionConfigFault(ConfigFault):
    """
    An action, filter, provider or behavior declaration is unusable.

    Raised for actions without ``run``, malformed provider entries,
    unknown inline filters, unknown option fields and unimportable classes.
    """

    def __init__(self, message: str, *, reason: str = "invalid", **kwargs):
        super().__init__(
            code="ACTION_CONFIG_INVALID",
            message=message,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# HTTP Faults
# ============================================================================

class HTTPFault(Fault):
    """
    Fault carrying an HTTP status code.

    The transport layer turns ``status`` and ``message`` into a response.
    When no message is given the standard reason phrase is used.
    """

    def __init__(
        self,
        status: int,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        domain: FaultDomain = FaultDomain.HTTP,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(
            code=code or f"HTTP_{status}",
            message=message if message is not None else reason_phrase(status),
            domain=domain,
            severity=severity,
            retryable=False,
            public=True,
            metadata={"status": status, **(metadata or {})},
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class NotFoundFault(HTTPFault):
    """Requested action does not resolve to any handler."""

    def __init__(self, message: str, *, action: Optional[str] = None, **kwargs):
        super().__init__(
            404,
            message,
            code="ACTION_NOT_FOUND",
            domain=FaultDomain.ROUTING,
            metadata={"action": action, **kwargs.get("metadata", {})},
        )


class BadRequestFault(HTTPFault):
    """Parameters could not be bound or a request precondition failed."""

    def __init__(self, message: str = "Your request is invalid.", **kwargs):
        super().__init__(
            400,
            message,
            code="BAD_REQUEST",
            domain=FaultDomain.FLOW,
            severity=Severity.WARN,
            metadata=kwargs.get("metadata"),
        )


class ForbiddenFault(HTTPFault):
    """Access rule denied the request."""

    def __init__(self, message: str = "You are not authorized to perform this action.", **kwargs):
        super().__init__(
            403,
            message,
            code="FORBIDDEN",
            domain=FaultDomain.SECURITY,
            metadata=kwargs.get("metadata"),
        )
