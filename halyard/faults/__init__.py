"""
Halyard Faults - typed failure signals for the controller layer.

Failures are raised where they are detected and unwind unchanged through
filters, hooks and dispatch. The transport layer is the one place that turns
them into responses.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- HTTPFault and its 404/400/403 specialisations
- ConfigFault / ActionConfigFault: declaration defects
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ActionConfigFault,
    BadRequestFault,
    ConfigFault,
    ForbiddenFault,
    HTTPFault,
    NotFoundFault,
)

__all__ = [
    # Core types
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ActionConfigFault",
    "BadRequestFault",
    "ConfigFault",
    "ForbiddenFault",
    "HTTPFault",
    "NotFoundFault",
]
