"""
Halyard - async controller layer for MVC web applications

- Controllers: inline and class-based actions, action providers
- Filters: restriction-aware filter chains around every action
- Access control: allow/deny rules by user, role, verb, IP
- Hooks: before/after action signals
- Faults: structured 404 / 400 / 403 / configuration failures
- Config: layered JSON / YAML / .env / environment settings
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .config import ConfigError, ConfigLoader, HalyardConfig
from .context import (
    BufferSink,
    DispatchContext,
    ModuleResolver,
    RequestLike,
    ResponseSink,
    Router,
    Translator,
    ViewMiddleware,
)
from .signals import AFTER_ACTION, BEFORE_ACTION, Signal, SignalBus, SignalResults
from .i18n import MessageTranslator

# ============================================================================
# Controllers
# ============================================================================

from .controller import (
    INVALID_PARAMS,
    AccessControlFilter,
    AccessRule,
    Action,
    ActionProvider,
    Behavior,
    Controller,
    Filter,
    FilterChain,
    FilterSpec,
    InlineAction,
    InlineFilter,
    ObjectFactory,
    create_object,
)
from .module import Module
from .application import Application, configure_logging

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    ActionConfigFault,
    BadRequestFault,
    ConfigFault,
    Fault,
    FaultDomain,
    ForbiddenFault,
    HTTPFault,
    NotFoundFault,
    Severity,
)

__all__ = [
    "__version__",

    # Core
    "ConfigError",
    "ConfigLoader",
    "HalyardConfig",
    "BufferSink",
    "DispatchContext",
    "ModuleResolver",
    "RequestLike",
    "ResponseSink",
    "Router",
    "Translator",
    "ViewMiddleware",
    "AFTER_ACTION",
    "BEFORE_ACTION",
    "Signal",
    "SignalBus",
    "SignalResults",
    "MessageTranslator",

    # Controllers
    "INVALID_PARAMS",
    "AccessControlFilter",
    "AccessRule",
    "Action",
    "ActionProvider",
    "Behavior",
    "Controller",
    "Filter",
    "FilterChain",
    "FilterSpec",
    "InlineAction",
    "InlineFilter",
    "ObjectFactory",
    "create_object",
    "Module",
    "Application",
    "configure_logging",

    # Faults
    "ActionConfigFault",
    "BadRequestFault",
    "ConfigFault",
    "Fault",
    "FaultDomain",
    "ForbiddenFault",
    "HTTPFault",
    "NotFoundFault",
    "Severity",
]
