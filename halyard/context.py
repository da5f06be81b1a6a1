"""
Dispatch context - the collaborators a controller talks to.

Controllers receive a ``DispatchContext`` at construction instead of
reaching for a global application object. It bundles:

- the hook dispatcher (``SignalBus``)
- the current request and the response sink
- optional view middleware
- optional module resolver / router (usually an ``Application``)
- optional translator
- typed configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from .config import HalyardConfig
from .i18n import substitute
from .signals import SignalBus


# ============================================================================
# Collaborator protocols
# ============================================================================

@runtime_checkable
class RequestLike(Protocol):
    """Request attributes the controller layer reads."""

    method: str
    headers: Mapping[str, str]


@runtime_checkable
class ResponseSink(Protocol):
    """Receives the final output of a dispatch, once."""

    def emit(self, output: Any) -> Any:
        ...


@runtime_checkable
class ViewMiddleware(Protocol):
    """Post-processing applied to output before it reaches the sink."""

    def process_view(self, request: Any, output: Any) -> Any:
        ...

    def process_response(self, request: Any) -> Any:
        ...


@runtime_checkable
class ModuleResolver(Protocol):
    """Looks up a module by its id."""

    def get_module(self, name: str) -> Optional[Any]:
        ...


@runtime_checkable
class Router(Protocol):
    """Dispatches a slash-qualified ``module/controller/action`` route."""

    async def run_controller(
        self,
        route: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        context: Optional["DispatchContext"] = None,
    ) -> Any:
        ...


@runtime_checkable
class Translator(Protocol):
    def translate(
        self,
        category: str,
        message: str,
        params: Optional[Mapping[str, object]] = None,
    ) -> str:
        ...


# ============================================================================
# Default sink
# ============================================================================

class BufferSink:
    """Sink that keeps every emitted output in memory."""

    def __init__(self):
        self.outputs: List[Any] = []

    def emit(self, output: Any) -> None:
        self.outputs.append(output)

    @property
    def last(self) -> Any:
        return self.outputs[-1] if self.outputs else None

    def clear(self) -> None:
        self.outputs.clear()


# ============================================================================
# DispatchContext
# ============================================================================

@dataclass
class DispatchContext:
    """
    Collaborators available to a controller during dispatch.

    Attributes:
        signals: Hook dispatcher for before_action / after_action
        request: The request being served (may be None outside HTTP)
        sink: Receives the final output of each top-level dispatch
        middleware: Optional view middleware run before the sink
        modules: Optional module resolver
        router: Optional router for slash-qualified forwards
        translator: Optional message translator
        config: Typed settings
        state: Free-form per-request state
        buffers: Output buffer stack, one entry per dispatch in progress
    """

    signals: SignalBus = field(default_factory=SignalBus)
    request: Optional[Any] = None
    sink: Optional[Any] = None
    middleware: Optional[Any] = None
    modules: Optional[Any] = None
    router: Optional[Any] = None
    translator: Optional[Any] = None
    config: HalyardConfig = field(default_factory=HalyardConfig)
    state: Dict[str, Any] = field(default_factory=dict)
    buffers: List[List[Any]] = field(default_factory=list)

    def t(
        self,
        category: str,
        message: str,
        params: Optional[Mapping[str, object]] = None,
    ) -> str:
        """Translate ``message``; without a translator only substitute params."""
        if self.translator is not None:
            return self.translator.translate(category, message, params)
        return substitute(message, params)

    def get_module(self, name: str) -> Optional[Any]:
        if self.modules is None or not name:
            return None
        return self.modules.get_module(name)

    def derive(self, **changes: Any) -> "DispatchContext":
        """Copy of this context with some collaborators replaced."""
        values = {f: getattr(self, f) for f in self.__dataclass_fields__}
        values.update(changes)
        return DispatchContext(**values)
