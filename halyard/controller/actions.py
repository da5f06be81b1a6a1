"""
Actions

An action is one unit of work bound to a controller and an action id.

- ``InlineAction`` delegates to the controller method ``action_<id>``
- Class-based actions subclass ``Action`` and implement ``run``; any
  other class with a ``run`` method is dispatched the same way
- ``ActionProvider`` classes publish a reusable ``actions()`` map that
  controllers import under a prefix such as ``"pro."``

``run_with_params`` binds request parameters to the target signature by
name. When a required parameter is missing or has the wrong shape it
returns ``INVALID_PARAMS`` instead of calling anything.
"""

from typing import Any, Dict, Mapping, Optional, Tuple, get_origin, TYPE_CHECKING
import inspect
import weakref

from ..faults import ActionConfigFault

if TYPE_CHECKING:
    from .base import Controller


class _InvalidParams:
    """Sentinel: request parameters could not be bound."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID_PARAMS"

    def __bool__(self) -> bool:
        return False


INVALID_PARAMS = _InvalidParams()

# Keyed on plain functions; entries go away with the function
_signature_cache: "weakref.WeakKeyDictionary[Any, inspect.Signature]" = weakref.WeakKeyDictionary()

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


async def invoke(func: Any, *args, **kwargs) -> Any:
    """Call a sync or async callable and return its (awaited) result."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


def _signature(func: Any) -> inspect.Signature:
    target = getattr(func, "__func__", func)
    if not inspect.isfunction(target):
        return inspect.signature(func)

    sig = _signature_cache.get(target)
    if sig is None:
        sig = _signature_cache[target] = inspect.signature(target)
    if target is not func:
        # Drop the parameter the method is bound to
        sig = sig.replace(parameters=list(sig.parameters.values())[1:])
    return sig


_SEQUENCE_NAMES = ("list", "tuple", "set", "frozenset", "sequence", "typing.list", "typing.sequence")
_ANY_NAMES = ("Any", "typing.Any")


def _wants_sequence(annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty:
        return False
    if isinstance(annotation, str):
        # Postponed annotations (from __future__ import annotations)
        return annotation.split("[", 1)[0].strip().lower() in _SEQUENCE_NAMES
    target = get_origin(annotation) or annotation
    return isinstance(target, type) and issubclass(target, _SEQUENCE_TYPES)


def _accepts_anything(annotation: Any) -> bool:
    return annotation is Any or annotation in _ANY_NAMES


def bind_params(func: Any, params: Optional[Mapping[str, Any]]) -> Optional[Tuple[list, dict]]:
    """
    Map ``params`` onto the signature of ``func``.

    - A parameter found by name is used (scalars are wrapped in a list when
      the parameter is annotated as a sequence; a list given to a parameter
      not annotated as one fails the binding unless it is typed ``Any``)
    - Otherwise its default is used
    - Otherwise binding fails and ``None`` is returned

    Unknown request parameters are ignored unless ``func`` takes ``**kwargs``.
    """
    params = params or {}
    args: list = []
    kwargs: dict = {}
    consumed = set()
    var_keyword = False

    for name, param in _signature(func).parameters.items():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            continue
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            var_keyword = True
            continue

        if name in params:
            value = params[name]
            if _wants_sequence(param.annotation):
                if not isinstance(value, _SEQUENCE_TYPES):
                    value = [value]
            elif isinstance(value, list) and not _accepts_anything(param.annotation):
                return None
            consumed.add(name)
        elif param.default is not inspect.Parameter.empty:
            value = param.default
        else:
            return None

        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            args.append(value)
        else:
            kwargs[name] = value

    if var_keyword:
        kwargs.update({k: v for k, v in params.items() if k not in consumed and k not in kwargs})

    return args, kwargs


async def call_with_params(func: Any, params: Optional[Mapping[str, Any]]) -> Any:
    """Bind ``params`` to ``func`` and call it, or return INVALID_PARAMS."""
    bound = bind_params(func, params)
    if bound is None:
        return INVALID_PARAMS
    args, kwargs = bound
    return await invoke(func, *args, **kwargs)


async def run_action_object(action: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
    """
    Dispatch any action object.

    ``Action`` instances go through ``run_with_params``; other objects only
    need a ``run`` method, whose parameters are bound the same way.
    """
    runner = getattr(action, "run_with_params", None)
    if callable(runner):
        return await runner(params)
    return await call_with_params(action.run, params)


class Action:
    """
    Base class for actions.

    Subclasses implement ``run``; its parameters are bound by name from the
    request parameters. Options declared as class attributes can be set
    from the controller's ``actions()`` configuration.

    Example:
        class EditPost(Action):
            template = "post/edit"

            async def run(self, id: int):
                ...
    """

    def __init__(self, controller: "Controller", id: str):
        self._controller = controller
        self._id = id

    @property
    def controller(self) -> "Controller":
        return self._controller

    @property
    def id(self) -> str:
        return self._id

    @property
    def unique_id(self) -> str:
        return f"{self._controller.unique_id}/{self._id}"

    async def run_with_params(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run the action with named parameters, or return INVALID_PARAMS."""
        run = getattr(self, "run", None)
        if not callable(run):
            raise ActionConfigFault(
                f'Action class {type(self).__name__} must implement the "run" method.',
                reason="missing_run",
            )
        return await call_with_params(run, params)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id!r} of {self._controller.id!r}>"


class InlineAction(Action):
    """Action served by a ``action_<id>`` method of the controller."""

    @property
    def method_name(self) -> str:
        return self._controller.action_method_name(self._id)

    async def run(self) -> Any:
        return await invoke(getattr(self._controller, self.method_name))

    async def run_with_params(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await call_with_params(getattr(self._controller, self.method_name), params)


class ActionProvider:
    """
    Publishes a map of actions that controllers import under a prefix.

    Example:
        class CrudActions(ActionProvider):
            @classmethod
            def actions(cls):
                return {"list": ListAction, "delete": {"class": DeleteAction, "soft": True}}

        class PostController(Controller):
            def actions(self):
                return {"crud.": CrudActions}   # serves "crud.list", "crud.delete"
    """

    @classmethod
    def actions(cls) -> Dict[str, Any]:
        return {}
