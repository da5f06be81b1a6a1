"""
Controller Base Class

A controller owns a set of actions and dispatches requests to them.

When an action ``XYZ`` is requested, the controller:
1. calls the method ``action_XYZ`` if the class defines one;
2. otherwise builds the class-based action declared for ``XYZ`` in
   ``actions()`` (directly or through an action provider prefix);
3. otherwise calls ``missing_action``, which raises a 404 fault.

With no action id, ``default_action`` is used.

Filters declared in ``filters()`` wrap the action in a ``FilterChain``.
``before_action`` / ``after_action`` hooks fire around every dispatch
through the context's ``SignalBus``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
import inspect
import logging
import re
import weakref

from ..context import DispatchContext
from ..faults import ActionConfigFault, BadRequestFault, HTTPFault, NotFoundFault
from ..http import is_ajax_request, is_post_request, reason_phrase
from ..signals import AFTER_ACTION, BEFORE_ACTION
from .access import AccessControlFilter
from .actions import INVALID_PARAMS, Action, InlineAction, invoke, run_action_object
from .factory import CLASS_KEY, ObjectFactory
from .filters import FilterChain

logger = logging.getLogger("halyard.controller")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def controller_id_for(controller_class: type) -> str:
    """``BlogPostController`` -> ``blog_post``."""
    name = controller_class.__name__
    if name.endswith("Controller") and len(name) > len("Controller"):
        name = name[: -len("Controller")]
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _collect(parts: List[Any]) -> Any:
    if len(parts) == 1:
        return parts[0]
    if all(isinstance(p, str) for p in parts):
        return "".join(parts)
    return list(parts)


class Controller:
    """
    Base Controller class.

    Class Attributes:
        default_action: Action run when none is requested (falls back to
            ``HalyardConfig.default_action``)
        action_prefix: Prefix of inline action methods
        filter_prefix: Prefix of inline filter methods
        provider_delimiter: Ends the key of an action provider in ``actions()``

    Example:
        class PostController(Controller):
            def filters(self):
                return ["accessControl", "postOnly + delete"]

            def access_rules(self):
                return [("allow", {"users": ["@"]}), ("deny", {"users": ["*"]})]

            def actions(self):
                return {"crud.": CrudActions, "export": {"class": ExportAction, "format": "csv"}}

            async def action_view(self, id: int):
                return await self.repo.get(id)
    """

    default_action: Optional[str] = None
    action_prefix: str = "action_"
    filter_prefix: str = "filter_"
    provider_delimiter: str = "."

    # controller class -> {action id: method name}, dropped with the class
    _inline_action_cache: "weakref.WeakKeyDictionary[type, Dict[str, str]]" = weakref.WeakKeyDictionary()

    def __init__(
        self,
        id: str,
        module: Optional[Any] = None,
        context: Optional[DispatchContext] = None,
    ):
        self._id = id
        self._module = module
        self._module_resolved = module is not None
        self._action: Optional[Action] = None
        self._behaviors: Dict[str, Any] = {}
        self.context = context if context is not None else DispatchContext()

        if self.default_action is None:
            self.default_action = self.context.config.default_action

        signals = self.context.signals
        signals.connect(BEFORE_ACTION, self.before_action, sender=self, weak=True)
        signals.connect(AFTER_ACTION, self.after_action, sender=self, weak=True)

        self.attach_behaviors(self.behaviors())

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def unique_id(self) -> str:
        """Controller id prefixed with the module id, if any."""
        module = self.module
        return f"{module.id}/{self._id}" if module is not None else self._id

    @property
    def module(self) -> Optional[Any]:
        """
        Owning module.

        When none was given it is looked up once through the context, using
        the second segment of the controller's package path
        (``modules.blog.controllers`` -> ``blog``).
        """
        if not self._module_resolved:
            segments = type(self).__module__.split(".")
            name = segments[1] if len(segments) > 1 else None
            self._module = self.context.get_module(name) if name else None
            self._module_resolved = True
        return self._module

    @property
    def action(self) -> Optional[Action]:
        """The action currently being executed, None when idle."""
        return self._action

    @action.setter
    def action(self, value: Optional[Action]) -> None:
        self._action = value

    @property
    def request(self) -> Optional[Any]:
        return self.context.request

    @property
    def route(self) -> str:
        action_id = self._action.id if self._action is not None else self.default_action
        return f"{self.unique_id}/{action_id}"

    # ------------------------------------------------------------------
    # Declarations (re-evaluated on every dispatch)
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Called by the application after the controller is created."""
        pass

    def filters(self) -> List[Any]:
        """
        Filter declarations, applied in order.

        See ``halyard.controller.filters`` for the accepted forms. Subclasses
        extending a parent's filters should concatenate ``super().filters()``.
        """
        return []

    def actions(self) -> Dict[str, Any]:
        """
        External action declarations.

        Keys are action ids; values are an action class, a dotted path or a
        mapping with ``class`` and option values. A key ending with
        ``provider_delimiter`` imports the ``actions()`` of an
        ``ActionProvider`` under that prefix; its mapping form may carry
        per-action option overrides keyed by the provider's action ids.
        """
        return {}

    def behaviors(self) -> Dict[str, Any]:
        """Behavior declarations: ``{name: class | path | {"class": ..., ...}}``."""
        return {}

    def access_rules(self) -> List[Any]:
        """Rules for the ``accessControl`` filter (see ``halyard.controller.access``)."""
        return []

    def csrf_exempt(self) -> List[str]:
        """Action ids exempt from CSRF validation by the transport middleware."""
        return []

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def before_action(self, action: Action, **kwargs) -> bool:
        """
        Runs before the action and its filters.

        Returns:
            Whether the action should run
        """
        return True

    async def after_action(self, action: Action, output: Any, **kwargs) -> None:
        """
        Runs after the action with its output.

        A nested dispatch hands its output to the enclosing one. The
        outermost dispatch passes it through the view middleware and emits
        it to the sink.
        """
        buffers = self.context.buffers
        if buffers:
            if output is not None:
                buffers[-1].append(output)
            return

        middleware = self.context.middleware
        if middleware is not None:
            await invoke(middleware.process_view, self.request, output)
            await invoke(middleware.process_response, self.request)

        sink = self.context.sink
        if sink is not None:
            await invoke(sink.emit, output)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def run(self, action_id: str = "", params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Run the named action with its filters and hooks.

        Args:
            action_id: Action id; empty means ``default_action``
            params: Request parameters bound to the action by name

        Returns:
            The dispatch output, or None when ``before_action`` vetoed it
        """
        action = self.create_action(action_id)
        if action is None:
            self.missing_action(action_id)

        signals = self.context.signals
        results = await signals.send(BEFORE_ACTION, self, owner=self, action=action)
        if not results.proceed:
            logger.debug(f"before_action stopped {self.unique_id}/{action.id}")
            return None

        buffers = self.context.buffers
        buffers.append([])
        try:
            output = await self.run_action_with_filters(action, self.filters(), params)
        finally:
            parts = buffers.pop()

        if output is None and parts:
            output = _collect(parts)

        await signals.send(AFTER_ACTION, self, action=action, output=output)
        return output

    async def run_action_with_filters(
        self,
        action: Action,
        filters: List[Any],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Run ``action`` inside a chain built from ``filters``."""
        if not filters:
            return await self.run_action(action, params)

        prior = self._action
        self._action = action
        try:
            chain = FilterChain.create(self, action, filters)
            logger.debug(f"Running {action.id!r} through {len(chain)} filter(s)")
            return await chain.run(params)
        finally:
            self._action = prior

    async def run_action(self, action: Action, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run ``action`` once every filter has let it through."""
        prior = self._action
        self._action = action
        try:
            output = await run_action_object(action, params)
            if output is INVALID_PARAMS:
                self.invalid_action_params(action)
            return output
        finally:
            self._action = prior

    def echo(self, *parts: Any) -> None:
        """Write to the output of the current dispatch."""
        buffers = self.context.buffers
        if not buffers:
            raise RuntimeError("echo() called outside of a dispatch")
        buffers[-1].extend(parts)

    # ------------------------------------------------------------------
    # Action resolution
    # ------------------------------------------------------------------

    @classmethod
    def inline_actions(cls) -> Dict[str, str]:
        """Map of inline action ids to method names, built once per class."""
        table = Controller._inline_action_cache.get(cls)
        if table is None:
            prefix = cls.action_prefix
            table = {}
            for name, member in inspect.getmembers(cls, callable):
                if not name.startswith(prefix) or len(name) == len(prefix):
                    continue
                if name in Controller.__dict__:
                    continue
                table[name[len(prefix):]] = name
            Controller._inline_action_cache[cls] = table
        return table

    def action_method_name(self, action_id: str) -> str:
        return self.inline_actions().get(action_id, self.action_prefix + action_id)

    def _reserved_action_id(self, action_id: str) -> bool:
        # The ``actions`` declaration itself is never an inline action
        return (self.action_prefix + action_id).lower() == "actions"

    def create_action(self, action_id: str) -> Optional[Action]:
        """
        Build the action for ``action_id``.

        Returns:
            The action, or None if nothing serves that id
        """
        if not action_id:
            action_id = self.default_action

        if action_id in self.inline_actions() and not self._reserved_action_id(action_id):
            return InlineAction(self, action_id)

        action = self.create_action_from_map(self.actions(), action_id, action_id)
        if action is not None and not callable(getattr(action, "run", None)):
            raise ActionConfigFault(
                f'Action class {type(action).__name__} must implement the "run" method.',
                reason="missing_run",
            )
        if action is not None and not isinstance(action, Action) and not hasattr(action, "id"):
            action.id = action_id
        return action

    def create_action_from_map(
        self,
        action_map: Mapping[str, Any],
        action_id: str,
        requested_action_id: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> Optional[Action]:
        """
        Build an action declared in ``action_map``.

        Args:
            action_map: An ``actions()`` map
            action_id: Id with any provider prefix already stripped
            requested_action_id: Id originally requested, given to the action
            config: Options applied over the declared configuration

        Returns:
            The action, or None if the map does not declare it
        """
        config = config or {}
        delimiter = self.provider_delimiter
        pos = action_id.find(delimiter)

        if pos == -1:
            if action_id not in action_map:
                return None
            base = ObjectFactory.normalize(action_map[action_id])
            return self._factory().create({**base, **config}, self, requested_action_id)

        # Declared by an action provider
        prefix = action_id[: pos + len(delimiter)]
        if prefix not in action_map:
            return None
        action_id = action_id[pos + len(delimiter):]

        provider = action_map[prefix]
        if isinstance(provider, Mapping):
            if CLASS_KEY not in provider:
                raise ActionConfigFault(
                    'Object configuration must be a mapping containing a "class" element.',
                    reason="missing_class",
                )
            provider_type = provider[CLASS_KEY]
            override = provider.get(action_id) if action_id != CLASS_KEY else None
            if override is not None:
                if isinstance(override, Mapping):
                    config = {**override, **config}
                else:
                    config = {CLASS_KEY: override, **config}
        elif isinstance(provider, str) or inspect.isclass(provider):
            provider_type = provider
        else:
            raise ActionConfigFault(
                'Object configuration must be a mapping containing a "class" element.',
                reason="missing_class",
            )

        provider_class = ObjectFactory.resolve_class(provider_type)
        provided = getattr(provider_class, "actions", None)
        if not callable(provided):
            raise ActionConfigFault(
                f"Action provider {provider_class.__name__} must define actions().",
                reason="bad_provider",
            )
        return self.create_action_from_map(provided(), action_id, requested_action_id, config)

    def _factory(self) -> ObjectFactory:
        return ObjectFactory(strict=self.context.config.strict_options)

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def _t(self, message: str, params: Optional[Mapping[str, object]] = None) -> str:
        return self.context.t(self.context.config.translation_category, message, params)

    def missing_action(self, action_id: str) -> None:
        """Raise the 404 fault for an unknown action."""
        shown = action_id if action_id else self.default_action
        logger.warning(f"Unknown action '{shown}' on controller '{self.unique_id}'")
        raise NotFoundFault(
            self._t('The system is unable to find the requested action "{action}".', {"{action}": shown}),
            action=shown,
        )

    def invalid_action_params(self, action: Action) -> None:
        """Raise the 400 fault for parameters that do not fit the action."""
        logger.warning(f"Invalid parameters for action '{action.id}' on '{self.unique_id}'")
        raise BadRequestFault(
            self._t("Your request is invalid."),
            metadata={"action": action.id},
        )

    def error_message(self, code: int) -> str:
        return self._t(reason_phrase(code))

    def error(self, code: int, message: Optional[str] = None) -> None:
        """Raise an ``HTTPFault`` with ``code``."""
        raise HTTPFault(code, message if message is not None else self.error_message(code))

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------

    async def forward(
        self,
        route: Any,
        params: Optional[Mapping[str, Any]] = None,
        *,
        action_id: str = "",
    ) -> Any:
        """
        Process the request with another action, keeping the current URL.

        Args:
            route: An action id of this controller, a ``[module/]controller/action``
                route (relative to the current module unless it starts with
                ``/``), or a controller class
            params: Parameters for the target action
            action_id: Action to run when ``route`` is a controller class
        """
        if inspect.isclass(route) and issubclass(route, Controller):
            controller = route(controller_id_for(route), self.module, self.context)
            controller.init()
            return await controller.run(action_id, params)

        if "/" not in route:
            return await self.run(route, params)

        if not route.startswith("/") and self.module is not None:
            route = f"{self.module.id}/{route}"

        router = self.context.router
        if router is None:
            raise ActionConfigFault(
                f"Cannot forward to '{route}': no router configured.",
                reason="no_router",
            )
        return await router.run_controller(route, params, context=self.context)

    # ------------------------------------------------------------------
    # Built-in filters
    # ------------------------------------------------------------------

    async def filter_post_only(self, chain: FilterChain, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Let only POST requests through; others get a 400 fault."""
        if is_post_request(self.request):
            return await chain.run(params)
        raise BadRequestFault(self._t("Your request is invalid."))

    async def filter_ajax_only(self, chain: FilterChain, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Let only AJAX requests through; others get a 400 fault."""
        if is_ajax_request(self.request):
            return await chain.run(params)
        raise BadRequestFault(self._t("Your request is invalid."))

    async def filter_access_control(self, chain: FilterChain, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Apply ``access_rules()``; denial raises a 403 fault."""
        access = AccessControlFilter(self.access_rules())
        return await access.filter(chain, params)

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------

    def attach_behaviors(self, behaviors: Mapping[str, Any]) -> None:
        factory = self._factory()
        for name, config in behaviors.items():
            self.attach_behavior(name, factory.create(config))

    def attach_behavior(self, name: str, behavior: Any) -> Any:
        self.detach_behavior(name)
        attach = getattr(behavior, "attach", None)
        if callable(attach):
            attach(self)
        self._behaviors[name] = behavior
        return behavior

    def detach_behavior(self, name: str) -> Optional[Any]:
        behavior = self._behaviors.pop(name, None)
        detach = getattr(behavior, "detach", None)
        if callable(detach):
            detach(self)
        return behavior

    def detach_behaviors(self) -> None:
        for name in list(self._behaviors):
            self.detach_behavior(name)

    def behavior(self, name: str) -> Optional[Any]:
        return self._behaviors.get(name)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        for behavior in self.__dict__.get("_behaviors", {}).values():
            try:
                return getattr(behavior, name)
            except AttributeError:
                continue
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id!r}>"
