"""
Action Filters

Filters wrap action execution. A controller declares them in ``filters()``;
for every dispatch they are parsed into ``FilterSpec`` values, narrowed to
the ones that apply to the current action, resolved to callables and run as
a ``FilterChain`` that ends with the action itself.

Declaration forms:

    def filters(self):
        return [
            "accessControl - login",                  # inline: filter_accessControl / filter_access_control
            "ajaxOnly + search",
            ("app.filters.OutputCache + list", {"duration": 300}),
            {"class": "app.filters.Throttle", "limit": 10},
            FilterSpec(AuditFilter, mode="-", action_ids={"health"}),
        ]

``+ a,b`` applies the filter only to actions ``a`` and ``b``;
``- a,b`` applies it to every action except those. Action ids are compared
case-insensitively.

A filter continues the chain by calling ``await chain.run(params)``.
A filter that returns without calling it stops the chain: deeper filters
and the action never run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, TYPE_CHECKING
import inspect
import logging
import re

from ..faults import ActionConfigFault
from .actions import Action, invoke
from .factory import CLASS_KEY, ObjectFactory

if TYPE_CHECKING:
    from .base import Controller

logger = logging.getLogger("halyard.controller.filters")

_RESTRICTION = re.compile(r"^(?P<name>[^+\-]+?)\s*(?P<mode>[+\-])\s*(?P<ids>.*)$", re.S)
_ID_SEPARATOR = re.compile(r"[\s,]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


# ============================================================================
# FilterSpec
# ============================================================================

@dataclass(frozen=True)
class FilterSpec:
    """
    One parsed filter declaration.

    Attributes:
        target: Inline filter name (str) for method filters, or the class
            (or dotted path) for class-based filters
        inline: Whether ``target`` names a controller filter method
        mode: ``"+"`` (only these actions), ``"-"`` (all but these) or None
        action_ids: Lower-cased action ids the restriction refers to
        options: Property values for class-based filters
    """

    target: Any
    inline: bool = False
    mode: Optional[str] = None
    action_ids: FrozenSet[str] = field(default_factory=frozenset)
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.mode not in (None, "+", "-"):
            raise ActionConfigFault(
                f"Filter restriction must be '+' or '-', got {self.mode!r}.",
                reason="bad_filter_spec",
            )
        object.__setattr__(self, "action_ids", frozenset(a.lower() for a in self.action_ids))

    @classmethod
    def parse(cls, declaration: Any) -> "FilterSpec":
        """Parse one entry of ``filters()``."""
        if isinstance(declaration, FilterSpec):
            return declaration

        if isinstance(declaration, str):
            name, mode, ids = cls._split_restriction(declaration)
            return cls(target=name, inline=True, mode=mode, action_ids=ids)

        if isinstance(declaration, Mapping):
            options = dict(declaration)
            if CLASS_KEY not in options:
                raise ActionConfigFault(
                    'A filter configuration mapping must contain a "class" element.',
                    reason="bad_filter_spec",
                )
            return cls._class_spec(options.pop(CLASS_KEY), options)

        if isinstance(declaration, (tuple, list)):
            if not declaration:
                raise ActionConfigFault(
                    "The first element in a filter configuration must be the filter class.",
                    reason="bad_filter_spec",
                )
            head, rest = declaration[0], declaration[1:]
            options: Dict[str, Any] = {}
            for extra in rest:
                if not isinstance(extra, Mapping):
                    raise ActionConfigFault(
                        f"Filter options must be mappings, got {type(extra).__name__}.",
                        reason="bad_filter_spec",
                    )
                options.update(extra)
            return cls._class_spec(head, options)

        if inspect.isclass(declaration):
            return cls(target=declaration)

        raise ActionConfigFault(
            f"Unsupported filter declaration {declaration!r}.",
            reason="bad_filter_spec",
        )

    @classmethod
    def _class_spec(cls, ref: Any, options: Dict[str, Any]) -> "FilterSpec":
        if isinstance(ref, str):
            name, mode, ids = cls._split_restriction(ref)
            return cls(target=name, mode=mode, action_ids=ids, options=options)
        if inspect.isclass(ref):
            return cls(target=ref, options=options)
        raise ActionConfigFault(
            "The first element in a filter configuration must be the filter class.",
            reason="bad_filter_spec",
        )

    @staticmethod
    def _split_restriction(text: str):
        match = _RESTRICTION.match(text.strip())
        if match is None:
            return text.strip(), None, frozenset()
        ids = frozenset(a for a in _ID_SEPARATOR.split(match.group("ids").strip()) if a)
        return match.group("name").strip(), match.group("mode"), ids

    def applies_to(self, action_id: str) -> bool:
        """Whether this filter runs for ``action_id``."""
        if self.mode is None:
            return True
        listed = action_id.lower() in self.action_ids
        return listed if self.mode == "+" else not listed


# ============================================================================
# Filter contract
# ============================================================================

class Filter:
    """
    Base class for class-based filters.

    Override ``pre_filter`` for logic before the action and ``post_filter``
    for logic after it. ``pre_filter`` returning a falsy value stops the
    chain: neither deeper filters, the action nor ``post_filter`` run.

    Subclasses overriding ``filter`` itself must ``await chain.run(params)``
    for the action to execute.
    """

    def init(self) -> None:
        """Called once the options are applied and before filtering."""
        pass

    async def filter(self, chain: "FilterChain", params: Optional[Mapping[str, Any]] = None) -> Any:
        if await invoke(self.pre_filter, chain):
            output = await chain.run(params)
            await invoke(self.post_filter, chain)
            return output
        return None

    def pre_filter(self, chain: "FilterChain") -> bool:
        return True

    def post_filter(self, chain: "FilterChain") -> None:
        pass


class InlineFilter(Filter):
    """Filter backed by a ``filter_<name>(chain, params)`` controller method."""

    def __init__(self, controller: "Controller", name: str, method_name: str):
        self.controller = controller
        self.name = name
        self.method_name = method_name

    @classmethod
    def create(cls, controller: "Controller", name: str) -> "InlineFilter":
        prefix = controller.filter_prefix
        candidates = [prefix + name]
        snake = _CAMEL_BOUNDARY.sub("_", name).lower()
        if snake != name:
            candidates.append(prefix + snake)

        for method_name in candidates:
            if callable(inspect.getattr_static(type(controller), method_name, None)):
                return cls(controller, name, method_name)

        raise ActionConfigFault(
            f'Filter "{name}" is invalid. Controller "{type(controller).__name__}" '
            f'does not have the filter method "{candidates[0]}".',
            reason="unknown_filter",
        )

    async def filter(self, chain: "FilterChain", params: Optional[Mapping[str, Any]] = None) -> Any:
        return await invoke(getattr(self.controller, self.method_name), chain, params)

    def __repr__(self) -> str:
        return f"<InlineFilter {self.name!r} -> {self.method_name}>"


# ============================================================================
# FilterChain
# ============================================================================

class FilterChain:
    """
    Ordered filters terminated by the action.

    Each ``run`` call hands control to the next filter; once every filter
    has been entered it runs the action through ``controller.run_action``.
    The cursor only moves forward and a chain serves a single dispatch.
    """

    def __init__(self, controller: "Controller", action: Action, filters: Optional[Iterable[Any]] = None):
        self.controller = controller
        self.action = action
        self.filters: List[Any] = list(filters or [])
        self.cursor = 0
        self.params: Optional[Mapping[str, Any]] = None

    @classmethod
    def create(cls, controller: "Controller", action: Action, declarations: Iterable[Any]) -> "FilterChain":
        """
        Build the chain for ``action`` from ``filters()`` declarations.

        Filters that do not apply to the action id are left out entirely.
        """
        chain = cls(controller, action)
        factory = ObjectFactory(strict=controller.context.config.strict_options)

        for declaration in declarations:
            spec = FilterSpec.parse(declaration)
            if not spec.applies_to(action.id):
                logger.debug(f"Filter {spec.target!r} skipped for action '{action.id}'")
                continue

            if spec.inline:
                item = InlineFilter.create(controller, spec.target)
            else:
                item = factory.create({CLASS_KEY: spec.target, **spec.options})
                if not callable(getattr(item, "filter", None)):
                    raise ActionConfigFault(
                        f'Filter class {type(item).__name__} must implement the "filter" method.',
                        reason="missing_filter",
                    )
                init = getattr(item, "init", None)
                if callable(init):
                    init()

            chain.add(item)

        return chain

    def add(self, item: Any) -> None:
        self.filters.append(item)

    def __len__(self) -> int:
        return len(self.filters)

    async def run(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Advance to the next filter, or run the action when none remain.

        ``params`` defaults to the parameters of the first call.
        """
        if params is None:
            params = self.params
        elif self.params is None:
            self.params = params

        if self.cursor < len(self.filters):
            item = self.filters[self.cursor]
            self.cursor += 1
            logger.debug(f"Entering filter {self.cursor}/{len(self.filters)}: {item!r}")
            return await item.filter(self, params)

        return await self.controller.run_action(self.action, params)

    def __repr__(self) -> str:
        return f"<FilterChain action={self.action.id!r} cursor={self.cursor}/{len(self.filters)}>"
