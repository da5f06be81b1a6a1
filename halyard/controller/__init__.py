"""
Halyard Controller System

Controllers group actions and run them through a filter chain.

Key Features:
- Inline actions (``action_<id>`` methods) and class-based actions
- Action providers imported under a prefix (``"crud."``)
- Filters with ``+``/``-`` action restrictions
- before/after action hooks on the context's ``SignalBus``
- Typed faults for 404 / 400 / 403 and declaration errors

Example:
    from halyard.controller import Controller

    class PostController(Controller):
        def filters(self):
            return ["postOnly + delete"]

        async def action_index(self):
            return await self.repo.list_all()

        async def action_delete(self, id: int):
            await self.repo.delete(id)
            return {"deleted": id}
"""

from .base import Controller, controller_id_for
from .actions import (
    INVALID_PARAMS,
    Action,
    ActionProvider,
    InlineAction,
    bind_params,
    invoke,
)
from .filters import (
    Filter,
    FilterChain,
    FilterSpec,
    InlineFilter,
)
from .access import AccessControlFilter, AccessRule
from .behaviors import Behavior
from .factory import CLASS_KEY, ObjectFactory, create_object

__all__ = [
    # Base
    "Controller",
    "controller_id_for",

    # Actions
    "INVALID_PARAMS",
    "Action",
    "ActionProvider",
    "InlineAction",
    "bind_params",
    "invoke",

    # Filters
    "Filter",
    "FilterChain",
    "FilterSpec",
    "InlineFilter",
    "AccessControlFilter",
    "AccessRule",

    # Behaviors
    "Behavior",

    # Factory
    "CLASS_KEY",
    "ObjectFactory",
    "create_object",
]
