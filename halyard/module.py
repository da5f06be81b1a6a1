"""
Modules - named groups of controllers.

A module maps controller ids to controller classes (or dotted paths) and
prefixes the ``unique_id`` of the controllers it creates:

    blog = (
        Module("blog")
        .register_controller("post", PostController)
        .register_controller("comment", "app.blog.controllers.CommentController")
    )
"""

from typing import Any, Dict, Optional
import inspect
import logging

from .controller.base import Controller
from .controller.factory import ObjectFactory
from .faults import ActionConfigFault

logger = logging.getLogger("halyard.module")


class Module:
    """A module owning a set of controllers."""

    def __init__(
        self,
        id: str,
        controllers: Optional[Dict[str, Any]] = None,
        parent: Optional["Module"] = None,
    ):
        self.id = id
        self.parent = parent
        self.controllers: Dict[str, Any] = dict(controllers or {})

    @property
    def unique_id(self) -> str:
        if self.parent is not None:
            return f"{self.parent.unique_id}/{self.id}"
        return self.id

    def register_controller(self, controller_id: str, controller: Any) -> "Module":
        """Register a controller class or dotted path under ``controller_id``."""
        self.controllers[controller_id] = controller
        return self

    def create_controller(self, controller_id: str, context: Any) -> Optional[Any]:
        """
        Instantiate the controller registered as ``controller_id``.

        Returns:
            The controller bound to this module, or None if none is registered
        """
        ref = self.controllers.get(controller_id)
        if ref is None:
            return None

        klass = ObjectFactory.resolve_class(ref)
        if not (inspect.isclass(klass) and issubclass(klass, Controller)):
            raise ActionConfigFault(
                f"'{controller_id}' in module '{self.id}' is not a Controller subclass.",
                reason="bad_controller",
            )
        logger.debug(f"Creating controller '{self.unique_id}/{controller_id}'")
        return klass(controller_id, self, context)

    def __repr__(self) -> str:
        return f"<Module {self.unique_id!r} controllers={sorted(self.controllers)}>"
