"""
Controller behaviors.

A behavior is a helper object attached to a controller at construction.
Public attributes that the controller itself lacks are looked up on its
behaviors, in declaration order.

    class Paginates(Behavior):
        page_size = 20

        def page(self, items, number=1):
            start = (number - 1) * self.page_size
            return items[start:start + self.page_size]

    class PostController(Controller):
        def behaviors(self):
            return {"paging": {"class": Paginates, "page_size": 50}}

        def action_index(self):
            return self.page(self.repo.all())
"""

from typing import Any, Optional


class Behavior:
    """Base class for behaviors."""

    def __init__(self):
        self._owner: Optional[Any] = None

    @property
    def owner(self) -> Optional[Any]:
        return self._owner

    def attach(self, owner: Any) -> None:
        self._owner = owner

    def detach(self, owner: Any) -> None:
        if self._owner is owner:
            self._owner = None
