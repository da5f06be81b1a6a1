"""
Object Factory

Builds actions, filters, behaviors and controllers from declarative
configuration. A configuration is one of:

- a class
- a dotted import path (``"app.actions.EditPost"`` or ``"app.actions:EditPost"``)
- a mapping with a ``"class"`` key plus option values

Options are assigned to attributes the object already declares; anything
else is an unknown field.
"""

from typing import Any, Dict, Mapping, Optional, Type
import importlib
import inspect
import logging

from ..faults import ActionConfigFault

logger = logging.getLogger("halyard.controller.factory")

CLASS_KEY = "class"

_MISSING = object()


class ObjectFactory:
    """
    Resolves class references and instantiates configured objects.

    Class-level cache of imported dotted paths is shared by all factories.
    """

    _class_cache: Dict[str, Type] = {}

    def __init__(self, strict: bool = True):
        self.strict = strict

    @classmethod
    def resolve_class(cls, ref: Any) -> Type:
        """Turn a class or dotted path into a class."""
        if inspect.isclass(ref):
            return ref
        if not isinstance(ref, str) or not ref.strip():
            raise ActionConfigFault(
                f"Invalid class reference {ref!r}: expected a class or a dotted path.",
                reason="bad_class_reference",
            )

        path = ref.strip()
        cached = cls._class_cache.get(path)
        if cached is not None:
            return cached

        if ":" in path:
            module_name, _, attr = path.partition(":")
        else:
            module_name, _, attr = path.rpartition(".")
        if not module_name or not attr:
            raise ActionConfigFault(
                f"Class reference '{path}' must be a dotted path.",
                reason="bad_class_reference",
            )

        try:
            module = importlib.import_module(module_name)
            target = getattr(module, attr)
        except (ImportError, AttributeError) as e:
            raise ActionConfigFault(
                f"Unable to import class '{path}': {e}",
                reason="import_failed",
            ) from e

        if not inspect.isclass(target):
            raise ActionConfigFault(
                f"'{path}' does not name a class.",
                reason="bad_class_reference",
            )

        cls._class_cache[path] = target
        return target

    @staticmethod
    def normalize(config: Any) -> Dict[str, Any]:
        """Return ``config`` as a fresh mapping with a ``class`` key."""
        if isinstance(config, Mapping):
            if CLASS_KEY not in config:
                raise ActionConfigFault(
                    'Object configuration must be a mapping containing a "class" element.',
                    reason="missing_class",
                )
            return dict(config)
        return {CLASS_KEY: config}

    def create(self, config: Any, *args: Any) -> Any:
        """
        Instantiate an object from ``config``.

        Args:
            config: Class, dotted path, or mapping with ``class`` + options
            *args: Positional constructor arguments

        Returns:
            Initialized instance with options applied
        """
        options = self.normalize(config)
        klass = self.resolve_class(options.pop(CLASS_KEY))
        instance = klass(*args)
        self.configure(instance, options)
        logger.debug(f"Created {klass.__name__} with options {sorted(options)}")
        return instance

    def configure(self, instance: Any, options: Mapping[str, Any]) -> Any:
        """Assign ``options`` to the attributes ``instance`` declares."""
        for name, value in options.items():
            if not self._is_option(instance, name):
                message = (
                    f"{type(instance).__name__} has no configurable property '{name}'."
                )
                if self.strict:
                    raise ActionConfigFault(message, reason="unknown_option")
                logger.warning(message + " Ignored.")
                continue
            setattr(instance, name, value)
        return instance

    @staticmethod
    def _is_option(instance: Any, name: str) -> bool:
        if not isinstance(name, str) or not name or name.startswith("_"):
            return False
        declared = inspect.getattr_static(type(instance), name, _MISSING)
        if isinstance(declared, property):
            return declared.fset is not None
        if inspect.isroutine(declared) or isinstance(declared, (classmethod, staticmethod)):
            return False
        if declared is not _MISSING or name in getattr(instance, "__dict__", {}):
            return True
        # Annotated without a default
        return any(name in getattr(klass, "__annotations__", {}) for klass in type(instance).__mro__)


def create_object(config: Any, *args: Any, strict: bool = True) -> Any:
    """Shorthand for ``ObjectFactory(strict).create(config, *args)``."""
    return ObjectFactory(strict=strict).create(config, *args)
