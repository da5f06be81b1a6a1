"""
Config system - Layered typed configuration with validation.

Sources are merged with precedence (later wins):
config files (JSON / YAML) < .env file < environment variables < overrides
"""

from typing import Any, Dict, Mapping, Optional, Type, get_type_hints
from dataclasses import dataclass, fields, MISSING
from glob import glob
from pathlib import Path
import json
import logging
import os

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("halyard.config")


class ConfigError(Exception):
    """Settings that cannot be turned into a ``HalyardConfig``."""


@dataclass
class HalyardConfig:
    """
    Typed settings consumed by controllers and the application.

    Attributes:
        default_action: Action id used when a request names none
        log_level: Level passed to ``configure_logging``
        translation_category: Category used for framework messages
        strict_options: Unknown option fields on filters/actions/behaviors
            are a configuration fault when True, a logged warning otherwise
    """
    default_action: str = "index"
    log_level: str = "INFO"
    translation_category: str = "base"
    strict_options: bool = True


def _read_json(path: Path) -> Any:
    with path.open() as fh:
        return json.load(fh)


def _read_yaml(path: Path) -> Any:
    with path.open() as fh:
        return yaml.safe_load(fh)


_READERS = {
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
}

_TRUE = ("true", "yes")
_FALSE = ("false", "no")


class ConfigLoader:
    """
    Layered settings: files, then a ``.env`` file, then the process
    environment, then explicit overrides; each layer deep-merges over the
    previous one.

    Environment keys carry ``env_prefix`` and use ``__`` for nesting, so
    ``HALYARD_CONTROLLER__DEFAULT_ACTION=home`` lands on
    ``controller.default_action``.
    """

    def __init__(self, env_prefix: str = "HALYARD_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "HALYARD_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Build a loader from every layer.

        ``paths`` entries may be glob patterns; matches are read in sorted
        order. A missing ``env_file`` is skipped silently.
        """
        loader = cls(env_prefix=env_prefix)
        for pattern in paths or ():
            loader._load_files(pattern)
        if env_file:
            loader._load_env_file(env_file)
        loader._load_environ(os.environ)
        if overrides:
            loader._merge_dict(loader.config_data, overrides)
        return loader

    def _load_files(self, pattern: str):
        for match in sorted(glob(pattern)):
            path = Path(match)
            reader = _READERS.get(path.suffix.lower())
            if reader is None:
                logger.warning(f"Skipping {path}: not a JSON or YAML file")
                continue
            data = reader(path)
            if data:
                logger.debug(f"Loaded config layer {path}")
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        env_path = Path(path)
        if env_path.is_file():
            self._load_environ(dotenv_values(env_path))

    def _load_environ(self, environ: Mapping[str, Optional[str]]):
        for key, value in environ.items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        *parents, leaf = key[len(self.env_prefix):].lower().split("__")
        node = self.config_data
        for name in parents:
            child = node.get(name)
            if not isinstance(child, dict):
                child = node[name] = {}
            node = child
        node[leaf] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Best-effort typing of an environment string."""
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        for number in (int, float):
            try:
                return number(value)
            except ValueError:
                continue
        if value[:1] in ("{", "["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value

    def _merge_dict(self, target: dict, source: Mapping):
        for key, value in source.items():
            current = target.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                self._merge_dict(current, value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Look up ``"section.key"``; ``default`` when any segment is absent."""
        node: Any = self.config_data
        for name in path.split("."):
            if not isinstance(node, dict) or name not in node:
                return default
            node = node[name]
        return node

    def halyard_config(self, section: str = "controller") -> HalyardConfig:
        """Build a validated ``HalyardConfig`` from ``section``."""
        data = self.get(section, {}) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
        return self._instantiate_config(HalyardConfig, data)

    def _instantiate_config(self, config_class: Type, data: dict) -> Any:
        hints = get_type_hints(config_class)
        known = {f.name: f for f in fields(config_class)}

        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(
                f"Unknown {config_class.__name__} keys: {', '.join(unknown)}"
            )

        kwargs = {}
        for name, f in known.items():
            if name in data:
                kwargs[name] = self._coerce(name, data[name], hints.get(name, Any))
            elif f.default is MISSING and f.default_factory is MISSING:
                raise ConfigError(f"Missing required config key '{name}'")

        return config_class(**kwargs)

    @staticmethod
    def _coerce(name: str, value: Any, expected: Any) -> Any:
        if expected is Any or isinstance(value, expected):
            return value
        if expected is bool and isinstance(value, str):
            lowered = value.lower()
            if lowered in ("true", "yes", "1"):
                return True
            if lowered in ("false", "no", "0"):
                return False
        if expected is str and isinstance(value, (int, float)):
            return str(value)
        raise ConfigError(
            f"Config key '{name}' expects {expected.__name__}, got {type(value).__name__}"
        )
