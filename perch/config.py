"""
Config system - layered configuration and the application config object.

ConfigLoader merges (later overrides earlier):
1. Defaults
2. ``.env`` file (``PERCH_*`` keys only)
3. Environment variables (``PERCH_*``)
4. Manual overrides

``PERCH_INTROSPECTION_PATH=/docs`` becomes ``{"introspection_path": "/docs"}``;
a double underscore nests (``PERCH_ENV__API_KEY`` -> ``{"env": {"API_KEY": ...}}``).
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from dotenv import dotenv_values

from .faults import ConfigInvalidFault
from .middleware import TopMiddleware
from .response import Response

ErrorHook = Callable[[BaseException, Any], Union[Response, Awaitable[Response]]]
NotFoundHook = Callable[[Any], Union[Response, Awaitable[Response]]]


DEFAULTS: Dict[str, Any] = {
    "base": "/",
    "enable_introspection": False,
    "introspection_path": "/introspection",
    "debug": False,
}


class ConfigLoader:
    """Loads and merges configuration from defaults, .env, environment and overrides."""

    def __init__(self, env_prefix: str = "PERCH_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        env_prefix: str = "PERCH_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from all sources.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to .env file (skipped if missing)
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping (defaults to ``os.environ``)
        """
        loader = cls(env_prefix=env_prefix)
        loader._merge_dict(loader.config_data, json.loads(json.dumps(DEFAULTS)))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_env_file(self, path: str):
        """Load ``PERCH_*`` keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ: Mapping[str, str]):
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert PERCH_ENV__API_KEY to a nested dict entry."""
        key = key[len(self.env_prefix):]

        # Split by double underscore; nested keys keep their case
        parts = key.split("__")
        parts[0] = parts[0].lower()

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_dict(self) -> Dict[str, Any]:
        return self.config_data


@dataclass
class AppConfig:
    """
    Application configuration for ``build_app()``.

    Attributes:
        base: Prefix for every compiled route
        top_middlewares: Path-scoped application middlewares
        on_error: ``(exc, ctx) -> Response`` for failures escaping a chain
        not_found_handler: ``(ctx) -> Response`` for unmatched requests
        enable_introspection: Serve the introspection document
        introspection_path: Where to serve it (joined with ``base``)
        env: Host environment handed to requests (``None``: ``os.environ``)
        debug: Include exception details in 500 responses
    """

    base: str = "/"
    top_middlewares: List[TopMiddleware] = field(default_factory=list)
    on_error: Optional[ErrorHook] = None
    not_found_handler: Optional[NotFoundHook] = None
    enable_introspection: bool = False
    introspection_path: str = "/introspection"
    env: Optional[Mapping[str, Any]] = None
    debug: bool = False

    @classmethod
    def from_loader(cls, loader: ConfigLoader, **hooks: Any) -> "AppConfig":
        """
        Build from loaded settings; callables (middlewares, hooks) come
        from ``hooks``.

        Raises:
            ConfigInvalidFault: On settings of the wrong type
        """
        base = loader.get("base", "/")
        path = loader.get("introspection_path", "/introspection")
        for key, value in (("base", base), ("introspection_path", path)):
            if not isinstance(value, str) or not value.startswith("/"):
                raise ConfigInvalidFault(key, "must be a path starting with '/'")

        env = loader.get("env")
        if env is not None and not isinstance(env, dict):
            raise ConfigInvalidFault("env", "must be a mapping")

        return cls(
            base=base,
            enable_introspection=bool(loader.get("enable_introspection", False)),
            introspection_path=path,
            env=env,
            debug=bool(loader.get("debug", False)),
            **hooks,
        )
