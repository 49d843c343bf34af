# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Bridge configuration - layered options for one application root.

Config precedence (later overrides earlier):
    1. Built-in DEFAULTS
    2. Project config: <root_dir>/config/config.yaml
    3. Environment variables: GENRO_BRIDGE_*
    4. Command line arguments (argv)
    5. Explicit keyword overrides

config.yaml:
    application: "app:Application"   # module:Class, relative to root_dir
    debug: false

    middleware:
      logging: on

    logging_middleware:
      level: DEBUG

    session:
      cookie: GENROSESSID
      path: /
      httponly: true
      secure: false
      lifetime: 1440   # seconds before an unused session is evicted
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

from .exceptions import ConfigurationError
from .session import DEFAULT_SESSION_COOKIE, DEFAULT_SESSION_LIFETIME

__all__ = ["BridgeConfig", "CONFIG_DIR_NAME", "CONFIG_FILE_NAME"]

CONFIG_DIR_NAME = "config"
CONFIG_FILE_NAME = "config.yaml"

DEFAULTS = {"debug": False}

SESSION_DEFAULTS = {
    "cookie": DEFAULT_SESSION_COOKIE,
    "path": "/",
    "httponly": True,
    "secure": False,
    "lifetime": DEFAULT_SESSION_LIFETIME,
}


def _bridge_opts_spec(application: str, debug: bool) -> None:
    """Reference function for SmartOptions type extraction (no defaults)."""


def _as_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if hasattr(value, "as_dict"):
        return dict(value.as_dict())
    return dict(value)


class BridgeConfig:
    """Configuration of the application served by a bridge."""

    __slots__ = ("_opts", "root_dir")

    def __init__(
        self,
        root_dir: str | Path,
        argv: list[str] | None = None,
        **overrides: Any,
    ) -> None:
        self.root_dir = Path(root_dir)
        self._opts = self._build_config(argv or [], overrides)

    def _build_config(self, argv: list[str], overrides: dict[str, Any]) -> SmartOptions:
        config_path = self.config_file
        if config_path.exists():
            try:
                project_config = SmartOptions(str(config_path))
            except Exception as e:
                raise ConfigurationError(ConfigurationError.CONFIG_NOT_READABLE % config_path) from e
        else:
            project_config = SmartOptions({})

        env_argv_opts = SmartOptions(_bridge_opts_spec, env="GENRO_BRIDGE", argv=argv)
        caller_opts = SmartOptions(overrides, ignore_none=True)

        return SmartOptions(DEFAULTS) + project_config + env_argv_opts + caller_opts

    @property
    def config_dir(self) -> Path:
        """``<root_dir>/config``, handed to application factories."""
        return self.root_dir / CONFIG_DIR_NAME

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def application(self) -> str | None:
        """``module:Class`` spec of the application, if configured."""
        value = self._opts["application"]
        return str(value) if value else None

    @property
    def debug(self) -> bool:
        value = self._opts["debug"]
        if isinstance(value, str):
            return value.lower() in ("on", "true", "yes", "1")
        return bool(value)

    @property
    def middleware(self) -> Any:
        """Middleware on/off configuration (dict, list or comma string)."""
        value = self._opts["middleware"]
        if value is None:
            return {}
        if hasattr(value, "as_dict"):
            return value.as_dict()
        return value

    @property
    def session(self) -> dict[str, Any]:
        """Session cookie options merged over SESSION_DEFAULTS."""
        return {**SESSION_DEFAULTS, **_as_dict(self._opts["session"])}

    def section(self, name: str) -> dict[str, Any]:
        """A nested section as a plain dict, empty when absent."""
        return _as_dict(self._opts[name])

    def __getitem__(self, name: str) -> Any:
        """Proxy bracket access to underlying opts.

        ``session_middleware`` falls back to the cookie attributes of the
        ``session`` section (everything but ``cookie`` and ``lifetime``).
        """
        if name == "session_middleware":
            cookie_opts = {k: v for k, v in self.session.items() if k not in ("cookie", "lifetime")}
            return {**cookie_opts, **_as_dict(self._opts[name])}
        return self._opts[name]
