# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Middleware package - request pipeline middleware for genro-bridge."""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..response import Response
    from ..types import Handler

MIDDLEWARE_REGISTRY: dict[str, type["BaseMiddleware"]] = {}


class BaseMiddleware(ABC):
    """Base class for all middleware. Subclasses auto-register via __init_subclass__.

    Class attributes:
        middleware_name: Registry key (default: class name).
        middleware_order: Order in chain (lower = earlier). Ranges:
            100: Core (errors)
            200: Logging/Tracing
            300: Security
            400: Session
            500-800: Business logic (custom)
        middleware_default: Default on/off state. Default: False.
    """

    middleware_name: str = ""
    middleware_order: int = 500
    middleware_default: bool = False

    __slots__ = ()

    def __init__(self, **kwargs: Any) -> None:
        """Initialize middleware.

        Args:
            **kwargs: Middleware-specific configuration from YAML.
        """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        name = cls.middleware_name or cls.__name__
        if name in MIDDLEWARE_REGISTRY:
            raise ValueError(f"Middleware name '{name}' already registered")
        cls.middleware_name = name
        MIDDLEWARE_REGISTRY[name] = cls

    @abstractmethod
    def process(self, request: HttpRequest, handler: Handler) -> Response:
        """Handle the request, usually by calling ``handler(request)``."""


def _autodiscover() -> None:
    """Import all middleware modules in this package to trigger registration."""
    package_dir = Path(__file__).parent
    for py_file in package_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        importlib.import_module(f".{py_file.stem}", __package__)


def _parse_enabled(value: Any) -> bool:
    """Parse on/off/true/false value to bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("on", "true", "yes", "1")
    return bool(value)


def _enabled_names(middleware_config: Any) -> dict[str, bool]:
    config_dict: dict[str, bool] = {}
    if isinstance(middleware_config, str):
        # "logging, session" -> all enabled
        for name in middleware_config.split(","):
            name = name.strip()
            if name:
                config_dict[name] = True
    elif hasattr(middleware_config, "as_dict"):
        for name, value in middleware_config.as_dict().items():
            config_dict[name] = _parse_enabled(value)
    elif isinstance(middleware_config, dict):
        for name, value in middleware_config.items():
            config_dict[name] = _parse_enabled(value)
    elif middleware_config:
        for name in middleware_config:
            config_dict[name] = True
    return config_dict


def middleware_chain(
    middleware_config: str | list[str] | dict[str, Any] | None,
    full_config: Any = None,
) -> list[BaseMiddleware]:
    """Build the ordered middleware list from config.

    Uses middleware_order for sorting (lower = earlier, i.e. outermost) and
    middleware_default for the on/off state of names the config omits.

    YAML format:
        middleware:
          logging: on
          errors: off

        logging_middleware:
          level: DEBUG

    Args:
        middleware_config: Dict {name: on/off}, comma-separated string, or list.
        full_config: Full config object to lookup {name}_middleware sections.

    Returns:
        Middleware instances, outermost first.
    """
    config_dict = _enabled_names(middleware_config)

    enabled: list[tuple[int, str, type[BaseMiddleware]]] = []
    for name, cls in MIDDLEWARE_REGISTRY.items():
        is_enabled = config_dict[name] if name in config_dict else cls.middleware_default
        if is_enabled:
            enabled.append((cls.middleware_order, name, cls))
    enabled.sort(key=lambda x: x[0])

    chain: list[BaseMiddleware] = []
    for _order, name, cls in enabled:
        config: Any = {}
        if full_config is not None:
            mw_config = full_config[f"{name}_middleware"]
            if mw_config is not None:
                config = mw_config.as_dict() if hasattr(mw_config, "as_dict") else mw_config
        chain.append(cls(**config))
    return chain


_autodiscover()
_BUILTINS = {cls.__name__: cls for cls in MIDDLEWARE_REGISTRY.values()}
globals().update(_BUILTINS)

__all__ = [
    "BaseMiddleware",
    "MIDDLEWARE_REGISTRY",
    "middleware_chain",
    *_BUILTINS.keys(),
]
