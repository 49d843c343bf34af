# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""AppLoader - loads the configured application class from its root directory.

``application: "app:Application"`` in config.yaml names a module relative
to the application root and a class inside it. The module is loaded into a
virtual namespace (``genro_bridge_root.apps.<name>``) instead of putting the
root on sys.path, so two bridges in one process cannot shadow each other's
modules.

Usage:
    loader = AppLoader()
    cls = loader.load_class("app:Application", Path("/srv/app"))
    # module registered as: genro_bridge_root.apps.app

    loader.unload_all()

Resolution of ``pkg.sub:Class``:
    <root>/pkg/__init__.py (or <root>/pkg.py for a single module),
    then ``pkg.sub`` is imported relative to it.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType

from .exceptions import ConfigurationError

__all__ = ["AppLoader"]


class AppLoader:
    """Loads application modules into an isolated virtual namespace.

    Args:
        prefix: Root namespace prefix.
    """

    __slots__ = ("prefix", "_loaded_modules")

    def __init__(self, prefix: str = "genro_bridge_root") -> None:
        self.prefix = prefix
        self._loaded_modules: list[str] = []
        self._ensure_namespace()

    def _ensure_namespace(self) -> None:
        for name in (self.prefix, f"{self.prefix}.apps"):
            if name not in sys.modules:
                module = ModuleType(name)
                module.__path__ = []  # Make it a package
                sys.modules[name] = module
                self._loaded_modules.append(name)
        setattr(sys.modules[self.prefix], "apps", sys.modules[f"{self.prefix}.apps"])

    def load_class(self, spec: str, root_dir: Path) -> type:
        """Load ``module:Class`` relative to ``root_dir``.

        Raises:
            ConfigurationError: If the spec is malformed or the module file
                does not exist.
            ImportError, AttributeError: Errors from the module itself.
        """
        module_path, sep, class_name = spec.partition(":")
        if not sep or not module_path or not class_name:
            raise ConfigurationError(ConfigurationError.APP_SPEC_INVALID % spec)
        head, _, rest = module_path.partition(".")
        module = self.load_module(head, root_dir)
        if rest:
            module = importlib.import_module(f"{module.__name__}.{rest}")
        cls: type = getattr(module, class_name)
        return cls

    def load_module(self, name: str, root_dir: Path) -> ModuleType:
        """Load ``<root_dir>/<name>`` (package or single file) as ``<prefix>.apps.<name>``."""
        full_name = f"{self.prefix}.apps.{name}"
        package_dir = root_dir / name
        init_file = package_dir / "__init__.py"
        if init_file.exists():
            return self._load_module(full_name, init_file, package_path=package_dir)
        module_file = root_dir / f"{name}.py"
        if module_file.exists():
            return self._load_module(full_name, module_file)
        raise ConfigurationError(ConfigurationError.APP_SPEC_INVALID % name)

    def _load_module(self, full_name: str, file_path: Path, package_path: Path | None = None) -> ModuleType:
        existing = sys.modules.get(full_name)
        if existing is not None and getattr(existing, "__file__", None) == str(file_path):
            return existing

        spec = importlib.util.spec_from_file_location(
            full_name,
            file_path,
            submodule_search_locations=[str(package_path)] if package_path else None,
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load module {full_name} from {file_path}")

        module = importlib.util.module_from_spec(spec)
        module.__package__ = full_name if package_path else full_name.rsplit(".", 1)[0]

        # Register before executing (allows circular imports)
        sys.modules[full_name] = module
        self._loaded_modules.append(full_name)
        parent_name, attr_name = full_name.rsplit(".", 1)
        setattr(sys.modules[parent_name], attr_name, module)

        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(full_name, None)
            self._loaded_modules.remove(full_name)
            raise
        return module

    def unload_all(self) -> None:
        """Unload every module under the prefix."""
        prefix = f"{self.prefix}."
        for name in sorted(sys.modules, reverse=True):
            if name == self.prefix or name.startswith(prefix):
                del sys.modules[name]
        self._loaded_modules.clear()

    def list_loaded(self) -> list[str]:
        return list(self._loaded_modules)
