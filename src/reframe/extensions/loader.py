"""Extension module loading.

An extension is a Python module, given either as a dotted import name or as a
path to a ``.py`` file. It is imported while its target registry is active, so
decorators in :mod:`reframe.extensions.decorators` register against it; if the
module also defines a top-level ``register(registry)`` function, that is called
afterwards.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Sequence

from reframe.extensions.current import registry_context
from reframe.extensions.registry import Registry
from reframe.models.errors import ConfigError


def _import_path(path: Path) -> ModuleType:
    module_name = f"reframe_ext_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"Cannot import extension file: {path}")
    # Re-import on every load so a fresh registry sees the decorators run again.
    sys.modules.pop(module_name, None)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def _import_name(name: str) -> ModuleType:
    sys.modules.pop(name, None)
    try:
        return importlib.import_module(name)
    except ModuleNotFoundError as exc:
        raise ConfigError(f"Extension module '{name}' could not be imported") from exc


def import_and_register(extensions: Sequence[str | Path], *, registry: Registry) -> list[str]:
    """Import extension modules into ``registry``.

    Returns the imported module names in load order.
    """

    loaded: list[str] = []
    with registry_context(registry):
        for ref in extensions:
            text = str(ref)
            if text.endswith(".py"):
                path = Path(text).expanduser().resolve()
                if not path.is_file():
                    raise ConfigError(f"Extension file does not exist: {path}")
                module = _import_path(path)
            else:
                module = _import_name(text)

            register_fn = getattr(module, "register", None)
            if register_fn is not None:
                if not callable(register_fn):
                    raise ConfigError(f"Extension module '{module.__name__}' defines a non-callable register")
                register_fn(registry)
            loaded.append(module.__name__)

    return loaded


__all__ = ["import_and_register"]
