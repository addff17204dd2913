"""Public API for :mod:`reframe`."""

from importlib import metadata
from pathlib import Path
from typing import TYPE_CHECKING
import tomllib

if TYPE_CHECKING:
    from reframe.application.engine import Engine, build_registry
    from reframe.application.lattice import cast, common_type, common_type_of, construct, is_refinement
    from reframe.extensions.registry import Registry
    from reframe.infrastructure.settings import Settings
    from reframe.models import BASE, CastError, Proxy, Variant, VariantInstance, frame_of, type_of


def _pyproject_version() -> str | None:
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        parsed = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        version = parsed.get("project", {}).get("version")
        if isinstance(version, str) and version:
            return version
    except (FileNotFoundError, OSError, tomllib.TOMLDecodeError):
        return None
    return None


def _resolve_version() -> str:
    # Prefer the local pyproject when running from a source checkout/editable install.
    version = _pyproject_version()
    if version is not None:
        return version

    try:
        return metadata.version("reframe")
    except metadata.PackageNotFoundError:  # pragma: no cover
        return "unknown"


__version__ = _resolve_version()

_EXPORTS = {
    "Engine": ("reframe.application.engine", "Engine"),
    "build_registry": ("reframe.application.engine", "build_registry"),
    "Registry": ("reframe.extensions.registry", "Registry"),
    "Settings": ("reframe.infrastructure.settings", "Settings"),
    "BASE": ("reframe.models", "BASE"),
    "CastError": ("reframe.models", "CastError"),
    "Proxy": ("reframe.models", "Proxy"),
    "Variant": ("reframe.models", "Variant"),
    "VariantInstance": ("reframe.models", "VariantInstance"),
    "frame_of": ("reframe.models", "frame_of"),
    "type_of": ("reframe.models", "type_of"),
    "cast": ("reframe.application.lattice", "cast"),
    "common_type": ("reframe.application.lattice", "common_type"),
    "common_type_of": ("reframe.application.lattice", "common_type_of"),
    "construct": ("reframe.application.lattice", "construct"),
    "is_refinement": ("reframe.application.lattice", "is_refinement"),
}


def __getattr__(name: str):
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    module = __import__(module_name, fromlist=[attr_name])
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = ["__version__", *_EXPORTS]
