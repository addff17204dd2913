"""Built-in variant families.

Each module in this package defines its family factory and a
``register(registry)`` function installing the family together with its
common-type resolvers, cast rules and hook overrides.
:func:`register_builtin_variants` discovers and calls them in module-name order.
"""

from __future__ import annotations

from importlib import import_module
from pkgutil import iter_modules

from reframe.extensions.registry import Registry
from reframe.variants.complete import complete
from reframe.variants.grouped import group_index, grouped
from reframe.variants.keyed import keyed
from reframe.variants.labelled import label_meta, labelled, labels_of
from reframe.variants.partition import partition
from reframe.variants.schema import convert_dtypes, resolve_dtype, schema
from reframe.variants.series import series
from reframe.variants.sticky import sticky


def _iter_family_modules() -> list[str]:
    return sorted(
        f"{__name__}.{mod.name}"
        for mod in iter_modules(__path__)
        if not mod.ispkg and not mod.name.startswith("_")
    )


def register_builtin_variants(registry: Registry) -> Registry:
    for module_name in _iter_family_modules():
        register_fn = getattr(import_module(module_name), "register", None)
        if callable(register_fn):
            register_fn(registry)
    return registry


__all__ = [
    "complete",
    "convert_dtypes",
    "group_index",
    "grouped",
    "keyed",
    "label_meta",
    "labelled",
    "labels_of",
    "partition",
    "register_builtin_variants",
    "resolve_dtype",
    "schema",
    "series",
    "sticky",
]
