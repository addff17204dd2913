"""``sticky``: columns that survive selection and cannot be dropped."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from reframe.models.errors import ConfigError
from reframe.models.variants import Variant, VariantInstance

FAMILY = "sticky"


def sticky(*columns: str) -> Variant:
    if not columns:
        raise ConfigError("sticky() needs at least one column")
    return Variant.define(
        FAMILY,
        columns=list(columns),
        sticky=columns,
        params={"columns": tuple(columns)},
    )


def keep_sticky_columns(
    *,
    instance: VariantInstance,
    updates: Mapping[str, Any],
    default: Callable[..., Any],
    logger,
) -> Any:
    """Column-modify override: drop requests for sticky columns are ignored."""

    protected = set(instance.variant.sticky)
    kept = {name: value for name, value in updates.items() if not (value is None and name in protected)}
    ignored = sorted(set(updates) - set(kept))
    if ignored:
        logger.debug("Ignoring drop of sticky column(s): %s", ", ".join(ignored))
    return default(instance, kept)


def register(registry) -> None:
    registry.register_family(FAMILY, sticky)
    registry.register_col_modify(keep_sticky_columns, variant=FAMILY)
