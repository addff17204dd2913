"""Verb hook layer.

Every verb reduces to one of three entry points:

- :func:`row_slice` selects rows of the proxy, then restores through the supervisor.
- :func:`col_modify` adds, overwrites or drops columns, then reconstructs.
- :func:`reconstruct_hook` reconstructs a candidate the verb built itself.

A variant may override ``row_slice`` or ``col_modify`` in the registry. The
override's result is reconstructed again, so the supervisor stays the final
arbiter of whether the tag survives.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Mapping, Sequence, TypeAlias, Union

import polars as pl

from reframe.application.proxy import from_proxy, to_proxy
from reframe.application.supervisor import reconstruct
from reframe.extensions.registry import Registry
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.infrastructure.settings import Settings
from reframe.models.errors import HookError, SelectorError
from reframe.models.extension_contexts import ColModifyContext, RowSliceContext
from reframe.models.variants import Proxy, Tabular, Variant, VariantInstance

Selector: TypeAlias = Union[slice, range, Sequence[int], Sequence[bool], pl.Series]
ColumnUpdate: TypeAlias = Union[pl.Series, pl.Expr, None, Any]


# ---------------------------------------------------------------------------
# Structural operations on bare frames
# ---------------------------------------------------------------------------

def apply_selector(frame: pl.DataFrame, selector: Selector) -> pl.DataFrame:
    """Select rows of ``frame`` by position, mask, or slice."""

    height = frame.height
    if isinstance(selector, slice):
        selector = range(height)[selector]

    if isinstance(selector, pl.Series):
        series = selector
    elif isinstance(selector, (str, bytes)) or not isinstance(selector, (Sequence, range)):
        raise SelectorError(f"Unsupported row selector of type {type(selector).__name__}")
    else:
        values = list(selector)
        if values and all(isinstance(v, bool) for v in values):
            series = pl.Series("selector", values, dtype=pl.Boolean)
        elif all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            series = pl.Series("selector", values, dtype=pl.Int64)
        else:
            raise SelectorError("Row selectors must be all integers or all booleans")

    if series.dtype == pl.Boolean:
        if series.len() != height:
            raise SelectorError(f"Boolean mask has {series.len()} entries for {height} rows")
        return frame.filter(series.fill_null(False))

    if not series.dtype.is_integer():
        raise SelectorError(f"Row indices must be integers (got {series.dtype})")
    if series.null_count():
        raise SelectorError("Row indices must not contain nulls")
    if series.len() and (series.min() < 0 or series.max() >= height):
        raise SelectorError(f"Row index out of range for a table with {height} rows")
    if frame.width == 0:
        # No column to gather from; only the row count can follow the selector.
        return frame.slice(0, series.len())
    return frame.select(pl.all().gather(series.cast(pl.Int64)))


def apply_updates(frame: pl.DataFrame, updates: Mapping[str, ColumnUpdate]) -> pl.DataFrame:
    """Add or overwrite named columns; ``None`` drops a column. Rows are preserved."""

    exprs: list[pl.Expr | pl.Series] = []
    drops: list[str] = []
    for name, value in updates.items():
        if value is None:
            drops.append(name)
        elif isinstance(value, pl.Series):
            if value.len() != frame.height:
                raise SelectorError(
                    f"Column '{name}' has {value.len()} values for a table with {frame.height} rows"
                )
            exprs.append(value.alias(name))
        elif isinstance(value, pl.Expr):
            exprs.append(value.alias(name))
        else:
            exprs.append(pl.lit(value).alias(name))

    try:
        out = frame.with_columns(exprs) if exprs else frame
    except pl.exceptions.PolarsError as exc:
        raise SelectorError(f"Column update failed: {exc}") from exc
    if out.height != frame.height:
        raise SelectorError("Column updates must not change the number of rows")

    present = [name for name in drops if name in out.columns]
    return out.drop(present) if present else out


# ---------------------------------------------------------------------------
# Default hook implementations
# ---------------------------------------------------------------------------

def _default_row_slice(
    instance: VariantInstance,
    selector: Selector,
    *,
    settings: Settings,
    logger: RunLogger,
) -> Tabular:
    proxy = to_proxy(instance)
    sliced = Proxy(frame=apply_selector(proxy.frame, selector), variant=proxy.variant)
    return from_proxy(sliced, instance, strict_dtypes=settings.strict_dtypes, logger=logger)


def _default_col_modify(
    instance: VariantInstance,
    updates: Mapping[str, ColumnUpdate],
    *,
    settings: Settings,
    logger: RunLogger,
) -> Tabular:
    updated = apply_updates(instance.frame, updates)
    return reconstruct(updated, instance, strict_dtypes=settings.strict_dtypes, logger=logger)


def _arbitrate(result: Any, instance: VariantInstance, *, stage: str, settings: Settings, logger: RunLogger) -> Tabular:
    if not isinstance(result, (pl.DataFrame, VariantInstance, Proxy)):
        raise HookError(
            f"{stage} override must return a DataFrame, VariantInstance or Proxy (got {type(result).__name__})",
            stage=stage,
        )
    return reconstruct(result, instance, strict_dtypes=settings.strict_dtypes, logger=logger)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def row_slice(
    value: Tabular,
    selector: Selector,
    *,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    settings = settings or Settings()
    log = logger or NullLogger()
    if isinstance(value, pl.DataFrame):
        return apply_selector(value, selector)

    default = partial(_default_row_slice, settings=settings, logger=log)
    entry = registry.row_slice_override(value.variant.name) if registry is not None else None
    if entry is None:
        return default(value, selector)

    ctx = RowSliceContext(
        instance=value,
        selector=selector,
        proxy=to_proxy(value),
        default=default,
        registry=registry,
        settings=settings,
        logger=log,
    )
    result = registry.invoke(entry, ctx, logger=log)
    return _arbitrate(result, value, stage="row_slice", settings=settings, logger=log)


def col_modify(
    value: Tabular,
    updates: Mapping[str, ColumnUpdate],
    *,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    settings = settings or Settings()
    log = logger or NullLogger()
    if isinstance(value, pl.DataFrame):
        return apply_updates(value, updates)

    default = partial(_default_col_modify, settings=settings, logger=log)
    entry = registry.col_modify_override(value.variant.name) if registry is not None else None
    if entry is None:
        return default(value, updates)

    ctx = ColModifyContext(
        instance=value,
        updates=dict(updates),
        default=default,
        registry=registry,
        settings=settings,
        logger=log,
    )
    result = registry.invoke(entry, ctx, logger=log)
    return _arbitrate(result, value, stage="col_modify", settings=settings, logger=log)


def reconstruct_hook(
    candidate: Tabular | Proxy,
    template: VariantInstance | Variant | pl.DataFrame,
    *,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    settings = settings or Settings()
    return reconstruct(candidate, template, strict_dtypes=settings.strict_dtypes, logger=logger)


__all__ = [
    "ColumnUpdate",
    "Selector",
    "apply_selector",
    "apply_updates",
    "col_modify",
    "reconstruct_hook",
    "row_slice",
]
