"""Reference verbs.

Each verb decomposes into the hook layer: row operations go through
:func:`~reframe.application.hooks.row_slice`, column operations through
:func:`~reframe.application.hooks.col_modify`, and anything that rebuilds the
payload itself through :func:`~reframe.application.hooks.reconstruct_hook`.
Combination (:func:`bind_rows`) follows the lattice: find the common type, cast
every input to it, concatenate the proxies and reconstruct once.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import polars as pl

from reframe.application.hooks import col_modify, reconstruct_hook, row_slice
from reframe.application.lattice import cast, common_type_of
from reframe.application.proxy import to_proxy
from reframe.extensions.registry import Registry
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.infrastructure.settings import Settings
from reframe.models.errors import SelectorError
from reframe.models.variants import BASE, Tabular, VariantInstance, frame_of, type_of


def _evaluate(frame: pl.DataFrame, expr: pl.Expr, *, what: str) -> pl.Series:
    try:
        return frame.select(expr.alias("__reframe__")).to_series()
    except pl.exceptions.PolarsError as exc:
        raise SelectorError(f"Could not evaluate {what}: {exc}") from exc


def filter_rows(
    value: Tabular,
    predicate: pl.Expr,
    *,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Keep rows where ``predicate`` is true (missing counts as false)."""

    mask = _evaluate(frame_of(value), predicate, what="filter predicate")
    if mask.dtype != pl.Boolean:
        raise SelectorError(f"Filter predicate must be boolean (got {mask.dtype})")
    return row_slice(value, mask, registry=registry, settings=settings, logger=logger)


def arrange(
    value: Tabular,
    *by: str | pl.Expr,
    descending: bool | list[bool] = False,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    if not by:
        return value
    order = _evaluate(
        frame_of(value),
        pl.arg_sort_by(list(by), descending=descending, maintain_order=True),
        what="sort order",
    )
    return row_slice(value, order, registry=registry, settings=settings, logger=logger)


def head(
    value: Tabular,
    n: int = 5,
    *,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    return row_slice(value, slice(0, max(n, 0)), registry=registry, settings=settings, logger=logger)


def mutate(
    value: Tabular,
    updates: Mapping[str, Any] | None = None,
    *,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
    **columns: Any,
) -> Tabular:
    """Add, overwrite (Series, Expr or scalar) or drop (``None``) columns."""

    merged = {**(updates or {}), **columns}
    return col_modify(value, merged, registry=registry, settings=settings, logger=logger)


def select(
    value: Tabular,
    *names: str,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Keep ``names`` in the given order; sticky columns are kept after them."""

    frame = frame_of(value)
    missing = [name for name in names if name not in frame.columns]
    if missing:
        raise SelectorError(f"Cannot select unknown column(s): {', '.join(missing)}")

    sticky = [name for name in type_of(value).sticky if name in frame.columns and name not in names]
    keep = set(names) | set(sticky)
    drops = {name: None for name in frame.columns if name not in keep}
    reduced = col_modify(value, drops, registry=registry, settings=settings, logger=logger) if drops else value

    reduced_frame = frame_of(reduced)
    order = [name for name in (*names, *sticky) if name in reduced_frame.columns]
    order.extend(name for name in reduced_frame.columns if name not in order)
    return reconstruct_hook(reduced_frame.select(order), reduced, settings=settings, logger=logger)


def rename(
    value: Tabular,
    mapping: Mapping[str, str],
    *,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Rename payload columns; the variant survives only if it still holds under the new names."""

    frame = frame_of(value)
    missing = [name for name in mapping if name not in frame.columns]
    if missing:
        raise SelectorError(f"Cannot rename unknown column(s): {', '.join(missing)}")
    try:
        renamed = frame.rename(dict(mapping))
    except pl.exceptions.PolarsError as exc:
        raise SelectorError(f"Rename failed: {exc}") from exc
    return reconstruct_hook(renamed, value, settings=settings, logger=logger)


def bind_rows(
    *tables: Tabular,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Concatenate tables under their common type.

    Raises :class:`~reframe.models.errors.CastError` only if a registered
    resolver proposes a type some input cannot be cast to.
    """

    if not tables:
        raise SelectorError("bind_rows() needs at least one table")
    settings = settings or Settings()
    log = logger or NullLogger()

    target = common_type_of(*tables, registry=registry, logger=log)
    converted = [cast(table, target, registry=registry, settings=settings, logger=log) for table in tables]
    proxies = [to_proxy(table) for table in converted]

    try:
        combined = pl.concat([proxy.frame for proxy in proxies], how=settings.concat_how)
    except pl.exceptions.PolarsError as exc:
        raise SelectorError(f"Tables cannot be concatenated with how='{settings.concat_how}': {exc}") from exc

    template = converted[0] if isinstance(converted[0], VariantInstance) else BASE
    result = reconstruct_hook(combined, template, settings=settings, logger=log)
    log.event(
        "verb.bind_rows",
        level=logging.DEBUG,
        data={
            "inputs": [type_of(table).label for table in tables],
            "target": target.label,
            "result": type_of(result).label,
            "row_count": combined.height,
            "how": settings.concat_how,
        },
    )
    return result


__all__ = [
    "arrange",
    "bind_rows",
    "filter_rows",
    "head",
    "mutate",
    "rename",
    "select",
]
