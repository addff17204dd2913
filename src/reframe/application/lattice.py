"""Coercion lattice: common-type resolution and directed casts.

Variants are ordered by refinement: BASE is the bottom and every variant
refines its ``parent`` chain. ``common_type`` is reflexive and commutative by
construction (resolvers always see their operands in canonical order) and, for
pairs without a registered resolver, falls back to the lowest common ancestor,
which is associative in a tree.

Casting toward a less refined type always succeeds. Casting toward a stricter
or unrelated type succeeds only when the payload satisfies the target exactly;
otherwise :class:`~reframe.models.errors.CastError` is raised.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Mapping

import polars as pl

from reframe.application.checker import violations
from reframe.application.supervisor import reconstruct, restore_meta
from reframe.extensions.registry import Registry
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.infrastructure.settings import Settings
from reframe.models.errors import CastError, HookError
from reframe.models.extension_contexts import CastContext, CommonTypeContext
from reframe.models.variants import BASE, Proxy, Tabular, Variant, VariantInstance, frame_of, type_of

TypeLike = Variant | Tabular | Proxy


def is_refinement(child: TypeLike, ancestor: TypeLike) -> bool:
    """True when ``child`` equals ``ancestor`` or refines it."""

    child_v, ancestor_v = type_of(child), type_of(ancestor)
    return ancestor_v.is_base or child_v == ancestor_v or ancestor_v in child_v.ancestors()


def _lowest_common_ancestor(left: Variant, right: Variant) -> Variant:
    chain = (left, *left.ancestors())
    for candidate in (right, *right.ancestors()):
        if candidate in chain:
            return candidate
    return BASE


def _canonical_key(variant: Variant) -> tuple[str, str, str]:
    return (variant.name, variant.label, repr(variant.describe()))


def common_type(
    left: TypeLike,
    right: TypeLike,
    *,
    registry: Registry | None = None,
    logger: RunLogger | None = None,
) -> Variant:
    """Most refined type both operands can be cast to without loss."""

    log = logger or NullLogger()
    a, b = type_of(left), type_of(right)

    if a == b:
        result, rule = a, "identity"
    else:
        entry = registry.common_type_rule(a.name, b.name) if registry is not None else None
        if entry is not None:
            first, second = sorted((a, b), key=_canonical_key)
            resolved = registry.invoke(
                entry,
                CommonTypeContext(left=first, right=second, logger=log),
                logger=log,
            )
            if resolved is None:
                resolved = BASE
            if not isinstance(resolved, Variant):
                raise HookError(
                    f"Common-type resolver {entry.qualname} must return a Variant (got {type(resolved).__name__})",
                    stage="common_type",
                )
            result, rule = resolved, "resolver"
        else:
            result, rule = _lowest_common_ancestor(a, b), "ancestor"

    log.event(
        "lattice.common_type",
        level=logging.DEBUG,
        data={"left": a.label, "right": b.label, "result": result.label, "rule": rule},
    )
    return result


def common_type_of(
    *values: TypeLike,
    registry: Registry | None = None,
    logger: RunLogger | None = None,
) -> Variant:
    """Left fold of :func:`common_type` over ``values`` (BASE when empty)."""

    if not values:
        return BASE
    return reduce(
        lambda acc, value: common_type(acc, value, registry=registry, logger=logger),
        values[1:],
        type_of(values[0]),
    )


def _incompatible(source: Variant, target: Variant, found: list[str], log: RunLogger) -> CastError:
    log.event(
        "lattice.cast_failed",
        level=logging.DEBUG,
        data={"source": source.label, "target": target.label, "violations": found},
    )
    return CastError(
        f"Cannot cast {source.label} to {target.label}: {'; '.join(found)}",
        source=source.label,
        target=target.label,
        violations=found,
    )


def cast(
    value: Tabular | Proxy,
    to: TypeLike,
    *,
    meta: Mapping[str, Any] | None = None,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Directed conversion of ``value`` into the type ``to``.

    ``meta`` seeds the auxiliary metadata of the result when the source carries
    none for the target (casts out of BASE or from another family).
    """

    log = logger or NullLogger()
    settings = settings or Settings()
    if isinstance(value, Proxy):
        # A proxy's claim is never trusted: cast its payload as a bare table.
        value = value.frame
    source, target = type_of(value), type_of(to)
    frame = frame_of(value)

    def _done(result: Tabular, path: str) -> Tabular:
        log.event(
            "lattice.cast",
            level=logging.DEBUG,
            data={"source": source.label, "target": target.label, "path": path},
        )
        return result

    if target == source:
        return _done(value, "identity")

    if target.is_base:
        return _done(frame, "strip")

    if isinstance(value, VariantInstance) and value.variant.name == target.name:
        seed: Mapping[str, Any] = value.meta if meta is None else meta
    else:
        seed = meta or {}

    entry = registry.cast_rule(source.name, target.name) if registry is not None else None
    if entry is not None:
        ctx = CastContext(value=value, frame=frame, source=source, target=target, settings=settings, logger=log)
        converted = registry.invoke(entry, ctx, logger=log)
        if converted is None:
            raise HookError(f"Cast rule {entry.qualname} returned None", stage="cast")
        converted_frame = frame_of(converted)
        template = converted if isinstance(converted, VariantInstance) and converted.variant == target else None
        found = violations(converted_frame, target, template, strict_dtypes=settings.strict_dtypes)
        if found:
            raise _incompatible(source, target, found, log)
        if template is None:
            return _done(
                VariantInstance(frame=converted_frame, variant=target, meta=restore_meta(converted_frame, target, seed)),
                "rule",
            )
        return _done(reconstruct(converted_frame, template, strict_dtypes=settings.strict_dtypes, logger=log), "rule")

    if is_refinement(source, target):
        # Less refined: every constraint of ``target`` is inherited by ``source``.
        return _done(VariantInstance(frame=frame, variant=target, meta=restore_meta(frame, target, seed)), "upcast")

    found = violations(frame, target, None, strict_dtypes=settings.strict_dtypes)
    if found:
        raise _incompatible(source, target, found, log)
    return _done(VariantInstance(frame=frame, variant=target, meta=restore_meta(frame, target, seed)), "checked")


def construct(
    frame: pl.DataFrame,
    variant: Variant,
    *,
    meta: Mapping[str, Any] | None = None,
    registry: Registry | None = None,
    settings: Settings | None = None,
    logger: RunLogger | None = None,
) -> Tabular:
    """Explicitly tag ``frame`` as ``variant``; raises CastError when it does not qualify."""

    if not isinstance(frame, pl.DataFrame):
        raise TypeError(f"construct() expects a polars DataFrame (got {type(frame).__name__})")
    return cast(frame, variant, meta=meta, registry=registry, settings=settings, logger=logger)


__all__ = [
    "cast",
    "common_type",
    "common_type_of",
    "construct",
    "is_refinement",
]
