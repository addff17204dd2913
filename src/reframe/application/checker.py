"""Invariant checking.

``check`` is a pure function of the candidate frame and the origin's declared
variant: it never consults history and never raises for ill-typed candidates.
A missing column, a wrong dtype or a predicate that raises (for example on
an empty slice) is a normal violation.
"""

from __future__ import annotations

from typing import Sequence

import polars as pl

from reframe.models.variants import Proxy, Tabular, Variant, VariantInstance, frame_of, type_of


def _is_sorted(frame: pl.DataFrame, columns: Sequence[str]) -> bool:
    keys = frame.select(list(columns))
    return keys.equals(keys.sort(list(columns), maintain_order=True))


def _run_predicates(frame: pl.DataFrame, variant: Variant, origin: VariantInstance) -> list[str]:
    found: list[str] = []
    for predicate in variant.predicates:
        name = getattr(predicate, "__qualname__", getattr(predicate, "__name__", repr(predicate)))
        try:
            ok = bool(predicate(frame, origin))
        except Exception as exc:
            found.append(f"predicate {name} could not be evaluated: {type(exc).__name__}: {exc}")
            continue
        if not ok:
            found.append(f"predicate {name} rejected the table")
    return found


def violations(
    candidate: Tabular | Proxy,
    variant: Variant,
    origin: VariantInstance | None = None,
    *,
    strict_dtypes: bool = True,
) -> list[str]:
    """Return the reasons ``candidate`` does not satisfy ``variant`` (empty when it does).

    ``origin`` is only forwarded to extra predicates; when omitted, predicates see
    a provisional instance wrapping the candidate itself.
    """

    frame = frame_of(candidate)
    if variant.is_base:
        return []

    found: list[str] = []
    schema = frame.schema
    present = set(frame.columns)

    for name, dtype in variant.columns:
        if name not in present:
            found.append(f"missing required column '{name}'")
        elif strict_dtypes and dtype is not None and schema[name] != dtype:
            found.append(f"column '{name}' has dtype {schema[name]}, expected {dtype}")

    if variant.fixed_columns:
        required = set(variant.column_names)
        extra = [name for name in frame.columns if name not in required]
        if extra:
            found.append(f"unexpected column(s) for a fixed column set: {', '.join(extra)}")

    if variant.n_rows is not None and frame.height != variant.n_rows:
        found.append(f"expected exactly {variant.n_rows} rows, found {frame.height}")

    for name in variant.non_null:
        if name not in present:
            found.append(f"missing non-null column '{name}'")
        elif frame.get_column(name).null_count():
            found.append(f"column '{name}' contains {frame.get_column(name).null_count()} missing value(s)")

    for keys in variant.unique:
        missing = [key for key in keys if key not in present]
        if missing:
            found.append(f"missing key column(s) {', '.join(missing)}")
            continue
        try:
            duplicated = int(frame.select(list(keys)).is_duplicated().sum())
        except pl.exceptions.PolarsError as exc:
            found.append(f"uniqueness of ({', '.join(keys)}) could not be evaluated: {exc}")
            continue
        if duplicated:
            found.append(f"{duplicated} row(s) share a value of ({', '.join(keys)})")

    if variant.ordered_by:
        missing = [key for key in variant.ordered_by if key not in present]
        if missing:
            found.append(f"missing ordering column(s) {', '.join(missing)}")
        else:
            try:
                if not _is_sorted(frame, variant.ordered_by):
                    found.append(f"rows are not sorted by ({', '.join(variant.ordered_by)})")
            except pl.exceptions.PolarsError as exc:
                found.append(f"ordering by ({', '.join(variant.ordered_by)}) could not be evaluated: {exc}")

    if variant.predicates:
        # Predicates assume the structural checks hold.
        if found:
            return found
        probe = origin if origin is not None else VariantInstance(frame=frame, variant=variant)
        found.extend(_run_predicates(frame, variant, probe))

    return found


def check(
    candidate: Tabular | Proxy,
    origin: VariantInstance | Variant | pl.DataFrame,
    *,
    strict_dtypes: bool = True,
) -> bool:
    """True when ``candidate`` still satisfies the variant ``origin`` is declared as."""

    variant = type_of(origin)
    instance = origin if isinstance(origin, VariantInstance) else None
    return not violations(candidate, variant, instance, strict_dtypes=strict_dtypes)


__all__ = ["check", "violations"]
