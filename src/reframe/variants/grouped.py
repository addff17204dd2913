"""``grouped``: a table with a group index over key columns.

The group index is auxiliary metadata recomputed after every reconstruction:
``meta["groups"]`` is a frame of distinct key values (in first-seen order) with
a ``rows`` list column of the row positions in each group.
"""

from __future__ import annotations

from typing import Any, Mapping

import polars as pl

from reframe.models.errors import ConfigError
from reframe.models.variants import BASE, MetaPolicy, Variant

FAMILY = "grouped"
ROWS_COLUMN = "rows"
_ROW_INDEX = "__reframe_row__"


def group_index(frame: pl.DataFrame, keys: tuple[str, ...]) -> pl.DataFrame:
    return (
        frame.select(list(keys))
        .with_row_index(_ROW_INDEX)
        .group_by(list(keys), maintain_order=True)
        .agg(pl.col(_ROW_INDEX).alias(ROWS_COLUMN))
    )


def grouped(*keys: str) -> Variant:
    if not keys:
        raise ConfigError("grouped() needs at least one group key")
    key_tuple = tuple(keys)

    def _derive(frame: pl.DataFrame, meta: Mapping[str, Any]) -> Mapping[str, Any]:
        return {**meta, "groups": group_index(frame, key_tuple)}

    return Variant.define(
        FAMILY,
        columns=list(key_tuple),
        params={"keys": key_tuple},
        meta_policy=MetaPolicy.RECOMPUTE,
        derive_meta=_derive,
    )


def group_keys(variant: Variant) -> tuple[str, ...]:
    return tuple(variant.param("keys", ()))


def common_groups(*, left: Variant, right: Variant) -> Variant:
    """Group by the keys both sides share; no shared key means no grouping."""

    left_keys, right_keys = group_keys(left), group_keys(right)
    shared = set(left_keys) & set(right_keys)
    if not shared:
        return BASE
    if shared == set(left_keys):
        return left
    if shared == set(right_keys):
        return right
    return grouped(*sorted(shared))


def regroup(*, frame: pl.DataFrame) -> pl.DataFrame:
    """Cast rule between grouped variants: the payload is kept and re-indexed on restore."""

    return frame


def register(registry) -> None:
    registry.register_family(FAMILY, grouped)
    registry.register_common_type(common_groups, left=FAMILY, right=FAMILY)
    registry.register_cast(regroup, source=FAMILY, target=FAMILY)
