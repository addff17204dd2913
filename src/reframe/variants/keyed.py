"""``keyed``: rows are identified by a unique combination of key columns."""

from __future__ import annotations

from typing import Mapping, Sequence

from reframe.models.errors import ConfigError
from reframe.models.variants import ColumnSpec, Variant, column_map

FAMILY = "keyed"


def keyed(*keys: str, columns: Mapping[str, ColumnSpec] | Sequence[str] | None = None) -> Variant:
    if not keys:
        raise ConfigError("keyed() needs at least one key column")
    return Variant.define(
        FAMILY,
        columns=column_map(columns, *keys),
        unique=[keys],
        params={"keys": tuple(keys)},
    )


def register(registry) -> None:
    registry.register_family(FAMILY, keyed)
