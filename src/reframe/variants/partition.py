"""``partition``: a row-rigid table with an exact row count."""

from __future__ import annotations

from typing import Mapping, Sequence

from reframe.models.errors import ConfigError
from reframe.models.variants import ColumnSpec, Variant, column_map

FAMILY = "partition"


def partition(n_rows: int, columns: Mapping[str, ColumnSpec] | Sequence[str] | None = None) -> Variant:
    try:
        rows = int(n_rows)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"partition() needs an integer row count (got {n_rows!r})") from exc
    return Variant.define(
        FAMILY,
        columns=column_map(columns),
        n_rows=rows,
        params={"n_rows": rows},
    )


def register(registry) -> None:
    registry.register_family(FAMILY, partition)
