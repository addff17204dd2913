"""``schema``: pinned column dtypes, optionally with a fixed column set.

``cast`` into a schema variant never changes dtypes: a table whose pinned
columns have other dtypes fails with ``CastError``. Call :func:`convert_dtypes`
first to opt into a lossless conversion.
"""

from __future__ import annotations

from typing import Mapping

import polars as pl

from reframe.models.errors import ConfigError
from reframe.models.variants import ColumnSpec, Variant

FAMILY = "schema"


def resolve_dtype(value: ColumnSpec | str) -> ColumnSpec:
    """Accept polars dtypes or their names (``"Int64"``, ``"String"``)."""

    if value is None or isinstance(value, pl.DataType):
        return value
    dtype = getattr(pl, value.strip(), None) if isinstance(value, str) else value
    if not (isinstance(dtype, type) and issubclass(dtype, pl.DataType)):
        raise ConfigError(f"Unknown polars dtype '{value}'")
    try:
        return dtype()
    except TypeError as exc:
        raise ConfigError(f"Dtype '{value}' needs parameters; pass a polars dtype instead") from exc


def schema(columns: Mapping[str, ColumnSpec | str], fixed: bool = False) -> Variant:
    if not isinstance(columns, Mapping) or not columns:
        raise ConfigError("schema() needs a non-empty mapping of column name to dtype")
    pinned = {str(name): resolve_dtype(dtype) for name, dtype in columns.items()}
    return Variant.define(
        FAMILY,
        columns=pinned,
        fixed_columns=bool(fixed),
        params={"columns": tuple(pinned)},
    )


def convert_dtypes(frame: pl.DataFrame, target: Variant) -> pl.DataFrame:
    """Cast ``frame`` to the dtypes pinned by ``target`` where that loses nothing.

    Every converted value must survive the round trip back to its original
    dtype; otherwise ``frame`` is returned unchanged.
    """

    current = frame.schema
    changes = {
        name: dtype
        for name, dtype in target.columns
        if dtype is not None and name in current and current[name] != dtype
    }
    if not changes:
        return frame

    try:
        converted = frame.with_columns([pl.col(name).cast(dtype, strict=True) for name, dtype in changes.items()])
        for name in changes:
            back = converted.get_column(name).cast(current[name], strict=False)
            if not back.equals(frame.get_column(name)):
                return frame
    except pl.exceptions.PolarsError:
        return frame
    return converted


def register(registry) -> None:
    registry.register_family(FAMILY, schema)
