"""Variant, VariantInstance and Proxy models.

A :class:`Variant` is a hashable tag describing a refinement of the base table
(``polars.DataFrame``): the columns it requires, row and ordering constraints,
and any extra predicates. A :class:`VariantInstance` pairs a payload frame with
a variant and auxiliary metadata. A :class:`Proxy` is the stripped structural
form handed to generic row/column operators.

Variants only refine through :meth:`Variant.refine`, which inherits every
constraint of the parent, so an instance that satisfies a child always
satisfies each ancestor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence, TypeAlias, Union

import polars as pl

from reframe.models.errors import ConfigError

if TYPE_CHECKING:
    from polars.datatypes import DataTypeClass

BASE_NAME = "base"

Predicate: TypeAlias = Callable[[pl.DataFrame, "VariantInstance"], bool]
DeriveMeta: TypeAlias = Callable[[pl.DataFrame, Mapping[str, Any]], Mapping[str, Any]]
ColumnSpec: TypeAlias = Union["pl.DataType", "DataTypeClass", None]


class MetaPolicy(str, Enum):
    """How auxiliary metadata travels through reconstruction."""

    COPY = "copy"
    RECOMPUTE = "recompute"


def _names(values: Sequence[str] | str | None) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(dict.fromkeys(str(v) for v in values))


def _merge_names(*groups: Sequence[str]) -> tuple[str, ...]:
    merged: dict[str, None] = {}
    for group in groups:
        merged.update(dict.fromkeys(group))
    return tuple(merged)


def column_map(
    columns: Mapping[str, ColumnSpec] | Sequence[str] | None,
    *required: str,
) -> dict[str, ColumnSpec]:
    """Normalize a column spec (names, or name -> dtype) and add untyped ``required`` names."""

    spec: dict[str, ColumnSpec] = {str(name): None for name in required}
    if columns is None:
        return spec
    if isinstance(columns, Mapping):
        spec.update((str(name), dtype) for name, dtype in columns.items())
    elif isinstance(columns, str):
        spec.setdefault(columns, None)
    else:
        for name in columns:
            spec.setdefault(str(name), None)
    return spec


def _column_pairs(columns: Mapping[str, ColumnSpec] | Sequence[str] | None) -> tuple[tuple[str, ColumnSpec], ...]:
    return tuple(column_map(columns).items())


@dataclass(frozen=True)
class Variant:
    """A named refinement of the base table with its own invariant."""

    name: str
    columns: tuple[tuple[str, ColumnSpec], ...] = ()
    fixed_columns: bool = False
    n_rows: int | None = None
    ordered_by: tuple[str, ...] = ()
    unique: tuple[tuple[str, ...], ...] = ()
    non_null: tuple[str, ...] = ()
    sticky: tuple[str, ...] = ()
    predicates: tuple[Predicate, ...] = ()
    params: tuple[tuple[str, Any], ...] = ()
    parent: Variant | None = None
    meta_policy: MetaPolicy = MetaPolicy.COPY
    derive_meta: DeriveMeta | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigError("Variant name must be non-empty")
        if self.n_rows is not None and self.n_rows < 0:
            raise ConfigError(f"Variant '{self.name}' has a negative n_rows ({self.n_rows})")
        if self.meta_policy is MetaPolicy.RECOMPUTE and self.derive_meta is None:
            raise ConfigError(f"Variant '{self.name}' recomputes metadata but has no derive_meta")
        seen: set[str] = set()
        for column, _dtype in self.columns:
            if column in seen:
                raise ConfigError(f"Variant '{self.name}' declares column '{column}' twice")
            seen.add(column)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def define(
        cls,
        name: str,
        *,
        columns: Mapping[str, ColumnSpec] | Sequence[str] | None = None,
        fixed_columns: bool = False,
        n_rows: int | None = None,
        ordered_by: Sequence[str] | str | None = None,
        unique: Sequence[Sequence[str] | str] | None = None,
        non_null: Sequence[str] | str | None = None,
        sticky: Sequence[str] | str | None = None,
        predicates: Sequence[Predicate] = (),
        params: Mapping[str, Any] | None = None,
        meta_policy: MetaPolicy | str = MetaPolicy.COPY,
        derive_meta: DeriveMeta | None = None,
    ) -> "Variant":
        """Build a variant that refines BASE directly."""

        return BASE.refine(
            name,
            columns=columns,
            fixed_columns=fixed_columns,
            n_rows=n_rows,
            ordered_by=ordered_by,
            unique=unique,
            non_null=non_null,
            sticky=sticky,
            predicates=predicates,
            params=params,
            meta_policy=meta_policy,
            derive_meta=derive_meta,
        )

    def refine(
        self,
        name: str,
        *,
        columns: Mapping[str, ColumnSpec] | Sequence[str] | None = None,
        fixed_columns: bool = False,
        n_rows: int | None = None,
        ordered_by: Sequence[str] | str | None = None,
        unique: Sequence[Sequence[str] | str] | None = None,
        non_null: Sequence[str] | str | None = None,
        sticky: Sequence[str] | str | None = None,
        predicates: Sequence[Predicate] = (),
        params: Mapping[str, Any] | None = None,
        meta_policy: MetaPolicy | str | None = None,
        derive_meta: DeriveMeta | None = None,
    ) -> "Variant":
        """Return a child variant carrying every constraint of ``self`` plus the given ones."""

        if name == BASE_NAME:
            raise ConfigError(f"'{BASE_NAME}' is reserved for the unrefined table")

        merged_columns = dict(self.columns)
        for column, dtype in _column_pairs(columns):
            parent_dtype = merged_columns.get(column)
            if parent_dtype is not None and dtype is not None and parent_dtype != dtype:
                raise ConfigError(
                    f"Variant '{name}' pins column '{column}' to {dtype} but '{self.name}' requires {parent_dtype}"
                )
            merged_columns[column] = dtype if dtype is not None else parent_dtype

        if self.n_rows is not None and n_rows is not None and self.n_rows != n_rows:
            raise ConfigError(f"Variant '{name}' cannot change the row count fixed by '{self.name}'")

        order = _names(ordered_by)
        if self.ordered_by and order and order[: len(self.ordered_by)] != self.ordered_by:
            raise ConfigError(
                f"Variant '{name}' ordering {order} must extend the ordering {self.ordered_by} of '{self.name}'"
            )

        unique_sets = tuple(_names(keys) for keys in (unique or ()))
        merged_unique = tuple(dict.fromkeys([*self.unique, *(keys for keys in unique_sets if keys)]))

        merged_params = dict(self.params)
        merged_params.update(params or {})

        policy = MetaPolicy(meta_policy) if meta_policy is not None else self.meta_policy
        derive = derive_meta if derive_meta is not None else self.derive_meta

        return Variant(
            name=name,
            columns=tuple(merged_columns.items()),
            fixed_columns=self.fixed_columns or fixed_columns,
            n_rows=n_rows if n_rows is not None else self.n_rows,
            ordered_by=order or self.ordered_by,
            unique=merged_unique,
            non_null=_merge_names(self.non_null, _names(non_null)),
            sticky=_merge_names(self.sticky, _names(sticky)),
            predicates=(*self.predicates, *predicates),
            params=tuple(sorted(merged_params.items())),
            parent=None if self.is_base else self,
            meta_policy=policy,
            derive_meta=derive,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def is_base(self) -> bool:
        return self.name == BASE_NAME and self.parent is None

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.columns)

    def dtype_of(self, column: str) -> ColumnSpec:
        return dict(self.columns).get(column)

    def param(self, key: str, default: Any = None) -> Any:
        return dict(self.params).get(key, default)

    def ancestors(self) -> tuple["Variant", ...]:
        """Parents from nearest to furthest, ending with BASE."""

        chain: list[Variant] = []
        current = self.parent
        while current is not None:
            chain.append(current)
            current = current.parent
        if not self.is_base:
            chain.append(BASE)
        return tuple(chain)

    def relaxed(self) -> "Variant":
        """Nearest variant in the refinement chain that allows missing values."""

        if not self.non_null:
            return self
        for ancestor in self.ancestors():
            if not ancestor.non_null:
                return ancestor
        return BASE

    @property
    def label(self) -> str:
        if not self.params:
            return self.name
        args = ", ".join(f"{key}={_format_param(value)}" for key, value in self.params)
        return f"{self.name}({args})"

    def describe(self) -> dict[str, Any]:
        """JSON-friendly summary used by logging and the CLI."""

        return {
            "name": self.name,
            "label": self.label,
            "columns": {name: (str(dtype) if dtype is not None else None) for name, dtype in self.columns},
            "fixed_columns": self.fixed_columns,
            "n_rows": self.n_rows,
            "ordered_by": list(self.ordered_by),
            "unique": [list(keys) for keys in self.unique],
            "non_null": list(self.non_null),
            "sticky": list(self.sticky),
            "predicates": len(self.predicates),
            "parent": self.parent.name if self.parent is not None else BASE_NAME,
            "meta_policy": self.meta_policy.value,
        }

    def __repr__(self) -> str:
        return f"Variant({self.label})"


def _format_param(value: Any) -> str:
    if isinstance(value, tuple):
        return "[" + ", ".join(str(v) for v in value) + "]"
    return str(value)


BASE = Variant(name=BASE_NAME)


@dataclass(frozen=True, eq=False)
class VariantInstance:
    """A payload frame tagged with a variant and its auxiliary metadata."""

    frame: pl.DataFrame
    variant: Variant
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.variant.is_base:
            raise ConfigError("BASE tables are plain polars DataFrames, not VariantInstances")
        if not isinstance(self.meta, MappingProxyType):
            object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    @property
    def columns(self) -> list[str]:
        return self.frame.columns

    @property
    def height(self) -> int:
        return self.frame.height

    @property
    def width(self) -> int:
        return self.frame.width

    @property
    def schema(self) -> pl.Schema:
        return self.frame.schema

    def to_frame(self) -> pl.DataFrame:
        """Strip all variant metadata."""
        return self.frame

    def equals(self, other: object) -> bool:
        """Equal by tag and content."""

        if not isinstance(other, VariantInstance):
            return False
        return self.variant == other.variant and self.frame.equals(other.frame)

    def __repr__(self) -> str:
        return f"VariantInstance({self.variant.label}, shape={self.frame.shape})"


@dataclass(frozen=True, eq=False)
class Proxy:
    """Stripped structural form of a table plus the variant it claims to uphold."""

    frame: pl.DataFrame
    variant: Variant = BASE


Tabular: TypeAlias = Union[pl.DataFrame, VariantInstance]


def frame_of(value: "Tabular | Proxy") -> pl.DataFrame:
    """Return the bare payload frame of any tabular value."""

    if isinstance(value, pl.DataFrame):
        return value
    if isinstance(value, (VariantInstance, Proxy)):
        return value.frame
    raise TypeError(f"Expected a polars DataFrame, VariantInstance or Proxy (got {type(value).__name__})")


def type_of(value: "Tabular | Proxy | Variant") -> Variant:
    """The variant a value is tagged with; BASE for bare frames."""

    if isinstance(value, Variant):
        return value
    if isinstance(value, pl.DataFrame):
        return BASE
    if isinstance(value, (VariantInstance, Proxy)):
        return value.variant
    raise TypeError(f"Cannot determine the variant of {type(value).__name__}")


__all__ = [
    "BASE",
    "BASE_NAME",
    "ColumnSpec",
    "DeriveMeta",
    "MetaPolicy",
    "Predicate",
    "Proxy",
    "Tabular",
    "Variant",
    "VariantInstance",
    "column_map",
    "frame_of",
    "type_of",
]
