"""Contexts handed to registered extensions.

Extensions never receive these objects directly: ``call_extension`` expands the
fields into keyword arguments so an override only declares what it uses.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping

import polars as pl

from reframe.models.variants import Proxy, Tabular, Variant, VariantInstance

if TYPE_CHECKING:
    from reframe.extensions.registry import Registry
    from reframe.infrastructure.observability.logger import RunLogger
    from reframe.infrastructure.settings import Settings


class HookStage(str, Enum):
    ROW_SLICE = "row_slice"
    COL_MODIFY = "col_modify"
    COMMON_TYPE = "common_type"
    CAST = "cast"


@dataclass
class RowSliceContext:
    instance: VariantInstance
    selector: Any
    proxy: Proxy
    default: Callable[..., Tabular]
    registry: "Registry"
    settings: "Settings"
    logger: "RunLogger"


@dataclass
class ColModifyContext:
    instance: VariantInstance
    updates: Mapping[str, Any]
    default: Callable[..., Tabular]
    registry: "Registry"
    settings: "Settings"
    logger: "RunLogger"


@dataclass
class CommonTypeContext:
    left: Variant
    right: Variant
    logger: "RunLogger"


@dataclass
class CastContext:
    value: Tabular
    frame: pl.DataFrame
    source: Variant
    target: Variant
    settings: "Settings"
    logger: "RunLogger"


__all__ = [
    "CastContext",
    "ColModifyContext",
    "CommonTypeContext",
    "HookStage",
    "RowSliceContext",
]
