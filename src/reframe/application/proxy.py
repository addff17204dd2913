"""Proxy/restore mapping for generic structural operators."""

from __future__ import annotations

import polars as pl

from reframe.application.supervisor import reconstruct
from reframe.infrastructure.observability.logger import RunLogger
from reframe.models.variants import BASE, Proxy, Tabular, Variant, VariantInstance


def to_proxy(value: Tabular) -> Proxy:
    """Strip auxiliary metadata without copying the payload.

    A variant that forbids missing values is proxied under its relaxed ancestor,
    so structural operators (which may introduce nulls) never claim it.
    """

    if isinstance(value, pl.DataFrame):
        return Proxy(frame=value, variant=BASE)
    if isinstance(value, VariantInstance):
        return Proxy(frame=value.frame, variant=value.variant.relaxed())
    raise TypeError(f"Cannot proxy {type(value).__name__}")


def from_proxy(
    proxy: Proxy,
    origin: VariantInstance | Variant | pl.DataFrame,
    *,
    strict_dtypes: bool = True,
    logger: RunLogger | None = None,
) -> Tabular:
    return reconstruct(proxy.frame, origin, strict_dtypes=strict_dtypes, logger=logger)


__all__ = ["from_proxy", "to_proxy"]
