"""``labelled``: column labels carried as auxiliary metadata.

The variant only requires the labelled columns to exist. Labels live in the
instance metadata under ``"labels"`` and pass unchanged through every
reconstruction. When a table arrives without labels (a cast out of BASE, for
instance) the labels given to :func:`labelled` are filled in, so a round trip
through BASE restores them.
"""

from __future__ import annotations

from typing import Any, Mapping

import polars as pl

from reframe.models.variants import MetaPolicy, Variant, VariantInstance

FAMILY = "labelled"


def labelled(**labels: str) -> Variant:
    defaults = dict(labels)

    def _derive(frame: pl.DataFrame, meta: Mapping[str, Any]) -> dict[str, Any]:
        if "labels" in meta:
            return dict(meta)
        return {**meta, "labels": dict(defaults)}

    return Variant.define(
        FAMILY,
        columns=list(labels),
        params={"columns": tuple(labels)},
        meta_policy=MetaPolicy.RECOMPUTE,
        derive_meta=_derive,
    )


def label_meta(**labels: str) -> dict[str, Any]:
    """Metadata seed for :func:`~reframe.application.lattice.cast` into a labelled variant."""

    return {"labels": dict(labels)}


def labels_of(instance: VariantInstance) -> Mapping[str, str]:
    return dict(instance.meta.get("labels", {}))


def register(registry) -> None:
    registry.register_family(FAMILY, labelled)
