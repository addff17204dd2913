"""Reconstruction supervisor.

Every row slice and column modification ends here: the candidate either keeps
the origin's variant (with its auxiliary metadata re-attached) or is demoted to
a bare ``polars.DataFrame``. Demotion is not an error; callers that care
compare ``type_of(result)`` with the variant they started from.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import polars as pl

from reframe.application.checker import violations
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.models.errors import ConfigError, HookError, ReframeError
from reframe.models.variants import (
    MetaPolicy,
    Proxy,
    Tabular,
    Variant,
    VariantInstance,
    frame_of,
    type_of,
)


def restore_meta(frame: pl.DataFrame, variant: Variant, meta: Mapping[str, Any]) -> Mapping[str, Any]:
    """Apply the variant's metadata policy to ``meta`` for the new payload ``frame``."""

    if variant.meta_policy is MetaPolicy.COPY:
        return dict(meta)

    if variant.derive_meta is None:
        raise ConfigError(f"Variant '{variant.name}' recomputes metadata but has no derive_meta")
    try:
        derived = variant.derive_meta(frame, meta)
    except ReframeError:
        raise
    except Exception as exc:
        raise HookError(f"Metadata derivation for '{variant.name}' failed", stage="derive_meta") from exc
    return dict(derived)


def reconstruct(
    candidate: Tabular | Proxy,
    origin: VariantInstance | Variant | pl.DataFrame,
    *,
    strict_dtypes: bool = True,
    logger: RunLogger | None = None,
) -> Tabular:
    """Re-attach ``origin``'s variant to ``candidate`` or demote it to a bare frame.

    The candidate's tag (if any) is ignored; only its payload is checked. Column
    names and rows come from the candidate, auxiliary metadata from ``origin``.
    """

    frame = frame_of(candidate)
    variant = type_of(origin)
    if variant.is_base:
        return frame

    log = logger or NullLogger()
    template = origin if isinstance(origin, VariantInstance) else None
    found = violations(frame, variant, template, strict_dtypes=strict_dtypes)
    payload = {
        "variant": variant.label,
        "row_count": frame.height,
        "column_count": frame.width,
        "violations": found,
    }

    if found:
        log.event("reconstruct.demoted", message=f"Demoted {variant.label} to base table", level=logging.DEBUG, data=payload)
        return frame

    meta = restore_meta(frame, variant, template.meta if template is not None else {})
    log.event("reconstruct.kept", level=logging.DEBUG, data=payload)
    return VariantInstance(frame=frame, variant=variant, meta=meta)


__all__ = ["reconstruct", "restore_meta"]
