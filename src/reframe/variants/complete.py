"""``complete``: the given columns hold no missing values.

Structural operators only ever see the relaxed proxy of a complete table; the
restriction is re-established by the supervisor afterwards.
"""

from __future__ import annotations

from reframe.models.errors import ConfigError
from reframe.models.variants import Variant

FAMILY = "complete"


def complete(*columns: str) -> Variant:
    if not columns:
        raise ConfigError("complete() needs at least one column")
    return Variant.define(
        FAMILY,
        columns=list(columns),
        non_null=columns,
        params={"columns": tuple(columns)},
    )


def register(registry) -> None:
    registry.register_family(FAMILY, complete)
