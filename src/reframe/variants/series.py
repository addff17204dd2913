"""``series``: rows are order-significant and sorted by the given columns."""

from __future__ import annotations

from reframe.models.errors import ConfigError
from reframe.models.variants import BASE, Variant

FAMILY = "series"


def series(*order_by: str) -> Variant:
    if not order_by:
        raise ConfigError("series() needs at least one ordering column")
    return Variant.define(
        FAMILY,
        columns=list(order_by),
        ordered_by=order_by,
        params={"order_by": tuple(order_by)},
    )


def common_ordering(*, left: Variant, right: Variant) -> Variant:
    """Longest shared ordering prefix; sorted by it is implied by either ordering."""

    prefix: list[str] = []
    for a, b in zip(left.ordered_by, right.ordered_by):
        if a != b:
            break
        prefix.append(a)
    return series(*prefix) if prefix else BASE


def register(registry) -> None:
    registry.register_family(FAMILY, series)
    registry.register_common_type(common_ordering, left=FAMILY, right=FAMILY)
