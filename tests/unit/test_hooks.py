from __future__ import annotations

import polars as pl
import pytest

from reframe.application.hooks import apply_selector, apply_updates, col_modify, reconstruct_hook, row_slice
from reframe.application.lattice import construct
from reframe.extensions.registry import Registry
from reframe.models import HookError, SelectorError, VariantInstance
from reframe.variants import complete, keyed, partition, register_builtin_variants, sticky


@pytest.mark.parametrize(
    "selector, expected",
    [
        (slice(1, 3), [2, 3]),
        ([3, 0], [4, 1]),
        ([True, False, False, True], [1, 4]),
        (pl.Series([2, 2]), [3, 3]),
        (pl.Series([True, None, True, False]), [1, 3]),
        (range(0), []),
    ],
)
def test_apply_selector(orders, selector, expected):
    assert apply_selector(orders, selector).get_column("id").to_list() == expected


def test_apply_selector_on_zero_width_frame_follows_row_count(orders):
    frame = orders.select([])
    selector = [0] if frame.height else []
    assert apply_selector(frame, selector).height == len(selector)
    assert apply_selector(frame, []).height == 0


@pytest.mark.parametrize(
    "selector",
    [[4], [-1], [True, False], [1, True], "0", pl.Series([1.0]), pl.Series([0, None])],
)
def test_apply_selector_rejects_malformed_selectors(orders, selector):
    with pytest.raises(SelectorError):
        apply_selector(orders, selector)


def test_apply_updates(orders):
    updated = apply_updates(
        orders,
        {
            "amount": pl.col("amount") * 2,
            "currency": "EUR",
            "flag": pl.Series([True, False, True, False]),
            "region": None,
        },
    )
    assert updated.columns == ["id", "amount", "currency", "flag"]
    assert updated.get_column("amount").to_list() == [20.0, 40.0, 60.0, 80.0]
    assert updated.get_column("currency").to_list() == ["EUR"] * 4


def test_apply_updates_rejects_wrong_length_series(orders):
    with pytest.raises(SelectorError):
        apply_updates(orders, {"flag": pl.Series([True])})


def test_row_slice_on_bare_frame_stays_bare(orders):
    result = row_slice(orders, [0, 1])
    assert isinstance(result, pl.DataFrame)
    assert result.height == 2


def test_row_slice_restores_the_variant(registry, orders):
    instance = construct(orders, keyed("id"), registry=registry)
    kept = row_slice(instance, [3, 1], registry=registry)
    assert isinstance(kept, VariantInstance)
    assert kept.variant == keyed("id")

    demoted = row_slice(instance, [1, 1], registry=registry)
    assert isinstance(demoted, pl.DataFrame)
    assert demoted.get_column("id").to_list() == [2, 2]


def test_row_slice_of_non_null_variant_is_restored(registry, orders):
    instance = construct(orders, complete("amount"), registry=registry)
    assert row_slice(instance, slice(0, 2), registry=registry).variant == complete("amount")


def test_col_modify_preserves_untouched_columns(registry, orders):
    instance = construct(orders, partition(4), registry=registry)
    result = col_modify(instance, {"amount": 0.0}, registry=registry)
    assert result.variant == partition(4)
    assert result.frame.select("id", "region").equals(orders.select("id", "region"))

    dropped = col_modify(construct(orders, keyed("id"), registry=registry), {"id": None}, registry=registry)
    assert isinstance(dropped, pl.DataFrame)
    assert "id" not in dropped.columns


def test_col_modify_introducing_nulls_demotes(registry, orders):
    instance = construct(orders, complete("amount"), registry=registry)
    result = col_modify(instance, {"amount": pl.lit(None, dtype=pl.Float64)}, registry=registry)
    assert isinstance(result, pl.DataFrame)


def test_sticky_override_refuses_to_drop_sticky_columns(registry, orders):
    instance = construct(orders, sticky("id"), registry=registry)
    result = col_modify(instance, {"id": None, "region": None}, registry=registry)
    assert isinstance(result, VariantInstance)
    assert result.columns == ["id", "amount"]


def _registry_with(**overrides) -> Registry:
    registry = Registry()
    register_builtin_variants(registry)
    for stage, fn in overrides.items():
        getattr(registry, f"register_{stage}")(fn, variant="keyed", priority=5)
    return registry.finalize()


def test_row_slice_override_receives_context_and_default(orders):
    seen: dict[str, object] = {}

    def reversed_slice(*, instance, selector, proxy, default):
        seen.update(selector=selector, proxy_variant=proxy.variant)
        return default(instance, list(reversed(selector)))

    registry = _registry_with(row_slice=reversed_slice)
    instance = construct(orders, keyed("id"), registry=registry)
    result = row_slice(instance, [0, 1], registry=registry)

    assert seen == {"selector": [0, 1], "proxy_variant": keyed("id")}
    assert isinstance(result, VariantInstance)
    assert result.frame.get_column("id").to_list() == [2, 1]


def test_override_results_are_reconstructed_again(orders):
    def duplicating(*, instance):
        return pl.concat([instance.frame, instance.frame])

    registry = _registry_with(row_slice=duplicating)
    instance = construct(orders, keyed("id"), registry=registry)
    assert isinstance(row_slice(instance, [0], registry=registry), pl.DataFrame)


def test_override_failures_raise_hook_error(orders):
    def broken(**_):
        raise RuntimeError("boom")

    registry = _registry_with(col_modify=broken)
    instance = construct(orders, keyed("id"), registry=registry)
    with pytest.raises(HookError) as excinfo:
        col_modify(instance, {"amount": 1.0}, registry=registry)
    assert excinfo.value.stage == "col_modify"


def test_override_must_return_a_table(orders):
    registry = _registry_with(col_modify=lambda **_: 42)
    instance = construct(orders, keyed("id"), registry=registry)
    with pytest.raises(HookError):
        col_modify(instance, {"amount": 1.0}, registry=registry)


def test_reconstruct_hook_reorders_under_the_template(registry, orders):
    instance = construct(orders, keyed("id"), registry=registry)
    result = reconstruct_hook(orders.select("amount", "id", "region"), instance)
    assert result.variant == keyed("id")
    assert result.columns == ["amount", "id", "region"]
