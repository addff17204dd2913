"""End-to-end scenarios: reconstruction decisions through the public Engine API."""

from __future__ import annotations

import polars as pl
import pytest

from reframe import Engine
from reframe.models import BASE, CastError, VariantInstance, type_of
from reframe.variants import grouped, keyed, partition, schema


@pytest.fixture
def six_columns() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "id": [1, 2, 3],
            "name": ["ada", "bob", "cy"],
            "dept": ["eng", "ops", "eng"],
            "salary": [100.0, 90.0, 120.0],
            "start": ["2020-01-01", "2021-06-01", "2019-03-15"],
            "active": [True, True, False],
        }
    )


def test_keyed_tables_with_disjoint_keys_concatenate_keyed(engine, six_columns):
    first = engine.construct(six_columns, keyed("id"))
    second = engine.construct(six_columns.with_columns(pl.col("id") + 10), keyed("id"))

    combined = engine.bind_rows(first, second)
    assert type_of(combined) == keyed("id")
    assert combined.height == 6
    assert combined.width == 6


def test_keyed_self_concatenation_demotes(engine, six_columns):
    table = engine.construct(six_columns, keyed("id"))
    combined = engine.bind_rows(table, table)
    assert type_of(combined) == BASE
    assert combined.equals(pl.concat([six_columns, six_columns]))


def test_partition_survives_identity_slice_and_demotes_on_shorter_slice(engine):
    frame = pl.DataFrame({"i": list(range(10)), "v": [float(i) for i in range(10)]})
    page = engine.construct(frame, partition(10))

    same = engine.row_slice(page, list(range(10)))
    assert isinstance(same, VariantInstance)
    assert same.variant == partition(10)

    shorter = engine.row_slice(page, list(range(9)))
    assert isinstance(shorter, pl.DataFrame)
    assert shorter.equals(frame.head(9))


def test_pinned_columns_survive_unrelated_updates_but_not_retyping(engine, six_columns):
    typed = engine.construct(six_columns, schema({"id": pl.Int64, "salary": pl.Float64}))

    bonus = engine.col_modify(typed, {"bonus": pl.col("salary") * 0.1})
    assert type_of(bonus) == typed.variant

    retyped = engine.col_modify(typed, {"salary": pl.col("salary").cast(pl.Int64)})
    assert type_of(retyped) == BASE


def test_round_trip_through_base_preserves_the_table(engine, six_columns):
    for variant in (keyed("id"), partition(3), schema({"id": pl.Int64}), grouped("dept")):
        original = engine.construct(six_columns, variant)
        assert engine.cast(original, type_of(original)) is original
        restored = engine.cast(engine.cast(original, BASE), type_of(original))
        assert restored.equals(original)


def test_grouped_pipeline_keeps_group_index_current(engine, six_columns):
    table = engine.construct(six_columns, grouped("dept"))
    assert table.meta["groups"].height == 2

    active = engine.filter_rows(table, pl.col("active"))
    assert active.variant == grouped("dept")
    assert active.meta["groups"].get_column("rows").to_list() == [[0], [1]]

    without_key = engine.select(active, "name")
    assert type_of(without_key) == BASE


def test_casting_a_non_conforming_table_is_an_error(engine, six_columns):
    with pytest.raises(CastError) as excinfo:
        engine.cast(six_columns, keyed("dept"))
    assert excinfo.value.code == "incompatible"
