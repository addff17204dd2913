from __future__ import annotations

import polars as pl
import pytest

from reframe.models import BASE, ConfigError, MetaPolicy, Proxy, Variant, VariantInstance, frame_of, type_of
from reframe.models.variants import column_map
from reframe.variants import complete, keyed, partition


def test_base_is_unrefined():
    assert BASE.is_base
    assert BASE.parent is None
    assert BASE.ancestors() == ()
    assert BASE.label == "base"


def test_define_refines_base_directly():
    variant = Variant.define("ledger", columns=["id"], unique=[["id"]])
    assert variant.parent is None
    assert variant.ancestors() == (BASE,)
    assert variant.unique == (("id",),)


def test_refine_inherits_every_parent_constraint():
    parent = keyed("id", columns={"amount": pl.Float64})
    child = parent.refine("keyed_sorted", ordered_by="id", non_null=["amount"])

    assert child.parent == parent
    assert child.ancestors() == (parent, BASE)
    assert child.unique == parent.unique
    assert child.dtype_of("amount") == pl.Float64
    assert child.ordered_by == ("id",)
    assert child.non_null == ("amount",)
    assert child.param("keys") == ("id",)


def test_refine_rejects_conflicting_dtype_pin():
    parent = Variant.define("typed_x", columns={"x": pl.Int64})
    with pytest.raises(ConfigError):
        parent.refine("typed_x_str", columns={"x": pl.String})


def test_refine_rejects_changed_row_count_and_reserved_name():
    rigid = partition(3)
    with pytest.raises(ConfigError):
        rigid.refine("bigger", n_rows=4)
    with pytest.raises(ConfigError):
        rigid.refine("base")


def test_refine_ordering_must_extend_parent_ordering():
    parent = Variant.define("by_day", ordered_by=["day"])
    assert parent.refine("by_day_hour", ordered_by=["day", "hour"]).ordered_by == ("day", "hour")
    with pytest.raises(ConfigError):
        parent.refine("by_hour", ordered_by=["hour"])


def test_variants_compare_and_hash_by_value():
    assert keyed("id") == keyed("id")
    assert hash(keyed("id")) == hash(keyed("id"))
    assert keyed("id") != keyed("id", "region")
    assert len({keyed("id"), keyed("id"), partition(2)}) == 2


def test_label_includes_family_parameters():
    assert keyed("id", "region").label == "keyed(keys=[id, region])"
    assert partition(10).label == "partition(n_rows=10)"


def test_recompute_policy_requires_derive_meta():
    with pytest.raises(ConfigError):
        Variant.define("indexed", meta_policy=MetaPolicy.RECOMPUTE)


def test_relaxed_drops_to_nearest_ancestor_without_non_null():
    assert complete("a").relaxed() == BASE
    base_keyed = keyed("id")
    strict = base_keyed.refine("keyed_complete", non_null="id")
    assert strict.relaxed() == base_keyed
    assert base_keyed.relaxed() == base_keyed


def test_column_map_adds_required_names_first():
    assert column_map({"amount": pl.Float64}, "id") == {"id": None, "amount": pl.Float64}
    assert column_map(["a", "b"], "a") == {"a": None, "b": None}
    assert column_map(None) == {}


def test_instance_meta_is_read_only(orders):
    instance = VariantInstance(frame=orders, variant=keyed("id"), meta={"source": "erp"})
    with pytest.raises(TypeError):
        instance.meta["source"] = "other"  # type: ignore[index]
    assert instance.columns == ["id", "region", "amount"]
    assert instance.height == 4


def test_instances_cannot_be_tagged_base(orders):
    with pytest.raises(ConfigError):
        VariantInstance(frame=orders, variant=BASE)


def test_type_of_and_frame_of(orders):
    instance = VariantInstance(frame=orders, variant=keyed("id"))
    assert type_of(orders) == BASE
    assert type_of(instance) == keyed("id")
    assert type_of(Proxy(frame=orders, variant=partition(4))) == partition(4)
    assert frame_of(instance) is orders
    with pytest.raises(TypeError):
        frame_of([1, 2, 3])  # type: ignore[arg-type]


def test_instance_equals_compares_tag_and_content(orders):
    a = VariantInstance(frame=orders, variant=keyed("id"))
    b = VariantInstance(frame=orders.clone(), variant=keyed("id"))
    c = VariantInstance(frame=orders, variant=keyed("id", "region"))
    assert a.equals(b)
    assert not a.equals(c)
    assert not a.equals(orders)
