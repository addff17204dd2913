from __future__ import annotations

import sys
import textwrap

import pytest

from reframe.extensions.current import RegistryNotActiveError, get_current_registry, registry_context
from reframe.extensions.decorators import (
    cast_rule,
    col_modify_override,
    common_type_rule,
    row_slice_override,
    variant_family,
)
from reframe.extensions.loader import import_and_register
from reframe.extensions.registry import Registry
from reframe.models import ConfigError, Variant
from reframe.variants import keyed, register_builtin_variants


def test_builtin_families_are_registered(registry):
    assert sorted(registry.families) == [
        "complete",
        "grouped",
        "keyed",
        "labelled",
        "partition",
        "schema",
        "series",
        "sticky",
    ]
    assert registry.finalized
    assert registry.build("keyed", "id") == keyed("id")
    assert registry.family("keyed")("id") == keyed("id")


def test_unknown_family_and_bad_parameters_raise_config_error(registry):
    with pytest.raises(ConfigError):
        registry.family("nope")
    with pytest.raises(ConfigError):
        registry.build("partition", 1, 2, 3)


def test_duplicate_and_reserved_family_names_raise():
    reg = Registry()
    reg.register_family("ledger", lambda: Variant.define("ledger"))
    with pytest.raises(ConfigError):
        reg.register_family("ledger", lambda: Variant.define("ledger"))
    with pytest.raises(ConfigError):
        reg.register_family("base", lambda: Variant.define("other"))


def test_registration_after_finalize_raises():
    reg = Registry().finalize()
    with pytest.raises(ConfigError):
        reg.register_family("late", lambda: Variant.define("late"))
    with pytest.raises(ConfigError):
        reg.register_row_slice(lambda **_: None, variant="late")


def test_casts_to_base_cannot_be_overridden():
    with pytest.raises(ConfigError):
        Registry().register_cast(lambda **_: None, source="keyed", target="base")


def test_rules_sort_by_priority_then_name():
    reg = Registry()

    def low(**_):
        return None

    def high(**_):
        return None

    reg.register_common_type(low, left="a", right="b", priority=1)
    reg.register_common_type(high, left="b", right="a", priority=10)
    reg.finalize()

    assert [entry.fn for entry in reg.common_type_rules[("a", "b")]] == [high, low]
    assert reg.common_type_rule("b", "a").fn is high


def test_exact_cast_rules_win_over_any_source():
    reg = Registry()

    def exact(**_):
        return None

    def anything(**_):
        return None

    reg.register_cast(anything, source="*", target="typed")
    reg.register_cast(exact, source="keyed", target="typed")
    reg.finalize()

    assert reg.cast_rule("keyed", "typed").fn is exact
    assert reg.cast_rule("partition", "typed").fn is anything
    assert reg.cast_rule("partition", "keyed") is None


def test_decorators_need_an_active_registry():
    with pytest.raises(RegistryNotActiveError):
        get_current_registry()

    with pytest.raises(RegistryNotActiveError):

        @variant_family("orphan")
        def orphan():
            return Variant.define("orphan")


def test_decorators_register_against_the_active_registry():
    reg = Registry()
    with registry_context(reg):

        @variant_family("ledger")
        def ledger():
            return Variant.define("ledger", columns=["entry"])

        @common_type_rule(left="ledger", right="ledger")
        def merge(**_):
            return None

        @cast_rule(source="base", target="ledger")
        def convert(*, frame):
            return frame

        @row_slice_override(variant="ledger")
        def slice_ledger(*, default, instance, selector):
            return default(instance, selector)

        @col_modify_override(variant="ledger")
        def modify_ledger(*, default, instance, updates):
            return default(instance, updates)

    reg.finalize()
    assert reg.build("ledger") == Variant.define("ledger", columns=["entry"])
    assert reg.common_type_rule("ledger", "ledger").fn is merge
    assert reg.cast_rule("base", "ledger").fn is convert
    assert reg.row_slice_override("ledger").fn is slice_ledger
    assert reg.col_modify_override("ledger").fn is modify_ledger


def test_loader_imports_files_and_calls_register(tmp_path):
    module_path = tmp_path / "ledger_variants.py"
    module_path.write_text(
        textwrap.dedent(
            """
            from reframe.extensions.decorators import variant_family
            from reframe.models import Variant


            @variant_family("ledger")
            def ledger(*entries):
                return Variant.define("ledger", columns=list(entries) or ["entry"])


            def register(registry):
                registry.register_family("journal", lambda: Variant.define("journal"))
            """
        ),
        encoding="utf-8",
    )

    reg = Registry()
    register_builtin_variants(reg)
    loaded = import_and_register([module_path], registry=reg)

    assert loaded == ["reframe_ext_ledger_variants"]
    assert {"ledger", "journal", "keyed"} <= set(reg.families)


def test_loader_imports_dotted_modules(tmp_path, monkeypatch):
    package = tmp_path / "my_variants"
    package.mkdir()
    (package / "__init__.py").write_text(
        "from reframe.models import Variant\n\n"
        "def register(registry):\n"
        "    registry.register_family('audit', lambda: Variant.define('audit'))\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    reg = Registry()
    assert import_and_register(["my_variants"], registry=reg) == ["my_variants"]
    assert "audit" in reg.families
    sys.modules.pop("my_variants", None)


def test_loader_reports_missing_extensions(tmp_path):
    with pytest.raises(ConfigError):
        import_and_register([tmp_path / "missing.py"], registry=Registry())
    with pytest.raises(ConfigError):
        import_and_register(["definitely_not_a_module_xyz"], registry=Registry())
