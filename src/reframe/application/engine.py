from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import polars as pl

from reframe.application import checker, hooks, lattice, proxy, supervisor, verbs
from reframe.application.hooks import ColumnUpdate, Selector
from reframe.extensions.loader import import_and_register
from reframe.extensions.registry import Registry
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.infrastructure.settings import Settings
from reframe.models.variants import Proxy, Tabular, Variant, VariantInstance, type_of
from reframe.variants import register_builtin_variants


def build_registry(
    *,
    extensions: Sequence[str | Path] = (),
    include_builtins: bool = True,
    logger: RunLogger | None = None,
) -> Registry:
    """Create a finalized Registry with the built-in families plus ``extensions``."""

    registry = Registry()
    if include_builtins:
        register_builtin_variants(registry)
    if extensions:
        loaded = import_and_register(extensions, registry=registry)
        (logger or NullLogger()).debug("Loaded extension modules: %s", ", ".join(loaded))
    return registry.finalize(logger=logger)


class Engine:
    """Bundles a finalized registry, settings and a logger behind one API.

    Every method delegates to the module-level function of the same name with
    the engine's registry, settings and logger filled in.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        registry: Registry | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.logger = logger or NullLogger()
        self.registry = registry if registry is not None else build_registry(logger=self.logger)
        if not self.registry.finalized:
            self.registry.finalize(logger=self.logger)

        self.logger.event(
            "settings.effective",
            message="Effective reframe settings",
            level=logging.DEBUG,
            data={"settings": self.settings.model_dump(mode="json")},
        )

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------
    def variant(self, family: str, *args: Any, **params: Any) -> Variant:
        return self.registry.build(family, *args, **params)

    def families(self) -> list[str]:
        return sorted(self.registry.families)

    # ------------------------------------------------------------------
    # Checking and reconstruction
    # ------------------------------------------------------------------
    def violations(self, candidate: Tabular | Proxy, variant: Variant | VariantInstance) -> list[str]:
        origin = variant if isinstance(variant, VariantInstance) else None
        return checker.violations(
            candidate,
            type_of(variant),
            origin,
            strict_dtypes=self.settings.strict_dtypes,
        )

    def check(self, candidate: Tabular | Proxy, origin: VariantInstance | Variant | pl.DataFrame) -> bool:
        return checker.check(candidate, origin, strict_dtypes=self.settings.strict_dtypes)

    def reconstruct(self, candidate: Tabular | Proxy, origin: VariantInstance | Variant | pl.DataFrame) -> Tabular:
        return supervisor.reconstruct(
            candidate,
            origin,
            strict_dtypes=self.settings.strict_dtypes,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Lattice
    # ------------------------------------------------------------------
    def common_type(self, *values: lattice.TypeLike) -> Variant:
        return lattice.common_type_of(*values, registry=self.registry, logger=self.logger)

    def cast(self, value: Tabular | Proxy, to: lattice.TypeLike, *, meta: Mapping[str, Any] | None = None) -> Tabular:
        return lattice.cast(
            value,
            to,
            meta=meta,
            registry=self.registry,
            settings=self.settings,
            logger=self.logger,
        )

    def construct(self, frame: pl.DataFrame, variant: Variant, *, meta: Mapping[str, Any] | None = None) -> Tabular:
        return lattice.construct(
            frame,
            variant,
            meta=meta,
            registry=self.registry,
            settings=self.settings,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Proxy and hooks
    # ------------------------------------------------------------------
    def to_proxy(self, value: Tabular) -> Proxy:
        return proxy.to_proxy(value)

    def from_proxy(self, value: Proxy, origin: VariantInstance | Variant | pl.DataFrame) -> Tabular:
        return proxy.from_proxy(value, origin, strict_dtypes=self.settings.strict_dtypes, logger=self.logger)

    def row_slice(self, value: Tabular, selector: Selector) -> Tabular:
        return hooks.row_slice(value, selector, registry=self.registry, settings=self.settings, logger=self.logger)

    def col_modify(self, value: Tabular, updates: Mapping[str, ColumnUpdate]) -> Tabular:
        return hooks.col_modify(value, updates, registry=self.registry, settings=self.settings, logger=self.logger)

    def reconstruct_hook(
        self,
        candidate: Tabular | Proxy,
        template: VariantInstance | Variant | pl.DataFrame,
    ) -> Tabular:
        return hooks.reconstruct_hook(candidate, template, settings=self.settings, logger=self.logger)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------
    def filter_rows(self, value: Tabular, predicate: pl.Expr) -> Tabular:
        return verbs.filter_rows(value, predicate, **self._verb_kwargs())

    def arrange(self, value: Tabular, *by: str | pl.Expr, descending: bool | list[bool] = False) -> Tabular:
        return verbs.arrange(value, *by, descending=descending, **self._verb_kwargs())

    def head(self, value: Tabular, n: int = 5) -> Tabular:
        return verbs.head(value, n, **self._verb_kwargs())

    def mutate(self, value: Tabular, updates: Mapping[str, Any] | None = None, **columns: Any) -> Tabular:
        return verbs.mutate(value, {**(updates or {}), **columns}, **self._verb_kwargs())

    def select(self, value: Tabular, *names: str) -> Tabular:
        return verbs.select(value, *names, **self._verb_kwargs())

    def rename(self, value: Tabular, mapping: Mapping[str, str]) -> Tabular:
        return verbs.rename(value, mapping, settings=self.settings, logger=self.logger)

    def bind_rows(self, *tables: Tabular) -> Tabular:
        return verbs.bind_rows(*tables, **self._verb_kwargs())

    def _verb_kwargs(self) -> dict[str, Any]:
        return {"registry": self.registry, "settings": self.settings, "logger": self.logger}


__all__ = ["Engine", "build_registry"]
