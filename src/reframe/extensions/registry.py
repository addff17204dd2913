"""Registry container for variant families and their lattice/hook extensions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from reframe.extensions.invoke import call_extension
from reframe.infrastructure.observability.logger import NullLogger, RunLogger
from reframe.models.errors import ConfigError, HookError, ReframeError
from reframe.models.extension_contexts import HookStage
from reframe.models.variants import BASE_NAME, Variant

PairKey = Tuple[str, str]

ANY_SOURCE = "*"


@dataclass
class RegisteredFn:
    fn: Callable[..., Any]
    priority: int
    module: str
    qualname: str
    stage: HookStage | None = None
    key: Tuple[str, ...] = ()


def _canonical_pair(left: str, right: str) -> PairKey:
    return (left, right) if left <= right else (right, left)


class Registry:
    """Holds variant families, common-type resolvers, cast rules and hook overrides.

    The registry is open for registration until :meth:`finalize`; afterwards it is
    read-only and safe to share.
    """

    def __init__(self) -> None:
        self.families: Dict[str, Callable[..., Variant]] = {}
        self.common_type_rules: Dict[PairKey, List[RegisteredFn]] = {}
        self.cast_rules: Dict[PairKey, List[RegisteredFn]] = {}
        self.row_slice_overrides: Dict[str, List[RegisteredFn]] = {}
        self.col_modify_overrides: Dict[str, List[RegisteredFn]] = {}
        self._finalized = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _sort_key(self, item: RegisteredFn):
        return (-item.priority, item.module, item.qualname)

    def _ensure_open(self) -> None:
        if self._finalized:
            raise ConfigError("Registry is finalized; register extensions before finalize()")

    def _entry(self, fn: Callable[..., Any], *, priority: int, stage: HookStage, key: Tuple[str, ...]) -> RegisteredFn:
        if not callable(fn):
            raise ConfigError(f"{stage.value} extension must be callable (got {type(fn).__name__})")
        return RegisteredFn(
            fn=fn,
            priority=priority,
            module=getattr(fn, "__module__", "") or "",
            qualname=getattr(fn, "__qualname__", getattr(fn, "__name__", "<unknown>")),
            stage=stage,
            key=key,
        )

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, *, logger: RunLogger | None = None) -> "Registry":
        if self._finalized:
            return self
        for table in (
            self.common_type_rules,
            self.cast_rules,
            self.row_slice_overrides,
            self.col_modify_overrides,
        ):
            for entries in table.values():
                entries.sort(key=self._sort_key)
        self._finalized = True

        log = logger or NullLogger()
        log.event(
            "registry.finalized",
            level=logging.DEBUG,
            data={
                "families": sorted(self.families),
                "common_type_rules": len(self.common_type_rules),
                "cast_rules": len(self.cast_rules),
                "overrides": len(self.row_slice_overrides) + len(self.col_modify_overrides),
            },
        )
        return self

    # ------------------------------------------------------------------
    # Families
    # ------------------------------------------------------------------
    def register_family(self, name: str, factory: Callable[..., Variant]) -> None:
        self._ensure_open()
        if name == BASE_NAME:
            raise ConfigError(f"'{BASE_NAME}' is reserved for the unrefined table")
        if name in self.families:
            raise ConfigError(f"Variant family '{name}' already registered")
        if not callable(factory):
            raise ConfigError(f"Variant family '{name}' factory must be callable")
        self.families[name] = factory

    def family(self, name: str) -> Callable[..., Variant]:
        factory = self.families.get(name)
        if factory is None:
            known = ", ".join(sorted(self.families)) or "<none>"
            raise ConfigError(f"Unknown variant family '{name}' (known: {known})")
        return factory

    def build(self, name: str, *args: Any, **params: Any) -> Variant:
        """Instantiate a variant from a registered family."""

        factory = self.family(name)
        try:
            variant = factory(*args, **params)
        except TypeError as exc:
            raise ConfigError(f"Invalid parameters for variant family '{name}': {exc}") from exc
        if not isinstance(variant, Variant):
            raise ConfigError(f"Variant family '{name}' must return a Variant (got {type(variant).__name__})")
        return variant

    # ------------------------------------------------------------------
    # Lattice rules
    # ------------------------------------------------------------------
    def register_common_type(self, fn: Callable[..., Any], *, left: str, right: str, priority: int = 0) -> None:
        """Register a resolver for the unordered pair ``{left, right}``.

        Resolvers are called with ``left``/``right`` in canonical (sorted by name)
        order so the resulting common type is commutative by construction.
        """

        self._ensure_open()
        key = _canonical_pair(left, right)
        entry = self._entry(fn, priority=priority, stage=HookStage.COMMON_TYPE, key=key)
        self.common_type_rules.setdefault(key, []).append(entry)

    def register_cast(self, fn: Callable[..., Any], *, source: str, target: str, priority: int = 0) -> None:
        self._ensure_open()
        if target == BASE_NAME:
            raise ConfigError("Casts to the unrefined table always strip metadata and cannot be overridden")
        key = (source, target)
        entry = self._entry(fn, priority=priority, stage=HookStage.CAST, key=key)
        self.cast_rules.setdefault(key, []).append(entry)

    def common_type_rule(self, left: str, right: str) -> RegisteredFn | None:
        entries = self.common_type_rules.get(_canonical_pair(left, right))
        return entries[0] if entries else None

    def cast_rule(self, source: str, target: str) -> RegisteredFn | None:
        """Exact (source, target) rule first, then a rule registered for any source (``"*"``)."""

        entries = self.cast_rules.get((source, target)) or self.cast_rules.get((ANY_SOURCE, target))
        return entries[0] if entries else None

    # ------------------------------------------------------------------
    # Verb hook overrides
    # ------------------------------------------------------------------
    def register_row_slice(self, fn: Callable[..., Any], *, variant: str, priority: int = 0) -> None:
        self._ensure_open()
        entry = self._entry(fn, priority=priority, stage=HookStage.ROW_SLICE, key=(variant,))
        self.row_slice_overrides.setdefault(variant, []).append(entry)

    def register_col_modify(self, fn: Callable[..., Any], *, variant: str, priority: int = 0) -> None:
        self._ensure_open()
        entry = self._entry(fn, priority=priority, stage=HookStage.COL_MODIFY, key=(variant,))
        self.col_modify_overrides.setdefault(variant, []).append(entry)

    def row_slice_override(self, variant: str) -> RegisteredFn | None:
        entries = self.row_slice_overrides.get(variant)
        return entries[0] if entries else None

    def col_modify_override(self, variant: str) -> RegisteredFn | None:
        entries = self.col_modify_overrides.get(variant)
        return entries[0] if entries else None

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------
    def invoke(self, entry: RegisteredFn, ctx: Any, *, logger: RunLogger) -> Any:
        """Call a registered extension, wrapping unexpected failures in HookError."""

        stage = entry.stage.value if entry.stage is not None else "extension"
        data = {"stage": stage, "extension": entry.qualname, "key": list(entry.key)}
        logger.event("hook.start", level=logging.DEBUG, data=data)
        try:
            result = call_extension(entry.fn, ctx, label=f"{stage} extension {entry.qualname}", stage=stage)
        except ReframeError:
            raise
        except Exception as exc:
            message = f"Extension {entry.qualname} failed during {stage}"
            logger.exception(message, exc_info=exc)
            raise HookError(message, stage=stage) from exc
        logger.event("hook.end", level=logging.DEBUG, data=data)
        return result


__all__ = ["ANY_SOURCE", "Registry", "RegisteredFn"]
