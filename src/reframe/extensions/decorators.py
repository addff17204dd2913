"""Decorator helpers for extension modules.

Decorators register against the active registry (see :func:`registry_context`)
at import time::

    with registry_context(registry):
        import my_variants
"""
from __future__ import annotations

from typing import Any, Callable

from reframe.extensions.current import get_current_registry


def variant_family(name: str):
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        get_current_registry().register_family(name, fn)
        return fn

    return decorator


def common_type_rule(*, left: str, right: str, priority: int = 0):
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        get_current_registry().register_common_type(fn, left=left, right=right, priority=priority)
        return fn

    return decorator


def cast_rule(*, source: str, target: str, priority: int = 0):
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        get_current_registry().register_cast(fn, source=source, target=target, priority=priority)
        return fn

    return decorator


def row_slice_override(*, variant: str, priority: int = 0):
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        get_current_registry().register_row_slice(fn, variant=variant, priority=priority)
        return fn

    return decorator


def col_modify_override(*, variant: str, priority: int = 0):
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        get_current_registry().register_col_modify(fn, variant=variant, priority=priority)
        return fn

    return decorator


__all__ = [
    "cast_rule",
    "col_modify_override",
    "common_type_rule",
    "row_slice_override",
    "variant_family",
]
