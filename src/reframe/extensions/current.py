"""The registry that extension decorators register against."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

from reframe.extensions.registry import Registry

_active: ContextVar[Registry | None] = ContextVar("reframe_active_registry", default=None)


class RegistryNotActiveError(RuntimeError):
    """Raised when a decorator runs outside :func:`registry_context`."""


def set_current_registry(registry: Registry) -> Token:
    return _active.set(registry)


def reset_current_registry(token: Token) -> None:
    _active.reset(token)


def get_current_registry() -> Registry:
    registry = _active.get()
    if registry is None:
        raise RegistryNotActiveError(
            "No registry is active; import extension modules inside registry_context(registry)"
        )
    return registry


@contextmanager
def registry_context(registry: Registry) -> Iterator[Registry]:
    token = set_current_registry(registry)
    try:
        yield registry
    finally:
        reset_current_registry(token)


__all__ = [
    "RegistryNotActiveError",
    "get_current_registry",
    "registry_context",
    "reset_current_registry",
    "set_current_registry",
]
