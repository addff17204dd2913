"""Keyword-expansion calling convention for extensions.

Hook contexts are dataclasses. An extension never receives the context object
itself; each context field is passed as a keyword argument of the same name, so
an override only declares what it reads::

    def keep_sticky(*, instance, updates, default, **_):
        ...
"""

from __future__ import annotations

import dataclasses
import inspect
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable

from reframe.models.errors import HookError


@dataclass(frozen=True)
class Signature:
    """What an extension accepts, derived once per callable."""

    positional: tuple[str, ...]
    keywords: tuple[str, ...]
    required: frozenset[str]
    open_kwargs: bool

    @classmethod
    def of(cls, fn: Callable[..., Any]) -> "Signature":
        positional: list[str] = []
        keywords: list[str] = []
        required: set[str] = set()
        open_kwargs = False
        for param in inspect.signature(fn).parameters.values():
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                continue
            if param.kind is inspect.Parameter.VAR_KEYWORD:
                open_kwargs = True
                continue
            if param.default is inspect.Parameter.empty:
                required.add(param.name)
            target = positional if param.kind is inspect.Parameter.POSITIONAL_ONLY else keywords
            target.append(param.name)
        return cls(tuple(positional), tuple(keywords), frozenset(required), open_kwargs)


@lru_cache(maxsize=512)
def _cached_signature(fn: Callable[..., Any]) -> Signature:
    return Signature.of(fn)


def signature_of(fn: Callable[..., Any]) -> Signature:
    try:
        return _cached_signature(fn)
    except TypeError:  # unhashable callable
        return Signature.of(fn)


def context_fields(ctx: Any) -> dict[str, Any]:
    if dataclasses.is_dataclass(ctx) and not isinstance(ctx, type):
        return {field.name: getattr(ctx, field.name) for field in dataclasses.fields(ctx)}
    return dict(getattr(ctx, "__dict__", {}))


def call_extension(fn: Callable[..., Any], ctx: Any, *, label: str, stage: str | None = None) -> Any:
    """Call ``fn`` with the fields of ``ctx`` it declares.

    Undeclared fields are passed only when ``fn`` takes ``**kwargs``. A required
    parameter with no matching field raises :class:`HookError`.
    """

    sig = signature_of(fn)
    values = context_fields(ctx)

    missing = sorted(sig.required - values.keys())
    if missing:
        raise HookError(f"{label} is missing required parameters: {', '.join(missing)}", stage=stage)

    args = [values[name] for name in sig.positional if name in values]
    if sig.open_kwargs:
        kwargs = {name: value for name, value in values.items() if name not in sig.positional}
    else:
        kwargs = {name: values[name] for name in sig.keywords if name in values}
    return fn(*args, **kwargs)


__all__ = ["Signature", "call_extension", "context_fields", "signature_of"]
