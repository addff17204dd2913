"""Reframe error hierarchy."""

from __future__ import annotations

from typing import Sequence


class ReframeError(Exception):
    """Base class for reframe-specific exceptions."""


class ConfigError(ReframeError):
    """Raised when the variant registry is misused or a variant is invalid."""


class SelectorError(ReframeError):
    """Raised when a row selector or column update is malformed."""


class HookError(ReframeError):
    """Raised when a registered override, resolver, cast rule or metadata derivation fails."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class CastError(ReframeError):
    """Raised when a table cannot be cast to a stricter or unrelated variant."""

    INCOMPATIBLE = "incompatible"

    def __init__(
        self,
        message: str,
        *,
        source: str,
        target: str,
        code: str = INCOMPATIBLE,
        violations: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.source = source
        self.target = target
        self.code = code
        self.violations = tuple(violations)


__all__ = [
    "ReframeError",
    "ConfigError",
    "SelectorError",
    "HookError",
    "CastError",
]
