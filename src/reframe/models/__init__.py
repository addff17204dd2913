from reframe.models.errors import CastError, ConfigError, HookError, ReframeError, SelectorError
from reframe.models.variants import (
    BASE,
    MetaPolicy,
    Proxy,
    Tabular,
    Variant,
    VariantInstance,
    frame_of,
    type_of,
)

__all__ = [
    "BASE",
    "CastError",
    "ConfigError",
    "HookError",
    "MetaPolicy",
    "Proxy",
    "ReframeError",
    "SelectorError",
    "Tabular",
    "Variant",
    "VariantInstance",
    "frame_of",
    "type_of",
]
