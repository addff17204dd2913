"""Event payload schemas and schema registry for reframe logging.

Payload models are strict:
- ``extra="forbid"`` to prevent accidental schema drift
- runtime validation uses ``model_validate(..., strict=True)``
"""

from __future__ import annotations

from typing import Annotated, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

REFRAME_NAMESPACE = "reframe"
EXTENSION_NAMESPACE = "reframe.ext"

VALID_LOG_FORMATS = {"text", "ndjson", "json"}  # "json" is an alias for ndjson
DEFAULT_EVENT = "log"  # fallback event for plain log lines

PayloadModel: TypeAlias = type[BaseModel] | None

NonNegativeInt = Annotated[int, Field(ge=0)]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RegistryFinalizedPayload(StrictModel):
    families: list[str]
    common_type_rules: NonNegativeInt
    cast_rules: NonNegativeInt
    overrides: NonNegativeInt


class ReconstructPayload(StrictModel):
    variant: str
    row_count: NonNegativeInt
    column_count: NonNegativeInt
    violations: list[str]


class CommonTypePayload(StrictModel):
    left: str
    right: str
    result: str
    rule: Literal["identity", "resolver", "ancestor"]


class CastPayload(StrictModel):
    source: str
    target: str
    path: Literal["identity", "strip", "rule", "upcast", "checked"]


class CastFailedPayload(StrictModel):
    source: str
    target: str
    violations: list[str]


class BindRowsPayload(StrictModel):
    inputs: list[str]
    target: str
    result: str
    row_count: NonNegativeInt
    how: str


# Registry:
# - Missing key: unregistered (strict reframe.* will error; reframe.ext.* is open)
# - Value None: known-but-freeform payload (no validation)
# - Value BaseModel: validate + normalize payload through model
EVENT_SCHEMAS: dict[str, PayloadModel] = {
    f"{REFRAME_NAMESPACE}.{DEFAULT_EVENT}": None,
    f"{REFRAME_NAMESPACE}.settings.effective": None,
    f"{REFRAME_NAMESPACE}.registry.finalized": RegistryFinalizedPayload,
    f"{REFRAME_NAMESPACE}.reconstruct.kept": ReconstructPayload,
    f"{REFRAME_NAMESPACE}.reconstruct.demoted": ReconstructPayload,
    f"{REFRAME_NAMESPACE}.lattice.common_type": CommonTypePayload,
    f"{REFRAME_NAMESPACE}.lattice.cast": CastPayload,
    f"{REFRAME_NAMESPACE}.lattice.cast_failed": CastFailedPayload,
    f"{REFRAME_NAMESPACE}.verb.bind_rows": BindRowsPayload,
    f"{REFRAME_NAMESPACE}.hook.start": None,
    f"{REFRAME_NAMESPACE}.hook.end": None,
}


__all__ = [
    "REFRAME_NAMESPACE",
    "EXTENSION_NAMESPACE",
    "DEFAULT_EVENT",
    "VALID_LOG_FORMATS",
    "EVENT_SCHEMAS",
    "PayloadModel",
]
