"""Runtime settings, loaded with pydantic-settings.

Later sources win: a flat `settings.toml` in the working directory, then `.env`,
then `REFRAME_*` environment variables, then keyword arguments
passed to `Settings(...)`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, TomlConfigSettingsSource

ENV_PREFIX = "REFRAME_"

ConcatHow = Literal["vertical", "vertical_relaxed", "diagonal", "diagonal_relaxed"]


def _coerce_log_level(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if not text:
        return logging.INFO
    if text.isdigit():
        return int(text)
    level = logging.getLevelNamesMapping().get(text.upper())
    if level is None:
        raise ValueError(f"Invalid log_level: {value!r}")
    return level


class Settings(BaseSettings):
    """Runtime settings for reconstruction and combination."""

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix=ENV_PREFIX,
        env_file=".env",
    )

    # Logging
    log_format: Literal["text", "ndjson"] = Field(default="text")
    log_level: int = Field(default=logging.INFO)

    # Invariant checking
    strict_dtypes: bool = Field(
        default=True,
        description="Compare pinned column dtypes exactly. When false only column presence is checked.",
    )

    # Combination
    concat_how: ConcatHow = Field(
        default="diagonal_relaxed",
        description="polars.concat strategy used by bind_rows.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> int:
        return _coerce_log_level(value)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_settings = TomlConfigSettingsSource(settings_cls, toml_file=Path.cwd() / "settings.toml")

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            toml_settings,
            file_secret_settings,
        )


__all__ = ["ConcatHow", "ENV_PREFIX", "Settings"]
