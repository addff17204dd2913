"""Options, parsing and table IO shared by the CLI commands."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

import polars as pl
import typer
from typer import BadParameter

from reframe.infrastructure.settings import Settings


class LogFormat(str, Enum):
    """Supported log output formats."""

    text = "text"
    ndjson = "ndjson"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def resolve_log_level(log_level: Optional[str], default_level: int) -> int:
    if not log_level:
        return default_level
    level = logging.getLevelNamesMapping().get(str(log_level).upper())
    if level is not None:
        return level
    raise BadParameter(f"Invalid log level: {log_level}", param_hint="log_level")


def resolve_logging(
    *,
    log_format: Optional[LogFormat],
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
    settings: Settings,
) -> tuple[str, int]:
    """Return the effective (format, level); --quiet beats --debug beats --log-level beats settings."""
    effective_format = log_format.value if log_format else settings.log_format
    base_level = resolve_log_level(log_level, settings.log_level)

    if quiet:
        effective_level = logging.WARNING
    elif debug:
        effective_level = logging.DEBUG
    else:
        effective_level = base_level

    return effective_format, effective_level


# ---------------------------------------------------------------------------
# Variant parameters
# ---------------------------------------------------------------------------


def _parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    if "," in text:
        return [part.strip() for part in text.split(",") if part.strip()]
    return text


def parse_params(params: Sequence[str]) -> dict[str, Any]:
    """Parse repeated ``key=value`` options.

    Values are read as JSON when possible (``10``, ``true``, ``{"id": "Int64"}``),
    as a list when they contain commas, and as plain strings otherwise.
    """

    parsed: dict[str, Any] = {}
    for item in params:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise BadParameter(f"Expected key=value, got {item!r}", param_hint="param")
        parsed[key] = _parse_value(value.strip())
    return parsed


# ---------------------------------------------------------------------------
# Table IO
# ---------------------------------------------------------------------------

_READERS = {
    ".csv": pl.read_csv,
    ".parquet": pl.read_parquet,
    ".pq": pl.read_parquet,
    ".ndjson": pl.read_ndjson,
    ".jsonl": pl.read_ndjson,
}


def read_table(path: Path) -> pl.DataFrame:
    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        supported = ", ".join(sorted(_READERS))
        raise BadParameter(f"Unsupported file type '{path.suffix}' (supported: {supported})", param_hint="file")
    if not path.is_file():
        raise BadParameter(f"File not found: {path}", param_hint="file")
    return reader(path)


def write_table(frame: pl.DataFrame, path: Path) -> None:
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        frame.write_csv(path)
    elif suffix in {".parquet", ".pq"}:
        frame.write_parquet(path)
    elif suffix in {".ndjson", ".jsonl"}:
        frame.write_ndjson(path)
    else:
        raise BadParameter(f"Unsupported output type '{path.suffix}'", param_hint="output")


# ---------------------------------------------------------------------------
# Common reusable Typer options
# ---------------------------------------------------------------------------

VARIANT_OPTION = typer.Option(
    ...,
    "--variant",
    "-v",
    help="Variant family name (see `reframe variants`).",
)

ARG_OPTION = typer.Option(
    None,
    "--arg",
    "-a",
    help="Positional family argument (repeatable), e.g. a key column.",
)

PARAM_OPTION = typer.Option(
    None,
    "--param",
    "-p",
    help="Keyword family argument as key=value (repeatable).",
)

EXTENSION_OPTION = typer.Option(
    None,
    "--extension",
    "-e",
    help="Extension module (dotted name or .py path) registering extra variants (repeatable).",
)

LOG_FORMAT_OPTION = typer.Option(
    None,
    "--log-format",
    case_sensitive=False,
    help="Log output format.",
)

LOG_LEVEL_OPTION = typer.Option(
    None,
    "--log-level",
    case_sensitive=False,
    help="Log level (debug, info, warning, error, critical).",
)

DEBUG_OPTION = typer.Option(
    False,
    "--debug",
    help="Enable debug logging (reconstruction and lattice events).",
)

QUIET_OPTION = typer.Option(
    False,
    "--quiet",
    help="Reduce output to warnings and errors.",
)


__all__ = [
    "LogFormat",
    "parse_params",
    "read_table",
    "resolve_logging",
    "write_table",
    "ARG_OPTION",
    "DEBUG_OPTION",
    "EXTENSION_OPTION",
    "LOG_FORMAT_OPTION",
    "LOG_LEVEL_OPTION",
    "PARAM_OPTION",
    "QUIET_OPTION",
    "VARIANT_OPTION",
]
