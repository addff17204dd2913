"""`reframe check` and `reframe bind` commands."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from reframe.application.engine import Engine, build_registry
from reframe.infrastructure.observability.context import create_run_logger_context
from reframe.infrastructure.settings import Settings
from reframe.models.errors import CastError, ConfigError, ReframeError
from reframe.models.variants import Variant, frame_of, type_of

from .common import (
    ARG_OPTION,
    DEBUG_OPTION,
    EXTENSION_OPTION,
    LOG_FORMAT_OPTION,
    LOG_LEVEL_OPTION,
    PARAM_OPTION,
    QUIET_OPTION,
    VARIANT_OPTION,
    LogFormat,
    parse_params,
    read_table,
    resolve_logging,
    write_table,
)


@contextmanager
def _engine(
    *,
    extensions: Optional[List[str]],
    log_format: Optional[LogFormat],
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
) -> Iterator[Engine]:
    settings = Settings()
    effective_format, effective_level = resolve_logging(
        log_format=log_format,
        log_level=log_level,
        debug=debug,
        quiet=quiet,
        settings=settings,
    )
    engine_settings = settings.model_copy(update={"log_format": effective_format, "log_level": effective_level})

    with create_run_logger_context(log_format=effective_format, log_level=effective_level) as log_ctx:
        try:
            registry = build_registry(extensions=extensions or (), logger=log_ctx.logger)
        except ConfigError as exc:
            typer.echo(f"Extension loading failed: {exc}", err=True)
            raise typer.Exit(code=2)
        yield Engine(settings=engine_settings, registry=registry, logger=log_ctx.logger)


def _build_variant(engine: Engine, family: str, args: Optional[List[str]], params: Optional[List[str]]) -> Variant:
    try:
        return engine.variant(family, *(args or ()), **parse_params(params or ()))
    except ConfigError as exc:
        typer.echo(f"Invalid variant: {exc}", err=True)
        raise typer.Exit(code=2)


def check_command(
    file: Path = typer.Argument(..., help="CSV, Parquet or NDJSON file to check."),
    variant: str = VARIANT_OPTION,
    arg: Optional[List[str]] = ARG_OPTION,
    param: Optional[List[str]] = PARAM_OPTION,
    extension: Optional[List[str]] = EXTENSION_OPTION,
    log_format: Optional[LogFormat] = LOG_FORMAT_OPTION,
    log_level: Optional[str] = LOG_LEVEL_OPTION,
    debug: bool = DEBUG_OPTION,
    quiet: bool = QUIET_OPTION,
) -> None:
    """Check whether a table satisfies a variant; exits 1 with the violations if not."""

    with _engine(extensions=extension, log_format=log_format, log_level=log_level, debug=debug, quiet=quiet) as engine:
        target = _build_variant(engine, variant, arg, param)
        frame = read_table(file)
        found = engine.violations(frame, target)

    if found:
        typer.echo(f"{file.name}: not {target.label}")
        for reason in found:
            typer.echo(f"- {reason}")
        raise typer.Exit(code=1)
    typer.echo(f"{file.name}: ok ({target.label}, {frame.height} rows)")


def bind_command(
    files: List[Path] = typer.Argument(..., help="Tables to concatenate, in order."),
    variant: str = VARIANT_OPTION,
    arg: Optional[List[str]] = ARG_OPTION,
    param: Optional[List[str]] = PARAM_OPTION,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the combined table here."),
    extension: Optional[List[str]] = EXTENSION_OPTION,
    log_format: Optional[LogFormat] = LOG_FORMAT_OPTION,
    log_level: Optional[str] = LOG_LEVEL_OPTION,
    debug: bool = DEBUG_OPTION,
    quiet: bool = QUIET_OPTION,
) -> None:
    """Cast every table to a variant, concatenate them and report the resulting type."""

    with _engine(extensions=extension, log_format=log_format, log_level=log_level, debug=debug, quiet=quiet) as engine:
        target = _build_variant(engine, variant, arg, param)
        tables = []
        for path in files:
            try:
                tables.append(engine.cast(read_table(path), target))
            except CastError as exc:
                typer.echo(f"{path.name}: cannot cast to {target.label}", err=True)
                for reason in exc.violations:
                    typer.echo(f"- {reason}", err=True)
                raise typer.Exit(code=1)

        try:
            result = engine.bind_rows(*tables)
        except ReframeError as exc:
            typer.echo(f"bind failed: {exc}", err=True)
            raise typer.Exit(code=1)

    result_type = type_of(result)
    kept = "kept" if result_type == target else "demoted"
    typer.echo(f"{len(files)} tables -> {result_type.label} ({kept}, {result.height} rows)")
    if output is not None:
        write_table(frame_of(result), output)
        typer.echo(f"wrote {output}")


__all__ = ["bind_command", "check_command"]
