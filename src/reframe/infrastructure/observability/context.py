"""Per-run logging setup used by the CLI."""

from __future__ import annotations

import logging
import sys
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from reframe.infrastructure.observability.formatters import NdjsonFormatter, TextFormatter
from reframe.infrastructure.observability.logger import RunLogger
from reframe.models.events import REFRAME_NAMESPACE, VALID_LOG_FORMATS


def _formatter_for(log_format: str) -> logging.Formatter:
    name = (log_format or "text").strip().lower()
    if name not in VALID_LOG_FORMATS:
        raise ValueError(f"Unsupported log format '{log_format}' (expected one of: text, ndjson, json)")
    return TextFormatter() if name == "text" else NdjsonFormatter()


@dataclass
class RunLogContext:
    """A RunLogger on a private, non-propagating logger; closing detaches its handlers."""

    logger: RunLogger
    base: logging.Logger
    handlers: list[logging.Handler] = field(default_factory=list)

    def close(self) -> None:
        while self.handlers:
            handler = self.handlers.pop()
            self.base.removeHandler(handler)
            handler.close()

    def __enter__(self) -> "RunLogContext":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def create_run_logger_context(
    *,
    namespace: str = REFRAME_NAMESPACE,
    log_format: str = "text",
    log_level: int = logging.INFO,
    enable_console_logging: bool = True,
    log_file: Path | None = None,
) -> RunLogContext:
    formatter = _formatter_for(log_format)
    run_id = uuid.uuid4().hex

    base = logging.getLogger(f"reframe.run.{run_id}")
    base.setLevel(log_level)
    base.propagate = False

    handlers: list[logging.Handler] = []
    if enable_console_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        base.addHandler(handler)

    return RunLogContext(
        logger=RunLogger(base, namespace=namespace, run_id=run_id),
        base=base,
        handlers=handlers,
    )


__all__ = ["RunLogContext", "create_run_logger_context"]
