"""Log formatters for reframe events.

Both formatters read the structured fields ``RunLogger`` attaches to each
record (``event``, ``run_id``, ``event_id``, ``data``); plain stdlib records get
defaults.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from reframe.models.events import DEFAULT_EVENT

_MAX_TEXT_FIELDS = 6


def _timestamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def event_fields(record: logging.LogRecord, formatter: logging.Formatter) -> dict[str, Any]:
    """Flatten a log record into the event shape written by every formatter."""

    fields: dict[str, Any] = {
        "timestamp": _timestamp(record.created),
        "level": record.levelname.lower(),
        "event": str(getattr(record, "event", None) or DEFAULT_EVENT),
        "message": record.getMessage(),
        "run_id": str(getattr(record, "run_id", "") or ""),
    }
    event_id = getattr(record, "event_id", None)
    if event_id:
        fields["event_id"] = str(event_id)

    data = getattr(record, "data", None)
    if isinstance(data, Mapping) and data:
        fields["data"] = dict(data)

    if record.exc_info:
        exc_type, exc, _ = record.exc_info
        fields["error"] = {
            "type": exc_type.__name__ if exc_type is not None else "Exception",
            "message": str(exc) if exc is not None else "",
            "stack_trace": formatter.formatException(record.exc_info),
        }
    return fields


class NdjsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        return json.dumps(event_fields(record, self), ensure_ascii=False, default=str, separators=(",", ":"))


def _short(value: Any) -> str:
    if isinstance(value, (list, tuple)) and len(value) > 3:
        return f"[{len(value)} items]"
    text = str(value)
    return text if len(text) <= 80 else text[:79] + "…"


class TextFormatter(logging.Formatter):
    """Single-line human output: ``[time] LEVEL event: message (key=value, ...)``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        fields = event_fields(record, self)
        line = f"[{fields['timestamp']}] {fields['level'].upper()} {fields['event']}"
        if fields["message"] and fields["message"] != fields["event"]:
            line += f": {fields['message']}"

        data = fields.get("data") or {}
        if data:
            keys = sorted(data)
            shown = [f"{key}={_short(data[key])}" for key in keys[:_MAX_TEXT_FIELDS]]
            if len(keys) > _MAX_TEXT_FIELDS:
                shown.append("…")
            line += f" ({', '.join(shown)})"

        error = fields.get("error")
        if error:
            line += "\n" + error["stack_trace"].rstrip("\n")
        return line


__all__ = ["NdjsonFormatter", "TextFormatter", "event_fields"]
