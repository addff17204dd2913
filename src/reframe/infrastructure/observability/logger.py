"""``RunLogger``: stdlib logging with named, schema-checked events.

Plain log calls work as usual and are tagged with the default ``log`` event.
:meth:`RunLogger.event` emits a named domain event; names are qualified under
the logger's namespace, and events in the core ``reframe`` namespace must be
declared in :data:`~reframe.models.events.EVENT_SCHEMAS` with their payload
validated by the declared model. Extension events (``reframe.ext.*``) are
free-form unless declared.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any, TypeAlias

from pydantic import ValidationError

from reframe.models.events import (
    DEFAULT_EVENT,
    EVENT_SCHEMAS,
    EXTENSION_NAMESPACE,
    REFRAME_NAMESPACE,
)

EventData: TypeAlias = Mapping[str, Any]


def normalize_dotpath(value: str | None) -> str:
    return (value or "").strip().strip(".")


def qualify_event_name(event_name: str, namespace: str) -> str:
    """Place ``event_name`` under ``namespace``.

    ``reframe.audit`` under ``reframe.ext`` becomes ``reframe.ext.audit``: a
    name sharing the namespace root is grafted rather than double-prefixed.
    """

    name, ns = normalize_dotpath(event_name), normalize_dotpath(namespace)
    if not ns:
        return name or "invalid_event"
    if not name:
        return f"{ns}.invalid_event"
    if name == ns or name.startswith(ns + "."):
        return name

    root = ns.partition(".")[0]
    if name.startswith(root + "."):
        name = name[len(root) + 1 :]
    return f"{ns}.{name}"


def _under(full_event: str, namespace: str) -> bool:
    return full_event == namespace or full_event.startswith(namespace + ".")


def validate_event(full_event: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Check ``payload`` against the declared schema for ``full_event``."""

    strict = _under(full_event, REFRAME_NAMESPACE) and not _under(full_event, EXTENSION_NAMESPACE)
    if strict and full_event not in EVENT_SCHEMAS:
        raise ValueError(f"Unknown reframe event '{full_event}' (declare it in EVENT_SCHEMAS)")

    model = EVENT_SCHEMAS.get(full_event)
    if model is None:
        return payload
    try:
        return model.model_validate(payload, strict=True).model_dump(mode="python")
    except ValidationError as exc:
        raise ValueError(f"Invalid payload for event '{full_event}': {exc}") from exc


class RunLogger(logging.LoggerAdapter):
    """LoggerAdapter stamping records with ``run_id``, ``event_id`` and ``event``."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        namespace: str = REFRAME_NAMESPACE,
        run_id: str | None = None,
    ) -> None:
        self._run_id = run_id or uuid.uuid4().hex
        super().__init__(logger, {"namespace": normalize_dotpath(namespace)})

    @property
    def namespace(self) -> str:
        return str(self.extra.get("namespace", "")) if self.extra else ""

    @property
    def run_id(self) -> str:
        return self._run_id

    def with_namespace(self, namespace: str) -> "RunLogger":
        return RunLogger(self.logger, namespace=namespace, run_id=self._run_id)

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        extra = {**(self.extra or {}), **(kwargs.pop("extra", None) or {})}
        ns = normalize_dotpath(str(extra.pop("namespace", "") or ""))

        extra["run_id"] = self._run_id
        extra.setdefault("event_id", uuid.uuid4().hex)
        extra.setdefault("event", qualify_event_name(DEFAULT_EVENT, ns) if ns else DEFAULT_EVENT)
        if "data" in extra and not isinstance(extra["data"], Mapping):
            extra["data"] = {"value": extra["data"]}

        kwargs["extra"] = extra
        return msg, kwargs

    def event(
        self,
        name: str,
        *,
        message: str | None = None,
        level: int = logging.INFO,
        data: EventData | None = None,
        exc: BaseException | None = None,
        **fields: Any,
    ) -> None:
        """Emit the domain event ``name`` (qualified under this logger's namespace)."""

        if not self.isEnabledFor(level):
            return

        full_name = qualify_event_name(name, self.namespace)
        payload = validate_event(full_name, {**(data or {}), **fields})

        extra: dict[str, Any] = {"event": full_name}
        if payload:
            extra["data"] = payload
        self.log(level, message or full_name, extra=extra, exc_info=exc)


class NullLogger(RunLogger):
    """A RunLogger that discards all output; the default for library calls."""

    def __init__(self, *, namespace: str = REFRAME_NAMESPACE, run_id: str = "null") -> None:
        sink = logging.Logger("reframe.null")
        sink.addHandler(logging.NullHandler())
        sink.propagate = False
        sink.disabled = True
        super().__init__(sink, namespace=namespace, run_id=run_id)

    def with_namespace(self, namespace: str) -> "NullLogger":
        return NullLogger(namespace=namespace, run_id=self.run_id)


__all__ = [
    "NullLogger",
    "RunLogger",
    "normalize_dotpath",
    "qualify_event_name",
    "validate_event",
]
