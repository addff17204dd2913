from __future__ import annotations

import json
import logging

import pytest

from reframe.infrastructure.observability.context import create_run_logger_context
from reframe.infrastructure.observability.formatters import NdjsonFormatter, TextFormatter
from reframe.infrastructure.observability.logger import NullLogger, qualify_event_name


def test_qualify_event_name():
    assert qualify_event_name("lattice.cast", "reframe") == "reframe.lattice.cast"
    assert qualify_event_name("reframe.lattice.cast", "reframe") == "reframe.lattice.cast"
    assert qualify_event_name("reframe.audit", "reframe.ext") == "reframe.ext.audit"
    assert qualify_event_name("", "reframe") == "reframe.invalid_event"


def test_unknown_reframe_events_are_rejected(captured):
    logger, _ = captured
    with pytest.raises(ValueError):
        logger.event("made.up", data={"x": 1})


def test_payloads_are_validated_strictly(captured):
    logger, _ = captured
    with pytest.raises(ValueError):
        logger.event(
            "lattice.cast",
            data={"source": "base", "target": "keyed", "path": "teleport"},
        )
    with pytest.raises(ValueError):
        logger.event(
            "lattice.cast",
            data={"source": "base", "target": "keyed", "path": "checked", "extra": 1},
        )


def test_extension_events_are_open(captured):
    logger, handler = captured
    logger.with_namespace("reframe.ext").event("audit.done", data={"anything": [1, 2]})
    (record,) = handler.events("reframe.ext.audit.done")
    assert record.data == {"anything": [1, 2]}
    assert record.run_id == "test-run"


def test_plain_log_lines_get_the_default_event(captured):
    logger, handler = captured
    logger.info("hello %s", "world")
    (record,) = handler.records
    assert record.event == "reframe.log"
    assert record.getMessage() == "hello world"


def test_null_logger_discards_everything():
    logger = NullLogger()
    logger.event("made.up.and.unchecked")
    logger.info("nothing")
    assert not logger.isEnabledFor(logging.CRITICAL)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("reframe", logging.INFO, __file__, 1, "Demoted keyed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_ndjson_formatter():
    line = NdjsonFormatter().format(
        _record(event="reframe.reconstruct.demoted", run_id="r1", event_id="e1", data={"row_count": 3})
    )
    payload = json.loads(line)
    assert payload["event"] == "reframe.reconstruct.demoted"
    assert payload["run_id"] == "r1"
    assert payload["level"] == "info"
    assert payload["data"] == {"row_count": 3}


def test_text_formatter():
    text = TextFormatter().format(_record(event="reframe.reconstruct.demoted", data={"row_count": 3}))
    assert "INFO reframe.reconstruct.demoted: Demoted keyed (row_count=3)" in text


def test_run_logger_context_writes_ndjson_file(tmp_path):
    log_file = tmp_path / "logs" / "events.ndjson"
    with create_run_logger_context(
        log_format="ndjson",
        log_level=logging.DEBUG,
        enable_console_logging=False,
        log_file=log_file,
    ) as ctx:
        ctx.logger.event("settings.effective", level=logging.DEBUG, data={"settings": {"strict_dtypes": True}})

    (line,) = log_file.read_text(encoding="utf-8").splitlines()
    payload = json.loads(line)
    assert payload["event"] == "reframe.settings.effective"
    assert payload["run_id"] == ctx.logger.run_id


def test_run_logger_context_rejects_unknown_format():
    with pytest.raises(ValueError):
        create_run_logger_context(log_format="xml", enable_console_logging=False)
