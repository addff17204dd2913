from __future__ import annotations

import logging

import polars as pl
import pytest

from reframe.application.engine import Engine, build_registry
from reframe.extensions.registry import Registry
from reframe.infrastructure.observability.logger import RunLogger
from reframe.infrastructure.settings import Settings


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def events(self, name: str | None = None) -> list[logging.LogRecord]:
        return [r for r in self.records if name is None or getattr(r, "event", None) == name]


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    # Settings read settings.toml/.env from the working directory.
    monkeypatch.chdir(tmp_path)
    for key in ("REFRAME_LOG_FORMAT", "REFRAME_LOG_LEVEL", "REFRAME_STRICT_DTYPES", "REFRAME_CONCAT_HOW"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def registry() -> Registry:
    return build_registry()


@pytest.fixture
def engine(settings: Settings, registry: Registry) -> Engine:
    return Engine(settings=settings, registry=registry)


@pytest.fixture
def captured() -> tuple[RunLogger, ListHandler]:
    base = logging.Logger("reframe.test")
    base.setLevel(logging.DEBUG)
    handler = ListHandler()
    base.addHandler(handler)
    base.propagate = False
    return RunLogger(base, run_id="test-run"), handler


@pytest.fixture
def orders() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "id": [1, 2, 3, 4],
            "region": ["n", "s", "n", "e"],
            "amount": [10.0, 20.0, 30.0, 40.0],
        }
    )
