from __future__ import annotations

import json
import logging

import pytest

from rrdb.core.store import RingStore
from rrdb.utils.logging import JsonFormatter, setup_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("rrdb.core.store", logging.WARNING, __file__, 1, "Rejected %s", ("sample",), None)
    record.timestamp = "2013-01-01T08:10:00+00:00"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "rrdb.core.store"
    assert payload["message"] == "Rejected sample"
    assert payload["timestamp"] == "2013-01-01T08:10:00+00:00"
    assert "lineno" not in payload


def test_setup_logging_installs_json_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    setup_logging("debug")
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_rejected_write_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    store = RingStore(30, 3)
    store.insert_at(1, 100)
    with caplog.at_level(logging.WARNING, logger="rrdb.core.store"):
        store.insert_at(2, 50)
    assert "Rejected non-monotonic sample" in caplog.text
