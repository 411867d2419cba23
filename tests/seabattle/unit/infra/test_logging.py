from __future__ import annotations

import logging

import pytest

from seabattle.infra.json_codec import loads
from seabattle.infra.logging import JsonFormatter, setup_logging, shutdown_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    shutdown_logging()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_includes_fields_and_message() -> None:
    logger = logging.getLogger("test.seabattle.formatter")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn=__file__,
        lno=1,
        msg="turn_start index=%d",
        args=(1,),
        exc_info=None,
        extra={"custom": 1, "shot": (3, 7)},
    )
    payload = loads(JsonFormatter().format(record))
    assert payload["msg"] == "turn_start index=1"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.seabattle.formatter"
    assert payload["fields"] == {"custom": 1, "shot": [3, 7]}


def test_setup_logging_console_only(monkeypatch, restore_root_logging) -> None:
    monkeypatch.setenv("SEABATTLE_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_FORMAT", "json")
    assert setup_logging(to_file=False) is None
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_setup_logging_writes_jsonl_run_file(monkeypatch, tmp_path, restore_root_logging) -> None:
    monkeypatch.setenv("SEABATTLE_APP_DATA_DIR", str(tmp_path / "appdata"))
    monkeypatch.delenv("SEABATTLE_LOG_DIR", raising=False)
    monkeypatch.setenv("SEABATTLE_LOG_LEVEL", "INFO")
    path = setup_logging(to_file=True)
    logging.getLogger("test.seabattle.file").info("hello_file")
    shutdown_logging()

    files = list((tmp_path / "appdata" / "logs").glob("seabattle_run_*.jsonl"))
    assert [str(files[0])] == [path]
    lines = [loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    assert any(line["msg"] == "hello_file" for line in lines)
