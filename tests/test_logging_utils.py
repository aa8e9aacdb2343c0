import json
import logging

import pytest

from ckan_config import logging_utils
from ckan_config.logging_utils import (
    StructuredMessage,
    get_log_format,
    get_logger,
    log_context,
    log_duration,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logging(monkeypatch):
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    monkeypatch.setattr(logging_utils, "_ACTIVE_FORMAT", logging_utils.get_log_format())
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_structured_message_str():
    message = StructuredMessage(
        "Configuration saved.", event="config.save.success", path="/tmp/x", skipped=None
    )

    assert str(message) == "Configuration saved. | event=config.save.success | path=/tmp/x"


def test_get_logger_is_namespaced():
    assert get_logger("plain").logger.name == "ckan_config.plain"
    assert get_logger("ckan_config.file_store").logger.name == "ckan_config.file_store"


def test_adapter_moves_details_into_record(caplog):
    logger = get_logger("ckan_config.tests", component="Tests").bind(run="abc")

    with caplog.at_level(logging.INFO, logger="ckan_config.tests"):
        logger.info(log_context("Loaded.", event="config.load.success", keys=3))

    record = caplog.records[-1]
    assert record.getMessage() == "Loaded."
    assert record.event == "config.load.success"
    assert record.component == "Tests"
    assert record.details == {"keys": 3, "run": "abc"}


def test_log_duration_success(caplog):
    logger = get_logger("ckan_config.tests")

    with caplog.at_level(logging.INFO, logger="ckan_config.tests"):
        with log_duration(logger, "Migrating.", event="config.migration") as details:
            details["completed"] = True

    record = caplog.records[-1]
    assert record.details["status"] == "success"
    assert record.details["completed"] is True
    assert "duration_ms" in record.details


def test_log_duration_failure_reraises(caplog):
    logger = get_logger("ckan_config.tests")

    with caplog.at_level(logging.INFO, logger="ckan_config.tests"):
        with pytest.raises(RuntimeError):
            with log_duration(logger, "Migrating.", event="config.migration"):
                raise RuntimeError("boom")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.details["status"] == "failure"
    assert record.exc_info is not None


def test_setup_logging_json_format(monkeypatch, capsys):
    monkeypatch.setenv("CKAN_LOG_FORMAT", "json")
    monkeypatch.setenv("CKAN_LOG_LEVEL", "DEBUG")

    setup_logging()
    get_logger("ckan_config.tests", component="Tests").debug(
        log_context("Hello.", event="tests.hello", answer=42)
    )

    assert get_log_format() == "json"
    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "Hello."
    assert payload["event"] == "tests.hello"
    assert payload["details"] == {"answer": 42}
    assert payload["level"] == "DEBUG"


def test_setup_logging_structured_format(monkeypatch, capsys):
    monkeypatch.setenv("CKAN_LOG_FORMAT", "yaml")
    monkeypatch.delenv("CKAN_LOG_LEVEL", raising=False)

    setup_logging()
    get_logger("ckan_config.tests").info(log_context("Hello.", event="tests.hello", answer=42))

    assert logging_utils.get_log_format() == "structured"
    err = capsys.readouterr().err
    assert "Unsupported log format 'yaml'" in err
    assert "| Hello. | event=tests.hello | answer=42" in err
