import json
import logging

import pytest

from shared_libs.config.logging_config import (
    LOG_LEVEL,
    QUIET_LOGGERS,
    GCPJSONFormatter,
    _is_gcp_environment,
)


def make_record(message="hello %s", args=("world",), **extra):
    record = logging.LogRecord("unit.logger", logging.WARNING, __file__, 10, message, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_gcp_formatter_emits_severity_and_message():
    payload = json.loads(GCPJSONFormatter().format(make_record()))

    assert payload["severity"] == "WARNING"
    assert payload["logger"] == "unit.logger"
    assert payload["message"] == "hello world"


def test_gcp_formatter_keeps_extra_fields():
    payload = json.loads(GCPJSONFormatter().format(make_record(total_words=12, blob=object())))

    assert payload["total_words"] == 12
    assert payload["blob"].startswith("<object object")


def test_gcp_environment_detection(monkeypatch):
    for name in ("K_SERVICE", "FUNCTION_TARGET", "ENV_TYPE"):
        monkeypatch.delenv(name, raising=False)
    assert _is_gcp_environment() is False

    monkeypatch.setenv("FUNCTION_TARGET", "count_words")
    assert _is_gcp_environment() is True


@pytest.mark.skipif(LOG_LEVEL != "INFO", reason="levels are only raised when LOG_LEVEL is INFO")
def test_client_library_loggers_raised_to_warning_at_info():
    for name in QUIET_LOGGERS:
        logger = logging.getLogger(name)
        assert logger.level == logging.WARNING
        assert logger.propagate is True
